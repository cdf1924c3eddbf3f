"""Lifecycle events sent to the notification feature."""
from django.urls import reverse
from django.utils.translation import gettext as _

from notifications.services import NotificationEvent, emit


def _metadata(agreement):
    return {"project_id": agreement.project_id, "agreement_id": agreement.pk}


def _action_url(agreement):
    return reverse("nda:agreement_detail", kwargs={"pk": agreement.pk})


def _company_name(agreement):
    info = agreement.company_signature_info
    return info.get("company_name") or info.get("name") or agreement.company_user.email


def _send(agreement, event_type, user, title, content):
    return emit(NotificationEvent(
        type=event_type,
        user=user,
        title=title,
        content=content,
        action_url=_action_url(agreement),
        metadata=_metadata(agreement),
    ))


def nda_requested(agreement):
    return _send(
        agreement, "nda_request", agreement.project.owner,
        _("A company wants to view your project under NDA"),
        _('%(company)s asked to sign an NDA for "%(project)s". Complete your data so the signing invitation can be sent.') % {
            "company": _company_name(agreement),
            "project": agreement.project.title,
        },
    )


def invitation_sent(agreement):
    content = _('The NDA signing invitation for "%(project)s" was sent. Check your email to sign.') % {
        "project": agreement.project.title,
    }
    title = _("NDA signing invitation sent")
    _send(agreement, "nda_completed", agreement.company_user, title, content)
    _send(agreement, "nda_completed", agreement.project.owner, title, content)


def signed(agreement):
    title = _("NDA signed")
    _send(agreement, "nda_signed", agreement.company_user, title,
          _('The NDA for "%(project)s" is fully signed. The full project details are now available.') % {
              "project": agreement.project.title,
          })
    _send(agreement, "nda_signed", agreement.project.owner, title,
          _('%(company)s signed the NDA for "%(project)s".') % {
              "company": _company_name(agreement),
              "project": agreement.project.title,
          })


def cancelled(agreement, actor=None):
    recipients = {agreement.company_user, agreement.project.owner}
    if actor is not None:
        recipients.discard(actor)
    for user in recipients:
        _send(agreement, "nda_cancelled", user, _("NDA cancelled"),
              _('The NDA request for "%(project)s" was cancelled.') % {"project": agreement.project.title})


def expired(agreement):
    for user in (agreement.company_user, agreement.project.owner):
        _send(agreement, "nda_expired", user, _("NDA expired"),
              _('The NDA for "%(project)s" expired before it was signed.') % {"project": agreement.project.title})
