"""
NDA agreement lifecycle.

    awaiting_entrepreneur -> invitation_sent -> signed
    cancelled             <- any live state, signed included
    expired               <- any state before signed

Status writes are conditional updates on the status the caller last saw, so
concurrent requests converge instead of overwriting each other. Calls to the
signature provider happen outside any transaction.
"""
import logging
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from accounts.permissions import user_can_cancel_agreement, user_is_admin, user_is_project_owner
from audit.models import AgreementStatusChange
from companies import services as company_services
from projects.models import Project

from .. import exceptions
from ..forms import EntrepreneurInfoForm
from ..models import NdaAgreement
from ..validators import ENTREPRENEUR_REQUIRED_FIELDS, require_complete
from . import notify
from .document import agreement_file_name, render_agreement_pdf
from .sadiq import SadiqService, map_provider_status

logger = logging.getLogger(__name__)

Status = NdaAgreement.Status
Source = AgreementStatusChange.Source


# -- lookups -----------------------------------------------------------------

def get_project(pk) -> Project:
    try:
        return Project.objects.select_related("owner").get(pk=pk)
    except Project.DoesNotExist:
        raise exceptions.NotFoundError(_("Project not found."))


def get_agreement(pk) -> NdaAgreement:
    try:
        return NdaAgreement.objects.select_related("project", "project__owner", "company_user").get(pk=pk)
    except NdaAgreement.DoesNotExist:
        raise exceptions.NotFoundError(_("NDA agreement not found."))


def get_live_agreement(project, company_user) -> Optional[NdaAgreement]:
    return (
        NdaAgreement.objects.select_related("project", "project__owner", "company_user")
        .filter(project=project, company_user=company_user)
        .exclude(status__in=NdaAgreement.TERMINAL_STATUSES)
        .first()
    )


def agreements_for_project(project):
    """Every agreement on the project, newest first, terminal ones included."""
    return NdaAgreement.objects.select_related("company_user").filter(project=project)


# -- store -------------------------------------------------------------------

def _record(agreement, from_status, to_status, actor=None, source=Source.USER, note=""):
    AgreementStatusChange.objects.create(
        agreement=agreement,
        from_status=from_status or "",
        to_status=to_status,
        actor=actor if getattr(actor, "pk", None) else None,
        source=source,
        note=note,
    )


def _create_agreement(project, company_user, company_signature_info) -> NdaAgreement:
    try:
        with transaction.atomic():
            agreement = NdaAgreement.objects.create(
                project=project,
                company_user=company_user,
                status=Status.AWAITING_ENTREPRENEUR,
                company_signature_info=company_signature_info,
            )
            _record(agreement, "", Status.AWAITING_ENTREPRENEUR, actor=company_user)
    except IntegrityError:
        existing = get_live_agreement(project, company_user)
        if existing is None:
            raise
        raise exceptions.ConflictError(_("An NDA request already exists for this project."), existing=existing)
    return agreement


def _transition(agreement, to_status, *, actor=None, source=Source.USER, note="", **fields) -> bool:
    """
    Move ``agreement`` to ``to_status`` if nobody changed it since it was read.

    Returns False when the stored status moved underneath us; ``agreement``
    is refreshed either way.
    """
    from_status = agreement.status
    if not agreement.can_transition_to(to_status):
        raise exceptions.PreconditionError(
            _("Cannot move an agreement from %(from)s to %(to)s.") % {"from": from_status, "to": to_status}
        )
    with transaction.atomic():
        updated = NdaAgreement.objects.filter(pk=agreement.pk, status=from_status).update(
            status=to_status, updated_at=timezone.now(), **fields
        )
        if updated:
            _record(agreement, from_status, to_status, actor=actor, source=source, note=note)
    agreement.refresh_from_db()
    if updated:
        logger.info("NDA %s: %s -> %s (%s)", agreement.pk, from_status, to_status, source)
    else:
        logger.info("NDA %s: %s -> %s lost to a concurrent update (now %s)", agreement.pk, from_status, to_status, agreement.status)
    return bool(updated)


# -- contact validation ------------------------------------------------------

@dataclass(frozen=True)
class ContactCheck:
    valid: bool
    has_email: bool
    has_phone: bool
    existing_phone: Optional[str] = None

    def as_dict(self):
        return asdict(self)


def validate_contact(company_user) -> ContactCheck:
    """Does the company representative have both an email and a phone on file?"""
    profile = company_services.get_company_profile(company_user)
    email = (profile.email or "").strip()
    phone = (profile.phone or "").strip()
    return ContactCheck(
        valid=bool(email and phone),
        has_email=bool(email),
        has_phone=bool(phone),
        existing_phone=phone or None,
    )


def update_contact(company_user, email=None, phone=None):
    return company_services.update_contact(company_user, email=email, phone=phone)


def check_company_can_initiate(company_user):
    """Profile completeness and administrator verification, in that order."""
    profile = company_services.get_company_profile(company_user)
    missing = profile.missing_personal_fields
    if missing:
        raise exceptions.PreconditionError(
            _("Complete your company profile before requesting an NDA."),
            fields={name: _("Required") for name in missing},
        )
    if not profile.verified:
        raise exceptions.PreconditionError(
            _("Your company must be verified by an administrator before it can sign NDAs."),
            fields={"verified": _("Awaiting verification")},
        )
    return profile


# -- operations --------------------------------------------------------------

def initiate_agreement(project, company_user):
    """
    Open an NDA for (project, company), or return the live one.

    Returns ``(agreement, created)``.
    """
    if not project.requires_nda:
        raise exceptions.PreconditionError(_("This project does not require an NDA."))
    if user_is_project_owner(company_user, project):
        raise exceptions.PreconditionError(_("Project owners cannot request an NDA on their own project."))

    existing = get_live_agreement(project, company_user)
    if existing is not None:
        return existing, False

    # The completion gate already requires a phone, and email falls back to the account
    profile = check_company_can_initiate(company_user)

    snapshot = {
        "name": profile.full_name.strip(),
        "email": profile.email.strip(),
        "phone": profile.phone.strip(),
        "national_id": profile.national_id.strip(),
        "address": profile.address.strip(),
        "company_name": profile.company_name,
        "company_user_id": company_user.pk,
        "created_at": timezone.now().isoformat(),
    }
    try:
        agreement = _create_agreement(project, company_user, snapshot)
    except exceptions.ConflictError as conflict:
        logger.info("Concurrent NDA initiation for project %s by %s; reusing %s", project.pk, company_user.pk, conflict.existing.pk)
        return conflict.existing, False

    logger.info("NDA %s initiated on project %s by company user %s", agreement.pk, project.pk, company_user.pk)
    notify.nda_requested(agreement)
    return agreement, True


def clean_entrepreneur_info(info) -> dict:
    values = {name: info.get(name) for name in ENTREPRENEUR_REQUIRED_FIELDS}
    require_complete(values, ENTREPRENEUR_REQUIRED_FIELDS)
    form = EntrepreneurInfoForm(data=values)
    if not form.is_valid():
        raise exceptions.ValidationError(
            _("Please correct the highlighted fields."),
            fields={name: errors[0] for name, errors in form.errors.items()},
        )
    cleaned = dict(form.cleaned_data)
    cleaned["birth_date"] = cleaned["birth_date"].isoformat()
    return cleaned


def complete_entrepreneur_info(agreement, owner, info, bridge: Optional[SadiqService] = None):
    """
    Capture the project owner's signer data and send the signing invitation.

    The data is kept even if the provider call fails, so the owner can
    simply retry; the status only moves once the envelope exists.

    Saving the data also claims the agreement through ``envelope_requested_at``
    so only one request talks to Sadiq at a time. A second submission while
    the claim is held gets a ConflictError instead of a second envelope.
    """
    if not user_is_project_owner(owner, agreement.project):
        raise exceptions.PermissionDeniedError(_("Only the project owner can complete this NDA."))
    if agreement.status != Status.AWAITING_ENTREPRENEUR:
        raise exceptions.PreconditionError(
            _("This NDA is no longer waiting for your data (status: %(status)s).") % {"status": agreement.get_status_display()}
        )

    cleaned = clean_entrepreneur_info(info)
    now = timezone.now()
    entrepreneur_info = {**cleaned, "entrepreneur_user_id": owner.pk, "completed_at": now.isoformat()}
    stale = now - timedelta(seconds=getattr(settings, "NDA_ENVELOPE_CLAIM_SECONDS", 300))
    claimed = NdaAgreement.objects.filter(
        Q(envelope_requested_at__isnull=True) | Q(envelope_requested_at__lt=stale),
        pk=agreement.pk,
        status=Status.AWAITING_ENTREPRENEUR,
    ).update(entrepreneur_info=entrepreneur_info, envelope_requested_at=now, updated_at=now)
    agreement.refresh_from_db()
    if not claimed:
        if agreement.status == Status.AWAITING_ENTREPRENEUR:
            raise exceptions.ConflictError(
                _("The signing invitation for this NDA is already being sent."), existing=agreement
            )
        raise exceptions.PreconditionError(_("This NDA changed while you were submitting. Please reload."))

    bridge = bridge or SadiqService()
    file_name = agreement_file_name(agreement)
    try:
        document = render_agreement_pdf(agreement)
        envelope = bridge.create_envelope(agreement, document, file_name)
    except Exception:
        _release_envelope_claim(agreement, now)
        raise

    stored_name = default_storage.save(f"nda/{file_name}", ContentFile(document))
    moved = _transition(
        agreement,
        Status.INVITATION_SENT,
        actor=owner,
        source=Source.USER,
        note=f"envelope {envelope.envelope_id}",
        sadiq_envelope_id=envelope.envelope_id,
        sadiq_reference_number=envelope.reference_number,
        sadiq_document_id=envelope.document_id,
        envelope_status="sent",
        document=stored_name,
        envelope_requested_at=None,
        expires_at=now + timedelta(days=bridge.invitation_valid_days),
    )
    if not moved:
        default_storage.delete(stored_name)
        logger.warning("NDA %s left awaiting_entrepreneur before envelope %s was recorded", agreement.pk, envelope.envelope_id)
        raise exceptions.PreconditionError(_("This NDA was closed while the invitation was being sent."))

    notify.invitation_sent(agreement)
    return agreement


def _release_envelope_claim(agreement, claimed_at):
    NdaAgreement.objects.filter(pk=agreement.pk, envelope_requested_at=claimed_at).update(envelope_requested_at=None)
    agreement.refresh_from_db()


def _validity_end(signed_at):
    months = getattr(settings, "NDA_VALIDITY_MONTHS", None)
    if not months:
        return None
    return signed_at + relativedelta(months=months)


def ingest_provider_status(agreement, raw_status, completion_percentage=None, source=Source.PROVIDER):
    """
    Apply a status the provider reported (poll or webhook).

    Reports for agreements that are not waiting on signatures are stale and
    ignored, so a signed agreement never moves backwards.
    """
    if agreement.status != Status.INVITATION_SENT:
        logger.info("NDA %s: ignoring provider status %r in state %s", agreement.pk, raw_status, agreement.status)
        return agreement

    local = map_provider_status(raw_status, completion_percentage)
    if local is None or local == Status.INVITATION_SENT:
        if local is None:
            logger.warning("NDA %s: unmapped Sadiq status %r", agreement.pk, raw_status)
        fields = {"envelope_status": str(raw_status or "")[:64], "updated_at": timezone.now()}
        if completion_percentage is not None:
            fields["completion_percentage"] = max(agreement.completion_percentage, completion_percentage)
        NdaAgreement.objects.filter(pk=agreement.pk, status=Status.INVITATION_SENT).update(**fields)
        agreement.refresh_from_db()
        return agreement

    if local == Status.SIGNED:
        signed_at = timezone.now()
        moved = _transition(
            agreement, Status.SIGNED, source=source, note=f"provider status {raw_status}",
            signed_at=signed_at,
            expires_at=_validity_end(signed_at),
            envelope_status=str(raw_status)[:64],
            completion_percentage=100,
        )
        if moved:
            notify.signed(agreement)
        return agreement

    moved = _transition(
        agreement, local, source=source, note=f"provider status {raw_status}",
        envelope_status=str(raw_status)[:64],
    )
    if moved:
        if local == Status.EXPIRED:
            notify.expired(agreement)
        else:
            notify.cancelled(agreement)
    return agreement


def refresh_signature_status(agreement, bridge: Optional[SadiqService] = None):
    """Poll the provider for an agreement waiting on signatures."""
    agreement = expire_if_due(agreement)
    if agreement.status != Status.INVITATION_SENT:
        return agreement
    bridge = bridge or SadiqService()
    report = bridge.get_envelope_status(agreement.sadiq_reference_number)
    return ingest_provider_status(agreement, report.status, report.completion_percentage)


def find_by_provider_reference(reference_number=None, envelope_id=None) -> Optional[NdaAgreement]:
    queryset = NdaAgreement.objects.select_related("project", "project__owner", "company_user")
    if reference_number:
        agreement = queryset.filter(sadiq_reference_number=reference_number).first()
        if agreement is not None:
            return agreement
    if envelope_id:
        return queryset.filter(sadiq_envelope_id=envelope_id).first()
    return None


def cancel_agreement(agreement, actor, reason=""):
    """
    Administrator or initiating company closes the agreement. Local state is authoritative.

    A signed agreement may be cancelled too, which revokes the access it granted.
    """
    if not user_can_cancel_agreement(actor, agreement):
        raise exceptions.PermissionDeniedError(_("You cannot cancel this NDA."))
    source = Source.ADMIN if user_is_admin(actor) and actor.pk != agreement.company_user_id else Source.USER

    # Retry if a concurrent forward move (e.g. invitation sent) won the race
    for _attempt in range(3):
        if agreement.status == Status.CANCELLED:
            return agreement
        if not agreement.can_transition_to(Status.CANCELLED):
            raise exceptions.PreconditionError(
                _("A %(status)s NDA cannot be cancelled.") % {"status": agreement.get_status_display()}
            )
        revoked = agreement.status == Status.SIGNED
        note = reason or ("signed agreement revoked" if revoked else "")
        moved = _transition(
            agreement, Status.CANCELLED, actor=actor, source=source, note=note,
            cancelled_at=timezone.now(), cancelled_by=actor, cancel_reason=(reason or "")[:255],
            # signed_at is only kept while status is signed
            signed_at=None,
        )
        if moved:
            notify.cancelled(agreement, actor=actor)
            return agreement
    raise exceptions.ConflictError(_("The NDA kept changing; please try again."))


def expire_agreement(agreement, actor=None, note="invitation deadline passed"):
    """Close an unsigned agreement as expired. Signed agreements lapse by date instead."""
    if agreement.status == Status.EXPIRED:
        return agreement
    source = Source.ADMIN if actor is not None else Source.SYSTEM
    moved = _transition(agreement, Status.EXPIRED, actor=actor, source=source, note=note)
    if moved:
        notify.expired(agreement)
    return agreement


def expire_if_due(agreement):
    """Lazily expire an invitation whose signing window has passed."""
    if not agreement.invitation_overdue:
        return agreement
    return expire_agreement(agreement)


def expire_due_agreements(now=None) -> int:
    now = now or timezone.now()
    count = 0
    overdue = NdaAgreement.objects.select_related("project", "project__owner", "company_user").filter(
        status=Status.INVITATION_SENT, expires_at__lte=now
    )
    for agreement in overdue:
        if expire_if_due(agreement).status == Status.EXPIRED:
            count += 1
    return count
