from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class NdaAgreement(models.Model):
    """
    One company's confidentiality agreement for one project.

    Many companies may each hold their own agreement on the same project.
    Rows are never deleted; a cancelled or expired agreement stays as the
    legal audit trail and a fresh one may be initiated next to it.
    """

    class Status(models.TextChoices):
        AWAITING_ENTREPRENEUR = "awaiting_entrepreneur", "Awaiting Entrepreneur"
        READY_FOR_SIGNATURE = "ready_for_signature", "Ready for Signature"
        INVITATION_SENT = "invitation_sent", "Invitation Sent"
        SIGNED = "signed", "Signed"
        CANCELLED = "cancelled", "Cancelled"
        EXPIRED = "expired", "Expired"

    TERMINAL_STATUSES = (Status.CANCELLED, Status.EXPIRED)
    ALLOWED_TRANSITIONS = {
        Status.AWAITING_ENTREPRENEUR: {Status.INVITATION_SENT, Status.CANCELLED, Status.EXPIRED},
        Status.READY_FOR_SIGNATURE: {Status.INVITATION_SENT, Status.CANCELLED, Status.EXPIRED},
        Status.INVITATION_SENT: {Status.SIGNED, Status.CANCELLED, Status.EXPIRED},
        Status.SIGNED: {Status.CANCELLED},
        Status.CANCELLED: set(),
        Status.EXPIRED: set(),
    }

    project = models.ForeignKey("projects.Project", on_delete=models.PROTECT, related_name="nda_agreements")
    company_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="initiated_ndas")
    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.AWAITING_ENTREPRENEUR,
        db_index=True,
    )

    company_signature_info = models.JSONField(default=dict, blank=True, help_text="Snapshot of the company signer taken at initiation")
    entrepreneur_info = models.JSONField(default=dict, blank=True, help_text="Project owner's signer data, filled on completion")

    document = models.FileField(upload_to="nda/", null=True, blank=True)

    signed_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True, help_text="Invitation deadline while pending, validity end once signed")
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="cancelled_ndas")
    cancel_reason = models.CharField(max_length=255, blank=True)

    envelope_requested_at = models.DateTimeField(null=True, blank=True, help_text="Set while an envelope request to Sadiq is in flight")

    sadiq_envelope_id = models.CharField(max_length=128, blank=True)
    sadiq_reference_number = models.CharField(max_length=128, blank=True, db_index=True)
    sadiq_document_id = models.CharField(max_length=128, blank=True)
    envelope_status = models.CharField(max_length=64, blank=True, help_text="Raw status last reported by Sadiq")
    completion_percentage = models.PositiveSmallIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["project", "company_user"],
                condition=~Q(status__in=["cancelled", "expired"]),
                name="unique_live_nda_per_project_company",
            ),
            models.CheckConstraint(
                condition=(Q(status="signed", signed_at__isnull=False) | (~Q(status="signed") & Q(signed_at__isnull=True))),
                name="nda_signed_at_iff_signed",
            ),
        ]

    def __str__(self) -> str:
        company = self.company_signature_info.get("company_name") or self.company_user.email
        return f"NDA {self.project.title} - {company} ({self.status})"

    def clean(self):
        super().clean()
        if (self.status == self.Status.SIGNED) != (self.signed_at is not None):
            raise ValidationError({"signed_at": "signed_at must be set exactly when the agreement is signed."})

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_live(self) -> bool:
        return not self.is_terminal

    def can_transition_to(self, status) -> bool:
        return status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    def is_lapsed(self, now=None) -> bool:
        """A signed agreement whose validity period has run out."""
        if self.status != self.Status.SIGNED or self.expires_at is None:
            return False
        return self.expires_at <= (now or timezone.now())

    def is_in_force(self, now=None) -> bool:
        return self.status == self.Status.SIGNED and not self.is_lapsed(now)

    @property
    def invitation_overdue(self) -> bool:
        return (
            self.status == self.Status.INVITATION_SENT
            and self.expires_at is not None
            and self.expires_at <= timezone.now()
        )

    @property
    def has_entrepreneur_info(self) -> bool:
        from .validators import ENTREPRENEUR_REQUIRED_FIELDS, is_personal_info_complete
        return is_personal_info_complete(self.entrepreneur_info or {}, ENTREPRENEUR_REQUIRED_FIELDS)

    @property
    def is_ready_for_signature(self) -> bool:
        """Both parties' data captured but no envelope yet."""
        return (
            self.status in (self.Status.AWAITING_ENTREPRENEUR, self.Status.READY_FOR_SIGNATURE)
            and bool(self.company_signature_info)
            and self.has_entrepreneur_info
        )

    @property
    def pdf_url(self):
        return self.document.url if self.document else None
