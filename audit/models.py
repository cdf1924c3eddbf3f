from django.conf import settings
from django.db import models
from django.utils import timezone


class AgreementStatusChange(models.Model):
    """
    Audit log for NDA agreement status transitions.

    Written in the same transaction as the transition itself. Rows are never
    edited or deleted.
    """

    class Source(models.TextChoices):
        USER = "user", "User"
        PROVIDER = "provider", "Signature provider"
        ADMIN = "admin", "Administrator"
        SYSTEM = "system", "System"

    agreement = models.ForeignKey(
        "nda.NdaAgreement",
        on_delete=models.PROTECT,
        related_name='status_changes',
    )
    from_status = models.CharField(
        max_length=32,
        blank=True,
        help_text='Status before the transition (blank on creation)'
    )
    to_status = models.CharField(max_length=32)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='nda_status_changes',
        help_text='User who triggered the transition, if any'
    )
    source = models.CharField(max_length=16, choices=Source.choices, default=Source.USER)
    note = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['agreement', '-created_at'], name='audit_change_agreement_idx'),
        ]

    def __str__(self):
        origin = self.from_status or "(new)"
        return f"NDA #{self.agreement_id}: {origin} → {self.to_status}"
