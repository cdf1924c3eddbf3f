from django.conf import settings
from django.db import models


class CompanyProfile(models.Model):
    """
    Development company account data.

    Holds the representative's contact details and the personal/legal fields
    the signature provider needs. Only ``companies.services`` writes these
    fields; the NDA flow reads them.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="company_profile")
    company_name = models.CharField(max_length=255)
    contact_email = models.EmailField(blank=True, help_text="Falls back to the account email when blank")
    phone = models.CharField(max_length=20, blank=True)

    # Personal contact profile of the representative who signs
    full_name = models.CharField(max_length=255, blank=True)
    national_id = models.CharField(max_length=20, blank=True)
    birth_date = models.DateField(null=True, blank=True)
    address = models.CharField(max_length=500, blank=True)
    commercial_registry = models.CharField(max_length=50, blank=True)

    # Admin verification, set out-of-band
    verified = models.BooleanField(default=False, help_text="Admin verification required before signing NDAs")
    verified_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="verified_companies", help_text="Admin who verified the company")
    verified_at = models.DateTimeField(null=True, blank=True, help_text="When the company was verified")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["company_name"]

    @property
    def email(self) -> str:
        return self.contact_email or self.user.email

    def personal_info(self) -> dict:
        """Values checked by the completion gate, keyed by profile field name."""
        return {
            "full_name": self.full_name,
            "national_id": self.national_id,
            "phone": self.phone,
            "birth_date": self.birth_date,
            "address": self.address,
            "commercial_registry": self.commercial_registry,
        }

    @property
    def missing_personal_fields(self) -> list:
        from nda.validators import COMPANY_REQUIRED_FIELDS, missing_fields
        return missing_fields(self.personal_info(), COMPANY_REQUIRED_FIELDS)

    @property
    def personal_info_complete(self) -> bool:
        return not self.missing_personal_fields

    @property
    def verification_status(self) -> str:
        """Return human-readable verification status"""
        if self.verified:
            return "Verified"
        if self.personal_info_complete:
            return "Pending Verification"
        return "Profile Incomplete"

    def __str__(self) -> str:
        return f"Company: {self.company_name} ({self.user.email})"
