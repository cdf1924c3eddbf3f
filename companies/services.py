"""
The one write path for company contact and personal fields.

Both the company dashboard and the NDA dialog call into here so that
validation lives in one place and neither caller can clobber the other's
data with blanks.
"""
import logging

from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from nda import exceptions
from nda.validators import normalize_email, normalize_phone, validate_national_id

from .models import CompanyProfile

logger = logging.getLogger(__name__)

PERSONAL_FIELDS = ("full_name", "national_id", "phone", "birth_date", "address", "commercial_registry", "company_name")


def get_company_profile(user) -> CompanyProfile:
    try:
        return CompanyProfile.objects.select_related("user").get(user=user)
    except CompanyProfile.DoesNotExist:
        raise exceptions.NotFoundError(
            _("A company profile is required to request an NDA."),
            fields={"company_profile": _("Company profile not found.")},
        )


def _has_value(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def update_contact(user, email=None, phone=None) -> CompanyProfile:
    """
    Write the supplied contact fields only.

    Blank values are ignored so an existing email or phone is never erased.
    """
    changes = {}
    errors = {}
    if _has_value(email):
        try:
            changes["contact_email"] = normalize_email(email)
        except exceptions.ValidationError as exc:
            errors.update(exc.fields)
    if _has_value(phone):
        try:
            changes["phone"] = normalize_phone(phone)
        except exceptions.ValidationError as exc:
            errors.update(exc.fields)
    if errors:
        raise exceptions.ValidationError(_("Please correct the contact information."), fields=errors)

    with transaction.atomic():
        profile = CompanyProfile.objects.select_for_update().get(pk=get_company_profile(user).pk)
        if changes:
            for field, value in changes.items():
                setattr(profile, field, value)
            profile.save(update_fields=[*changes, "updated_at"])
            logger.info("Updated contact fields %s for company user %s", sorted(changes), user.pk)
    return profile


def update_personal_fields(user, **fields) -> CompanyProfile:
    """Partial update of the representative's personal/legal fields."""
    unknown = set(fields) - set(PERSONAL_FIELDS)
    if unknown:
        raise ValueError(f"Unknown company profile fields: {sorted(unknown)}")

    changes = {}
    errors = {}
    for name, value in fields.items():
        if not _has_value(value):
            continue
        try:
            if name == "phone":
                value = normalize_phone(value)
            elif name == "national_id":
                value = validate_national_id(value)
            elif isinstance(value, str):
                value = value.strip()
        except exceptions.ValidationError as exc:
            errors.update(exc.fields)
            continue
        changes[name] = value
    if errors:
        raise exceptions.ValidationError(_("Please correct the highlighted fields."), fields=errors)

    with transaction.atomic():
        profile = CompanyProfile.objects.select_for_update().get(pk=get_company_profile(user).pk)
        if changes:
            for field, value in changes.items():
                setattr(profile, field, value)
            profile.save(update_fields=[*changes, "updated_at"])
            logger.info("Updated personal fields %s for company user %s", sorted(changes), user.pk)
    return profile


def verify_company(profile: CompanyProfile, admin_user) -> CompanyProfile:
    """Mark a company as verified by an administrator."""
    profile.verified = True
    profile.verified_by = admin_user
    profile.verified_at = timezone.now()
    profile.save(update_fields=["verified", "verified_by", "verified_at", "updated_at"])
    logger.info("Company %s verified by %s", profile.pk, getattr(admin_user, "pk", None))
    return profile
