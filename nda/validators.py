"""
Completeness and format rules for the people who sign an NDA.

The same completeness predicate gates a company before it may initiate an
agreement and the entrepreneur before the signing invitation goes out.
"""
import re
from datetime import date

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email as django_validate_email
from django.utils.translation import gettext_lazy as _

from . import exceptions

ENTREPRENEUR_REQUIRED_FIELDS = ("full_name", "email", "phone", "national_id", "birth_date", "address")
COMPANY_REQUIRED_FIELDS = ("full_name", "national_id", "phone", "birth_date", "address", "commercial_registry")

FIELD_LABELS = {
    "full_name": _("Full name"),
    "email": _("Email"),
    "phone": _("Phone number"),
    "national_id": _("National ID"),
    "birth_date": _("Birth date"),
    "address": _("Address"),
    "commercial_registry": _("Commercial registry number"),
}

# Sadiq only accepts Saudi numbers in international form
_PHONE_STRIP = re.compile(r"[\s\-().]")
_SADIQ_PHONE = re.compile(r"^\+966[15]\d{7,8}$")
_INTL_PREFIX_PHONE = re.compile(r"^00966([15]\d{7,8})$")
_LOCAL_PHONE = re.compile(r"^0([15]\d{8})$")
_NATIONAL_ID = re.compile(r"^[12]\d{9}$")


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def missing_fields(values, fields) -> list:
    """Names from ``fields`` whose value is absent or blank after trimming."""
    return [name for name in fields if not _as_text(values.get(name))]


def is_personal_info_complete(values, fields=ENTREPRENEUR_REQUIRED_FIELDS) -> bool:
    return not missing_fields(values, fields)


def require_complete(values, fields):
    """Raise ValidationError naming every missing field."""
    missing = missing_fields(values, fields)
    if missing:
        raise exceptions.ValidationError(
            _("Please complete the required information."),
            fields={name: _("%(field)s is required.") % {"field": FIELD_LABELS.get(name, name)} for name in missing},
        )


def normalize_phone(phone) -> str:
    """
    Return the phone in +966 form or raise ValidationError.

    Accepts +966XXXXXXXX, 00966XXXXXXXX and local 05/01 numbers.
    """
    cleaned = _PHONE_STRIP.sub("", _as_text(phone))
    if not cleaned:
        raise exceptions.ValidationError(_("Phone number is required."), fields={"phone": _("Phone number is required.")})
    if _SADIQ_PHONE.match(cleaned):
        return cleaned
    match = _INTL_PREFIX_PHONE.match(cleaned) or _LOCAL_PHONE.match(cleaned)
    if match:
        return "+966" + match.group(1)
    message = _("Enter a Saudi phone number with the country code, e.g. +966512345678.")
    raise exceptions.ValidationError(message, fields={"phone": message})


def normalize_email(email) -> str:
    cleaned = _as_text(email)
    try:
        django_validate_email(cleaned)
    except DjangoValidationError:
        message = _("Enter a valid email address.")
        raise exceptions.ValidationError(message, fields={"email": message})
    return cleaned


def validate_national_id(national_id) -> str:
    cleaned = _as_text(national_id)
    if not _NATIONAL_ID.match(cleaned):
        message = _("National ID must be 10 digits starting with 1 or 2.")
        raise exceptions.ValidationError(message, fields={"national_id": message})
    return cleaned
