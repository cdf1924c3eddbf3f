from django import forms
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from . import exceptions
from .validators import normalize_phone, validate_national_id


class EntrepreneurInfoForm(forms.Form):
    """Signer data the project owner submits to complete an NDA."""
    full_name = forms.CharField(max_length=255, min_length=2)
    email = forms.EmailField()
    phone = forms.CharField(max_length=20)
    national_id = forms.CharField(max_length=20)
    birth_date = forms.DateField()
    address = forms.CharField(max_length=500)

    def clean_phone(self):
        try:
            return normalize_phone(self.cleaned_data["phone"])
        except exceptions.ValidationError as e:
            raise forms.ValidationError(e.message)

    def clean_national_id(self):
        try:
            return validate_national_id(self.cleaned_data["national_id"])
        except exceptions.ValidationError as e:
            raise forms.ValidationError(e.message)

    def clean_birth_date(self):
        birth_date = self.cleaned_data["birth_date"]
        if birth_date >= timezone.localdate():
            raise forms.ValidationError(_("Birth date must be in the past."))
        return birth_date


class ContactUpdateForm(forms.Form):
    email = forms.CharField(max_length=254, required=False)
    phone = forms.CharField(max_length=20, required=False)


class CancelForm(forms.Form):
    reason = forms.CharField(max_length=255, required=False)
