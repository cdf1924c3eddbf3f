from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from accounts.mixins import role_required
from accounts.models import ROLE_COMPANY
from nda import exceptions
from nda.http import handles_nda_errors, json_body

from .forms import PersonalFieldsForm
from .services import get_company_profile, update_personal_fields


def serialize_profile(profile):
    return {
        "company_name": profile.company_name,
        "email": profile.email,
        "phone": profile.phone,
        "full_name": profile.full_name,
        "national_id": profile.national_id,
        "birth_date": profile.birth_date.isoformat() if profile.birth_date else None,
        "address": profile.address,
        "commercial_registry": profile.commercial_registry,
        "verified": profile.verified,
        "verification_status": profile.verification_status,
        "missing_fields": profile.missing_personal_fields,
    }


@role_required([ROLE_COMPANY])
@require_http_methods(["GET", "POST"])
@handles_nda_errors
def company_profile(request):
    """Read or partially update the signed-in company's profile."""
    if request.method == "GET":
        return JsonResponse(serialize_profile(get_company_profile(request.user)))

    form = PersonalFieldsForm(json_body(request))
    if not form.is_valid():
        raise exceptions.ValidationError("Please correct the highlighted fields.", fields={
            name: errors[0] for name, errors in form.errors.items()
        })
    profile = update_personal_fields(request.user, **form.changed_values())
    return JsonResponse(serialize_profile(profile))
