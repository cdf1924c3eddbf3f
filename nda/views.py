import json
import logging

from django.http import HttpRequest, HttpResponse, HttpResponseBadRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from accounts.mixins import api_login_required, role_required
from accounts.models import ROLE_COMPANY
from accounts.permissions import (
    user_is_admin,
    user_is_company,
    user_is_project_owner,
    user_can_view_agreement,
)
from companies.models import CompanyProfile

from . import exceptions
from .forms import CancelForm, ContactUpdateForm
from .http import handles_nda_errors, json_body
from .models import NdaAgreement
from .services import lifecycle
from .services.dialog import dialog_step
from .services.sadiq import SadiqService, as_percentage

logger = logging.getLogger(__name__)

# The dialog front-end posts camelCase keys
ENTREPRENEUR_FIELD_ALIASES = {
    "name": "full_name",
    "fullName": "full_name",
    "nationalId": "national_id",
    "birthDate": "birth_date",
}


# What the initiating company may see of the owner's signer data
COUNTERPARTY_ENTREPRENEUR_FIELDS = ("full_name", "email")


def _company_profile(user):
    return CompanyProfile.objects.filter(user=user).first()


def _entrepreneur_info_for(agreement, viewer):
    info = agreement.entrepreneur_info or {}
    if viewer is None or user_is_admin(viewer) or user_is_project_owner(viewer, agreement.project):
        return info
    return {name: info[name] for name in COUNTERPARTY_ENTREPRENEUR_FIELDS if name in info}


def serialize_agreement(agreement: NdaAgreement, viewer=None) -> dict:
    data = {
        "id": agreement.pk,
        "project_id": agreement.project_id,
        "company_user_id": agreement.company_user_id,
        "status": agreement.status,
        "status_display": agreement.get_status_display(),
        "company_signature_info": agreement.company_signature_info,
        "entrepreneur_info": _entrepreneur_info_for(agreement, viewer),
        "envelope_status": agreement.envelope_status,
        "completion_percentage": agreement.completion_percentage,
        "pdf_url": agreement.pdf_url,
        "ready_for_signature": agreement.is_ready_for_signature,
        "signing_url": None,
        "signed_at": agreement.signed_at.isoformat() if agreement.signed_at else None,
        "expires_at": agreement.expires_at.isoformat() if agreement.expires_at else None,
        "cancelled_at": agreement.cancelled_at.isoformat() if agreement.cancelled_at else None,
        "cancel_reason": agreement.cancel_reason,
        "created_at": agreement.created_at.isoformat(),
        "updated_at": agreement.updated_at.isoformat(),
    }
    if agreement.status == NdaAgreement.Status.INVITATION_SENT and agreement.sadiq_envelope_id:
        data["signing_url"] = SadiqService().build_signing_url(agreement.sadiq_envelope_id)
    if viewer is not None and viewer.pk == agreement.company_user_id:
        data["dialog_step"] = dialog_step(agreement, _company_profile(viewer))
    return data


def _form_errors(form):
    return exceptions.ValidationError(
        "Please correct the highlighted fields.",
        fields={name: errors[0] for name, errors in form.errors.items()},
    )


def _visible_agreement(request, pk) -> NdaAgreement:
    agreement = lifecycle.get_agreement(pk)
    if not user_can_view_agreement(request.user, agreement):
        raise exceptions.PermissionDeniedError("You cannot access this NDA.")
    return lifecycle.expire_if_due(agreement)


@role_required([ROLE_COMPANY])
@require_GET
@handles_nda_errors
def contact_check(request: HttpRequest, project_id: int) -> JsonResponse:
    project = lifecycle.get_project(project_id)
    check = lifecycle.validate_contact(request.user)
    return JsonResponse({"project_id": project.pk, **check.as_dict()})


@role_required([ROLE_COMPANY])
@require_POST
@handles_nda_errors
def contact_update(request: HttpRequest) -> JsonResponse:
    form = ContactUpdateForm(json_body(request))
    if not form.is_valid():
        raise _form_errors(form)
    lifecycle.update_contact(request.user, email=form.cleaned_data.get("email"), phone=form.cleaned_data.get("phone"))
    return JsonResponse(lifecycle.validate_contact(request.user).as_dict())


@role_required([ROLE_COMPANY])
@require_POST
@handles_nda_errors
def initiate(request: HttpRequest, project_id: int) -> JsonResponse:
    project = lifecycle.get_project(project_id)
    agreement, created = lifecycle.initiate_agreement(project, request.user)
    return JsonResponse(
        {"created": created, "agreement": serialize_agreement(agreement, request.user)},
        status=201 if created else 200,
    )


@api_login_required
@require_GET
@handles_nda_errors
def project_agreements(request: HttpRequest, project_id: int) -> JsonResponse:
    """Owners and administrators see every agreement, a company only its own."""
    project = lifecycle.get_project(project_id)
    agreements = lifecycle.agreements_for_project(project)
    if user_is_project_owner(request.user, project) or user_is_admin(request.user):
        pass
    elif user_is_company(request.user):
        agreements = agreements.filter(company_user=request.user)
    else:
        raise exceptions.PermissionDeniedError("You cannot list NDAs for this project.")

    items = [serialize_agreement(lifecycle.expire_if_due(agreement), request.user) for agreement in agreements]
    data = {"project_id": project.pk, "requires_nda": project.requires_nda, "agreements": items}
    if user_is_company(request.user) and not user_is_project_owner(request.user, project):
        live = lifecycle.get_live_agreement(project, request.user)
        data["dialog_step"] = dialog_step(live, _company_profile(request.user))
    return JsonResponse(data)


@api_login_required
@require_GET
@handles_nda_errors
def agreement_detail(request: HttpRequest, pk: int) -> JsonResponse:
    agreement = _visible_agreement(request, pk)
    return JsonResponse(serialize_agreement(agreement, request.user))


@api_login_required
@require_POST
@handles_nda_errors
def agreement_complete(request: HttpRequest, pk: int) -> JsonResponse:
    agreement = lifecycle.get_agreement(pk)
    data = json_body(request)
    info = {ENTREPRENEUR_FIELD_ALIASES.get(key, key): value for key, value in data.items()}
    agreement = lifecycle.complete_entrepreneur_info(agreement, request.user, info)
    return JsonResponse(serialize_agreement(agreement, request.user))


@api_login_required
@require_POST
@handles_nda_errors
def agreement_refresh(request: HttpRequest, pk: int) -> JsonResponse:
    agreement = _visible_agreement(request, pk)
    agreement = lifecycle.refresh_signature_status(agreement)
    return JsonResponse(serialize_agreement(agreement, request.user))


@api_login_required
@require_POST
@handles_nda_errors
def agreement_cancel(request: HttpRequest, pk: int) -> JsonResponse:
    agreement = lifecycle.get_agreement(pk)
    form = CancelForm(json_body(request))
    if not form.is_valid():
        raise _form_errors(form)
    agreement = lifecycle.cancel_agreement(agreement, request.user, form.cleaned_data.get("reason", ""))
    return JsonResponse(serialize_agreement(agreement, request.user))


@csrf_exempt
@require_POST
def sadiq_webhook(request: HttpRequest) -> HttpResponse:
    service = SadiqService()
    signature = request.headers.get("X-Sadiq-Signature")
    if not service.verify_webhook_signature(request.body, signature):
        logger.warning("Rejected Sadiq webhook with bad signature")
        return HttpResponseBadRequest("Invalid signature")

    try:
        payload = json.loads(request.body.decode())
    except (UnicodeDecodeError, json.JSONDecodeError):
        return HttpResponseBadRequest("Invalid payload")
    if not isinstance(payload, dict):
        return HttpResponseBadRequest("Invalid payload")
    if isinstance(payload.get("data"), dict):
        payload = payload["data"]

    reference_number = payload.get("referenceNumber")
    envelope_id = payload.get("envelopeId")
    status = payload.get("status") or payload.get("envelopeStatus") or payload.get("eventType")
    if not (reference_number or envelope_id):
        return HttpResponseBadRequest("Missing envelope reference")

    agreement = lifecycle.find_by_provider_reference(reference_number, envelope_id)
    if agreement is None:
        logger.info("Sadiq webhook for unknown envelope ref=%s id=%s", reference_number, envelope_id)
        return HttpResponse("OK")

    completion = as_percentage((payload.get("signingStats") or {}).get("completionPercentage"))
    lifecycle.ingest_provider_status(agreement, status, completion)
    return HttpResponse("OK")
