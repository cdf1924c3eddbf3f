import logging

from django.http import HttpRequest, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET

from accounts.permissions import user_is_company, user_is_project_owner
from nda.models import NdaAgreement
from nda.services.disclosure import can_message_about_project, visible_project_payload
from nda.services.lifecycle import expire_if_due

from .models import Project

logger = logging.getLogger(__name__)


@require_GET
def project_detail(request: HttpRequest, pk: int) -> JsonResponse:
    """
    Project page data, full or teaser depending on the viewer's NDA.

    Open to anonymous visitors, who always get the teaser of an NDA project.
    """
    project = get_object_or_404(Project.objects.select_related("owner"), pk=pk)
    viewer = request.user

    agreements = []
    if project.requires_nda and user_is_company(viewer) and not user_is_project_owner(viewer, project):
        agreements = [
            expire_if_due(agreement)
            for agreement in NdaAgreement.objects.select_related("project", "project__owner", "company_user").filter(
                project=project, company_user=viewer
            )
        ]

    data = visible_project_payload(viewer, project, agreements)
    data["can_message"] = can_message_about_project(viewer, project, agreements)
    live = next((agreement for agreement in agreements if agreement.is_live), None)
    data["nda"] = {"agreement_id": live.pk, "status": live.status} if live else None
    return JsonResponse(data)
