"""
Who may see a project's full brief.

Evaluated on every request from stored agreements; nothing is cached, so a
signature that completes in the background unlocks the page on next load.
"""
from accounts.permissions import user_is_admin, user_is_company, user_is_project_owner

from ..models import NdaAgreement


def can_view_full_project(viewer, project, agreements=None, now=None) -> bool:
    if not project.requires_nda:
        return True
    if user_is_project_owner(viewer, project) or user_is_admin(viewer):
        return True
    if not user_is_company(viewer):
        return False

    if agreements is None:
        agreements = NdaAgreement.objects.filter(project=project, company_user=viewer, status=NdaAgreement.Status.SIGNED)
    return any(
        agreement.project_id == project.pk
        and agreement.company_user_id == viewer.pk
        and agreement.is_in_force(now)
        for agreement in agreements
    )


def visible_project_payload(viewer, project, agreements=None, now=None) -> dict:
    if can_view_full_project(viewer, project, agreements, now):
        data = project.full_detail()
        data["full_access"] = True
    else:
        data = project.teaser()
        data["full_access"] = False
    return data


def can_message_about_project(viewer, project, agreements=None, now=None) -> bool:
    """Companies may message the owner about an NDA project once they can read it."""
    if viewer is None or not viewer.is_authenticated or user_is_project_owner(viewer, project):
        return False
    return can_view_full_project(viewer, project, agreements, now)
