"""
Role predicates shared by the project, company and NDA surfaces.

Every helper accepts anonymous users and answers False for them.
"""


def user_is_admin(user):
    """Check if user has admin role in the application."""
    if user is None or not user.is_authenticated:
        return False
    return user.is_app_admin


def user_is_company(user):
    if user is None or not user.is_authenticated:
        return False
    return user.is_company


def user_is_project_owner(user, project):
    """Check if user posted the given project."""
    if user is None or not user.is_authenticated:
        return False
    return project.owner_id == user.pk


def user_can_cancel_agreement(user, agreement):
    """Administrators and the initiating company may cancel an agreement."""
    if user_is_admin(user):
        return True
    if user is None or not user.is_authenticated:
        return False
    return agreement.company_user_id == user.pk


def user_can_view_agreement(user, agreement):
    """Parties to the agreement and administrators may read it."""
    if user_is_admin(user):
        return True
    if user is None or not user.is_authenticated:
        return False
    return user.pk in (agreement.company_user_id, agreement.project.owner_id)
