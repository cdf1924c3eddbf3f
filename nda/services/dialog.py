from ..models import NdaAgreement

Status = NdaAgreement.Status

STEP_COMPLETE_PROFILE = "complete_profile"
STEP_VERIFICATION = "verification"
STEP_CONTACT = "contact"
STEP_INITIATE = "initiate"
STEP_AWAITING_ENTREPRENEUR = "awaiting_entrepreneur"
STEP_SIGNING = "signing"
STEP_SIGNED = "signed"
STEP_CLOSED = "closed"


def dialog_step(agreement, profile, now=None) -> str:
    """
    Which screen the company's NDA dialog should show.

    Derived only from stored state so a reload always lands on the same step.
    ``closed`` is a signed agreement whose validity period has run out.
    """
    if agreement is not None and not agreement.is_terminal:
        if agreement.status == Status.SIGNED:
            return STEP_CLOSED if agreement.is_lapsed(now) else STEP_SIGNED
        if agreement.status == Status.INVITATION_SENT:
            return STEP_SIGNING
        return STEP_AWAITING_ENTREPRENEUR

    if profile is None or not profile.personal_info_complete:
        return STEP_COMPLETE_PROFILE
    if not profile.verified:
        return STEP_VERIFICATION
    if not (profile.email and profile.phone):
        return STEP_CONTACT
    return STEP_INITIATE
