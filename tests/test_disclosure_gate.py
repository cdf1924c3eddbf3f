from datetime import timedelta

from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from django.utils import timezone

from nda.models import NdaAgreement
from nda.services.dialog import dialog_step
from nda.services.disclosure import can_message_about_project, can_view_full_project, visible_project_payload

from .helpers import make_admin, make_company, make_entrepreneur, make_project

Status = NdaAgreement.Status


def make_agreement(project, company_user, status=Status.AWAITING_ENTREPRENEUR, **fields):
    if status == Status.SIGNED:
        fields.setdefault("signed_at", timezone.now())
    return NdaAgreement.objects.create(project=project, company_user=company_user, status=status, **fields)


class DisclosureGateTests(TestCase):
    def setUp(self):
        self.owner = make_entrepreneur()
        self.company = make_company()
        self.project = make_project(self.owner)

    def test_project_without_nda_is_public(self):
        project = make_project(self.owner, requires_nda=False)
        for viewer in (AnonymousUser(), self.company, make_entrepreneur("other@example.com")):
            with self.subTest(viewer=str(viewer)):
                self.assertTrue(can_view_full_project(viewer, project, []))

    def test_owner_and_admin_always_see_full_project(self):
        self.assertTrue(can_view_full_project(self.owner, self.project, []))
        self.assertTrue(can_view_full_project(make_admin(), self.project, []))

    def test_company_needs_its_own_signed_agreement(self):
        for status in (Status.AWAITING_ENTREPRENEUR, Status.INVITATION_SENT, Status.CANCELLED, Status.EXPIRED):
            with self.subTest(status=status):
                NdaAgreement.objects.all().delete()
                agreement = make_agreement(self.project, self.company, status)
                self.assertFalse(can_view_full_project(self.company, self.project, [agreement]))

        NdaAgreement.objects.all().delete()
        signed = make_agreement(self.project, self.company, Status.SIGNED)
        self.assertTrue(can_view_full_project(self.company, self.project, [signed]))

    def test_another_companys_signature_does_not_unlock(self):
        rival = make_company("rival@example.com")
        signed = make_agreement(self.project, rival, Status.SIGNED)
        self.assertFalse(can_view_full_project(self.company, self.project, [signed]))

    def test_agreement_for_another_project_does_not_unlock(self):
        other_project = make_project(self.owner, title="Another project")
        signed = make_agreement(other_project, self.company, Status.SIGNED)
        self.assertFalse(can_view_full_project(self.company, self.project, [signed]))

    def test_anonymous_and_other_entrepreneurs_see_teaser(self):
        self.assertFalse(can_view_full_project(AnonymousUser(), self.project, []))
        self.assertFalse(can_view_full_project(make_entrepreneur("peer@example.com"), self.project, []))

    def test_lapsed_signature_no_longer_unlocks(self):
        signed = make_agreement(
            self.project, self.company, Status.SIGNED,
            signed_at=timezone.now() - timedelta(days=400),
            expires_at=timezone.now() - timedelta(days=35),
        )
        self.assertFalse(can_view_full_project(self.company, self.project, [signed]))

    def test_agreements_are_loaded_when_not_supplied(self):
        self.assertFalse(can_view_full_project(self.company, self.project))
        make_agreement(self.project, self.company, Status.SIGNED)
        # Re-evaluated on every call
        self.assertTrue(can_view_full_project(self.company, self.project))

    def test_payload_hides_description_behind_gate(self):
        teaser = visible_project_payload(self.company, self.project, [])
        self.assertFalse(teaser["full_access"])
        self.assertNotIn("description", teaser)
        self.assertEqual(teaser["summary"], self.project.summary)

        signed = make_agreement(self.project, self.company, Status.SIGNED)
        full = visible_project_payload(self.company, self.project, [signed])
        self.assertTrue(full["full_access"])
        self.assertEqual(full["description"], self.project.description)

    def test_messaging_unlocks_with_signature(self):
        self.assertFalse(can_message_about_project(self.company, self.project, []))
        self.assertFalse(can_message_about_project(AnonymousUser(), self.project, []))
        self.assertFalse(can_message_about_project(self.owner, self.project, []))

        signed = make_agreement(self.project, self.company, Status.SIGNED)
        self.assertTrue(can_message_about_project(self.company, self.project, [signed]))


class DialogStepTests(TestCase):
    def setUp(self):
        self.owner = make_entrepreneur()
        self.project = make_project(self.owner)

    def test_prerequisite_steps_in_order(self):
        incomplete = make_company("a@example.com", complete=False).company_profile
        unverified = make_company("b@example.com", verified=False).company_profile
        no_email = make_company("c@example.com").company_profile
        no_email.user.email = ""

        self.assertEqual(dialog_step(None, None), "complete_profile")
        self.assertEqual(dialog_step(None, incomplete), "complete_profile")
        self.assertEqual(dialog_step(None, unverified), "verification")
        self.assertEqual(dialog_step(None, no_email), "contact")
        self.assertEqual(dialog_step(None, make_company("d@example.com").company_profile), "initiate")

    def test_steps_follow_agreement_status(self):
        company = make_company()
        profile = company.company_profile
        expectations = [
            (Status.AWAITING_ENTREPRENEUR, "awaiting_entrepreneur"),
            (Status.INVITATION_SENT, "signing"),
            (Status.SIGNED, "signed"),
        ]
        for status, step in expectations:
            with self.subTest(status=status):
                NdaAgreement.objects.all().delete()
                agreement = make_agreement(self.project, company, status)
                self.assertEqual(dialog_step(agreement, profile), step)

    def test_terminal_agreement_offers_a_new_request(self):
        company = make_company()
        agreement = make_agreement(self.project, company, Status.CANCELLED)
        self.assertEqual(dialog_step(agreement, company.company_profile), "initiate")

    def test_lapsed_signature_is_closed(self):
        company = make_company()
        agreement = make_agreement(
            self.project, company, Status.SIGNED,
            expires_at=timezone.now() - timedelta(days=1),
        )
        self.assertEqual(dialog_step(agreement, company.company_profile), "closed")
