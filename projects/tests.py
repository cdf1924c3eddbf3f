from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from nda.models import NdaAgreement
from projects.models import Project
from tests.helpers import make_admin, make_company, make_entrepreneur, make_project


class ProjectModelTest(TestCase):
    def setUp(self):
        self.owner = make_entrepreneur()
        self.project = make_project(self.owner)

    def test_teaser_omits_description(self):
        teaser = self.project.teaser()
        self.assertEqual(teaser["title"], "Fleet tracking platform")
        self.assertTrue(teaser["requires_nda"])
        self.assertNotIn("description", teaser)

    def test_full_detail_includes_description(self):
        self.assertEqual(self.project.full_detail()["description"], self.project.description)

    def test_nda_activity_is_derived_from_agreements(self):
        quiet = make_project(self.owner, title="Quiet project")
        NdaAgreement.objects.create(project=self.project, company_user=make_company())

        self.assertEqual(list(Project.objects.with_nda_activity()), [self.project])
        flags = {p.pk: p.has_nda_activity for p in Project.objects.annotate_nda_activity()}
        self.assertEqual(flags, {self.project.pk: True, quiet.pk: False})


class ProjectDetailViewTest(TestCase):
    def setUp(self):
        self.owner = make_entrepreneur()
        self.company = make_company()
        self.project = make_project(self.owner)
        self.url = reverse("projects:project_detail", args=[self.project.pk])

    def test_anonymous_visitor_gets_teaser(self):
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["full_access"])
        self.assertNotIn("description", resp.json())
        self.assertFalse(resp.json()["can_message"])

    def test_owner_and_admin_get_full_detail(self):
        for user in (self.owner, make_admin()):
            with self.subTest(user=user.email):
                self.client.force_login(user)
                self.assertTrue(self.client.get(self.url).json()["full_access"])

    def test_company_unlocks_after_signing(self):
        self.client.force_login(self.company)
        agreement = NdaAgreement.objects.create(project=self.project, company_user=self.company)

        body = self.client.get(self.url).json()
        self.assertFalse(body["full_access"])
        self.assertEqual(body["nda"], {"agreement_id": agreement.pk, "status": "awaiting_entrepreneur"})

        NdaAgreement.objects.filter(pk=agreement.pk).update(status="signed", signed_at=timezone.now())
        body = self.client.get(self.url).json()
        self.assertTrue(body["full_access"])
        self.assertEqual(body["description"], self.project.description)
        self.assertTrue(body["can_message"])

    def test_overdue_invitation_expires_on_page_load(self):
        agreement = NdaAgreement.objects.create(
            project=self.project,
            company_user=self.company,
            status="invitation_sent",
            expires_at=timezone.now() - timedelta(hours=1),
        )
        self.client.force_login(self.company)

        body = self.client.get(self.url).json()

        agreement.refresh_from_db()
        self.assertEqual(agreement.status, "expired")
        self.assertIsNone(body["nda"])

    def test_unknown_project_is_404(self):
        self.assertEqual(self.client.get(reverse("projects:project_detail", args=[9999])).status_code, 404)
