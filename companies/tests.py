import json
from datetime import date

from django.test import TestCase
from django.urls import reverse

from accounts.models import ROLE_COMPANY
from nda import exceptions
from tests.helpers import make_admin, make_company, make_user

from .models import CompanyProfile
from .services import get_company_profile, update_contact, update_personal_fields, verify_company


class CompanyProfileModelTest(TestCase):
    def test_email_falls_back_to_account(self):
        user = make_company()
        profile = user.company_profile
        self.assertEqual(profile.email, "company@example.com")
        profile.contact_email = "legal@codefalcons.sa"
        self.assertEqual(profile.email, "legal@codefalcons.sa")

    def test_verification_status(self):
        self.assertEqual(make_company("a@example.com").company_profile.verification_status, "Verified")
        self.assertEqual(make_company("b@example.com", verified=False).company_profile.verification_status, "Pending Verification")
        self.assertEqual(
            make_company("c@example.com", verified=False, complete=False).company_profile.verification_status,
            "Profile Incomplete",
        )

    def test_missing_personal_fields(self):
        profile = make_company(complete=False).company_profile
        self.assertEqual(
            profile.missing_personal_fields,
            ["full_name", "national_id", "birth_date", "address", "commercial_registry"],
        )
        self.assertFalse(profile.personal_info_complete)


class CompanyServicesTest(TestCase):
    def setUp(self):
        self.user = make_company()

    def test_missing_profile(self):
        with self.assertRaises(exceptions.NotFoundError):
            get_company_profile(make_user("nobody@example.com", ROLE_COMPANY))

    def test_update_contact_ignores_blanks(self):
        profile = update_contact(self.user, email="  ", phone=None)
        self.assertEqual(profile.phone, "+966512345678")
        self.assertEqual(profile.contact_email, "")

    def test_update_contact_normalizes_phone(self):
        profile = update_contact(self.user, email="legal@codefalcons.sa", phone="00966 55 111 2233")
        self.assertEqual(profile.phone, "+966551112233")
        self.assertEqual(profile.contact_email, "legal@codefalcons.sa")

    def test_update_contact_reports_every_bad_field(self):
        with self.assertRaises(exceptions.ValidationError) as ctx:
            update_contact(self.user, email="not-an-email", phone="123")
        self.assertEqual(ctx.exception.missing_fields, ["email", "phone"])
        self.assertEqual(CompanyProfile.objects.get(user=self.user).phone, "+966512345678")

    def test_update_personal_fields(self):
        profile = update_personal_fields(self.user, address="  Tahlia Street, Jeddah ", birth_date=date(1980, 1, 2), full_name="")
        self.assertEqual(profile.address, "Tahlia Street, Jeddah")
        self.assertEqual(profile.birth_date, date(1980, 1, 2))
        self.assertEqual(profile.full_name, "Khalid Al-Harbi")

    def test_update_personal_fields_validates_national_id(self):
        with self.assertRaises(exceptions.ValidationError) as ctx:
            update_personal_fields(self.user, national_id="3012345678")
        self.assertIn("national_id", ctx.exception.fields)

    def test_unknown_field_is_a_programming_error(self):
        with self.assertRaises(ValueError):
            update_personal_fields(self.user, verified=True)

    def test_verify_company(self):
        admin = make_admin()
        profile = verify_company(make_company("new@example.com", verified=False).company_profile, admin)
        profile.refresh_from_db()
        self.assertTrue(profile.verified)
        self.assertEqual(profile.verified_by, admin)
        self.assertIsNotNone(profile.verified_at)


class CompanyProfileViewTest(TestCase):
    def setUp(self):
        self.user = make_company(complete=False)
        self.url = reverse("companies:profile")

    def test_requires_company_role(self):
        self.client.force_login(make_user("owner@example.com", "Entrepreneur"))
        self.assertEqual(self.client.get(self.url).status_code, 403)

    def test_partial_update_completes_profile(self):
        self.client.force_login(self.user)
        resp = self.client.post(self.url, data=json.dumps({
            "full_name": "Khalid Al-Harbi",
            "national_id": "1012345678",
            "birth_date": "1985-05-01",
            "address": "Olaya Street, Riyadh",
            "commercial_registry": "1010101010",
        }), content_type="application/json")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["missing_fields"], [])
        self.assertEqual(resp.json()["verification_status"], "Verified")
        self.assertEqual(resp.json()["phone"], "+966512345678")

    def test_invalid_date(self):
        self.client.force_login(self.user)
        resp = self.client.post(self.url, data=json.dumps({"birth_date": "yesterday"}), content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("birth_date", resp.json()["fields"])
