from datetime import date

from django.test import SimpleTestCase

from nda import exceptions
from nda.validators import (
    COMPANY_REQUIRED_FIELDS,
    ENTREPRENEUR_REQUIRED_FIELDS,
    is_personal_info_complete,
    missing_fields,
    normalize_email,
    normalize_phone,
    require_complete,
    validate_national_id,
)

from .helpers import ENTREPRENEUR_INFO


class CompletionGateTests(SimpleTestCase):
    def test_complete_entrepreneur_info(self):
        self.assertTrue(is_personal_info_complete(ENTREPRENEUR_INFO, ENTREPRENEUR_REQUIRED_FIELDS))

    def test_blank_whitespace_and_none_are_missing(self):
        values = dict(ENTREPRENEUR_INFO, full_name="   ", address=None)
        del values["email"]
        self.assertEqual(missing_fields(values, ENTREPRENEUR_REQUIRED_FIELDS), ["full_name", "email", "address"])
        self.assertFalse(is_personal_info_complete(values, ENTREPRENEUR_REQUIRED_FIELDS))

    def test_dates_count_as_present(self):
        values = dict(ENTREPRENEUR_INFO, birth_date=date(1990, 4, 12))
        self.assertEqual(missing_fields(values, ENTREPRENEUR_REQUIRED_FIELDS), [])

    def test_company_needs_commercial_registry(self):
        values = {name: "x" for name in ENTREPRENEUR_REQUIRED_FIELDS}
        self.assertIn("commercial_registry", missing_fields(values, COMPANY_REQUIRED_FIELDS))

    def test_require_complete_names_each_field(self):
        with self.assertRaises(exceptions.ValidationError) as ctx:
            require_complete({"full_name": "Sara"}, ENTREPRENEUR_REQUIRED_FIELDS)
        self.assertEqual(ctx.exception.missing_fields, sorted(set(ENTREPRENEUR_REQUIRED_FIELDS) - {"full_name"}))


class FormatTests(SimpleTestCase):
    def test_phone_forms_accepted(self):
        cases = {
            "+966512345678": "+966512345678",
            "+966 51 234 5678": "+966512345678",
            "00966512345678": "+966512345678",
            "0512345678": "+966512345678",
            "0112345678": "+966112345678",
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(normalize_phone(raw), expected)

    def test_phone_forms_rejected(self):
        for raw in ("", "12345", "+14155550100", "0712345678", "+9665123"):
            with self.subTest(raw=raw):
                with self.assertRaises(exceptions.ValidationError) as ctx:
                    normalize_phone(raw)
                self.assertIn("phone", ctx.exception.fields)

    def test_email(self):
        self.assertEqual(normalize_email(" sara@example.com "), "sara@example.com")
        with self.assertRaises(exceptions.ValidationError):
            normalize_email("sara@")

    def test_national_id(self):
        self.assertEqual(validate_national_id("2012345678"), "2012345678")
        for raw in ("012345678", "3012345678", "10123456789", "abc"):
            with self.subTest(raw=raw):
                with self.assertRaises(exceptions.ValidationError):
                    validate_national_id(raw)
