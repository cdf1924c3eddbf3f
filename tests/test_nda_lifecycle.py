from datetime import timedelta
from unittest import mock

from dateutil.relativedelta import relativedelta
from django.test import TestCase, override_settings
from django.utils import timezone

from audit.models import AgreementStatusChange
from nda import exceptions
from nda.models import NdaAgreement
from nda.services import lifecycle
from nda.services.disclosure import can_view_full_project
from nda.services.sadiq import EnvelopeRef, EnvelopeStatus, SadiqService
from notifications.models import Notification

from .helpers import (
    ENTREPRENEUR_INFO,
    TEST_STORAGES,
    make_admin,
    make_company,
    make_entrepreneur,
    make_project,
    make_user,
)

Status = NdaAgreement.Status


def status_bridge(status, completion=None):
    bridge = mock.Mock(spec=SadiqService)
    bridge.get_envelope_status.return_value = EnvelopeStatus(status, completion)
    return bridge


@override_settings(SADIQ_BASE_URL="", STORAGES=TEST_STORAGES, NDA_VALIDITY_MONTHS=None)
class LifecycleTestCase(TestCase):
    def setUp(self):
        self.owner = make_entrepreneur()
        self.company = make_company()
        self.project = make_project(self.owner)

    def initiate(self, company=None):
        agreement, _ = lifecycle.initiate_agreement(self.project, company or self.company)
        return agreement

    def send_invitation(self, agreement=None):
        agreement = agreement or self.initiate()
        return lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO))

    def sign(self, agreement=None):
        agreement = agreement or self.send_invitation()
        return lifecycle.ingest_provider_status(agreement, "Completed", 100)


class InitiateAgreementTests(LifecycleTestCase):
    def test_creates_awaiting_agreement_with_company_snapshot(self):
        agreement, created = lifecycle.initiate_agreement(self.project, self.company)

        self.assertTrue(created)
        self.assertEqual(agreement.status, Status.AWAITING_ENTREPRENEUR)
        info = agreement.company_signature_info
        self.assertEqual(info["name"], "Khalid Al-Harbi")
        self.assertEqual(info["email"], "company@example.com")
        self.assertEqual(info["phone"], "+966512345678")
        self.assertEqual(info["company_name"], "Code Falcons")
        self.assertEqual(info["company_user_id"], self.company.pk)
        self.assertEqual(agreement.entrepreneur_info, {})
        self.assertEqual(agreement.sadiq_envelope_id, "")

    def test_records_audit_row_and_notifies_owner(self):
        agreement = self.initiate()

        change = AgreementStatusChange.objects.get(agreement=agreement)
        self.assertEqual(change.from_status, "")
        self.assertEqual(change.to_status, Status.AWAITING_ENTREPRENEUR)
        self.assertEqual(change.actor, self.company)

        notification = Notification.objects.get(user=self.owner)
        self.assertEqual(notification.type, "nda_request")
        self.assertEqual(notification.metadata, {"project_id": self.project.pk, "agreement_id": agreement.pk})

    def test_second_call_returns_existing_agreement(self):
        first, created_first = lifecycle.initiate_agreement(self.project, self.company)
        second, created_second = lifecycle.initiate_agreement(self.project, self.company)

        self.assertTrue(created_first)
        self.assertFalse(created_second)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(NdaAgreement.objects.filter(project=self.project, company_user=self.company).count(), 1)
        self.assertEqual(Notification.objects.filter(user=self.owner, type="nda_request").count(), 1)

    def test_concurrent_insert_resolves_to_existing_row(self):
        existing = self.initiate()
        real_lookup = lifecycle.get_live_agreement
        calls = []

        def miss_first(project, company_user):
            # The racing request had not committed when this one looked
            calls.append(project.pk)
            return None if len(calls) == 1 else real_lookup(project, company_user)

        with mock.patch.object(lifecycle, "get_live_agreement", side_effect=miss_first):
            agreement, created = lifecycle.initiate_agreement(self.project, self.company)

        self.assertFalse(created)
        self.assertEqual(agreement.pk, existing.pk)
        self.assertEqual(NdaAgreement.objects.count(), 1)

    def test_other_companies_get_their_own_agreement(self):
        other = make_company("other@example.com")
        first = self.initiate()
        second = self.initiate(other)

        self.assertNotEqual(first.pk, second.pk)
        self.assertEqual(self.project.nda_agreements.count(), 2)

    def test_project_without_nda_is_rejected(self):
        project = make_project(self.owner, requires_nda=False)
        with self.assertRaises(exceptions.PreconditionError):
            lifecycle.initiate_agreement(project, self.company)
        self.assertFalse(NdaAgreement.objects.exists())

    def test_company_without_profile_is_not_found(self):
        user = make_user("noprofile@example.com", "Company")
        with self.assertRaises(exceptions.NotFoundError):
            lifecycle.initiate_agreement(self.project, user)

    def test_incomplete_company_profile_lists_missing_fields(self):
        company = make_company("incomplete@example.com", complete=False)
        with self.assertRaises(exceptions.PreconditionError) as ctx:
            lifecycle.initiate_agreement(self.project, company)
        self.assertIn("national_id", ctx.exception.fields)
        self.assertIn("commercial_registry", ctx.exception.fields)
        self.assertFalse(NdaAgreement.objects.exists())

    def test_unverified_company_is_rejected(self):
        company = make_company("unverified@example.com", verified=False)
        with self.assertRaises(exceptions.PreconditionError) as ctx:
            lifecycle.initiate_agreement(self.project, company)
        self.assertIn("verified", ctx.exception.fields)

    def test_owner_cannot_request_nda_on_own_project(self):
        with self.assertRaises(exceptions.PreconditionError):
            lifecycle.initiate_agreement(self.project, self.owner)


class CompleteEntrepreneurInfoTests(LifecycleTestCase):
    def test_sends_invitation_and_stores_provider_ids(self):
        before = timezone.now()
        agreement = self.send_invitation()

        self.assertEqual(agreement.status, Status.INVITATION_SENT)
        self.assertTrue(agreement.sadiq_envelope_id.startswith("dev-envelope-"))
        self.assertTrue(agreement.sadiq_reference_number.startswith("dev-ref-"))
        self.assertTrue(agreement.sadiq_document_id.startswith("dev-document-"))
        self.assertTrue(agreement.document.name.endswith(".pdf"))
        self.assertGreaterEqual(agreement.expires_at, before + timedelta(days=30))
        self.assertIsNone(agreement.signed_at)

        info = agreement.entrepreneur_info
        self.assertEqual(info["phone"], "+966551234567")
        self.assertEqual(info["birth_date"], "1990-04-12")
        self.assertEqual(info["entrepreneur_user_id"], self.owner.pk)

    def test_notifies_company_and_owner(self):
        agreement = self.send_invitation()
        recipients = set(
            Notification.objects.filter(type="nda_completed", metadata__agreement_id=agreement.pk).values_list("user_id", flat=True)
        )
        self.assertEqual(recipients, {self.company.pk, self.owner.pk})

    def test_only_project_owner_may_complete(self):
        agreement = self.initiate()
        stranger = make_entrepreneur("stranger@example.com")
        with self.assertRaises(exceptions.PermissionDeniedError):
            lifecycle.complete_entrepreneur_info(agreement, stranger, dict(ENTREPRENEUR_INFO))

    def test_missing_fields_leave_agreement_untouched(self):
        agreement = self.initiate()
        info = dict(ENTREPRENEUR_INFO, national_id="", address="  ")

        with self.assertRaises(exceptions.ValidationError) as ctx:
            lifecycle.complete_entrepreneur_info(agreement, self.owner, info)

        self.assertEqual(ctx.exception.missing_fields, ["address", "national_id"])
        agreement.refresh_from_db()
        self.assertEqual(agreement.status, Status.AWAITING_ENTREPRENEUR)
        self.assertEqual(agreement.entrepreneur_info, {})

    def test_invalid_phone_is_a_validation_error(self):
        agreement = self.initiate()
        with self.assertRaises(exceptions.ValidationError) as ctx:
            lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO, phone="12345"))
        self.assertIn("phone", ctx.exception.fields)

    def test_provider_failure_keeps_state_then_retry_succeeds(self):
        agreement = self.initiate()
        failing = mock.Mock(spec=SadiqService)
        failing.invitation_valid_days = 30
        failing.create_envelope.side_effect = exceptions.ProviderUnavailable("timeout")

        with self.assertRaises(exceptions.ProviderUnavailable) as ctx:
            lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO), bridge=failing)
        self.assertTrue(ctx.exception.retryable)

        agreement.refresh_from_db()
        self.assertEqual(agreement.status, Status.AWAITING_ENTREPRENEUR)
        self.assertEqual(agreement.sadiq_envelope_id, "")
        self.assertFalse(agreement.document)
        # The owner's data survives so the retry needs nothing new
        self.assertEqual(agreement.entrepreneur_info["full_name"], "Sara Al-Qahtani")
        self.assertTrue(agreement.is_ready_for_signature)
        self.assertFalse(AgreementStatusChange.objects.filter(to_status=Status.INVITATION_SENT).exists())

        working = mock.Mock(spec=SadiqService)
        working.invitation_valid_days = 30
        working.create_envelope.return_value = EnvelopeRef("env-1", "ref-1", "doc-1")
        agreement = lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO), bridge=working)

        self.assertEqual(agreement.status, Status.INVITATION_SENT)
        self.assertEqual(agreement.sadiq_envelope_id, "env-1")
        self.assertEqual(agreement.sadiq_reference_number, "ref-1")

    def test_provider_data_rejection_surfaces_field(self):
        agreement = self.initiate()
        bridge = mock.Mock(spec=SadiqService)
        bridge.create_envelope.side_effect = exceptions.ValidationError("bad phone", fields={"phone": "Invalid mobile"})

        with self.assertRaises(exceptions.ValidationError):
            lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO), bridge=bridge)
        agreement.refresh_from_db()
        self.assertEqual(agreement.status, Status.AWAITING_ENTREPRENEUR)

    def test_overlapping_submission_does_not_create_second_envelope(self):
        agreement = self.initiate()
        bridge = mock.Mock(spec=SadiqService)
        bridge.invitation_valid_days = 30
        second_attempt = {}

        def create_envelope(target, document, file_name):
            # The owner submits again while the first request waits on Sadiq
            duplicate = NdaAgreement.objects.get(pk=agreement.pk)
            with self.assertRaises(exceptions.ConflictError) as ctx:
                lifecycle.complete_entrepreneur_info(duplicate, self.owner, dict(ENTREPRENEUR_INFO), bridge=bridge)
            second_attempt["error"] = ctx.exception
            return EnvelopeRef("env-1", "ref-1", "doc-1")

        bridge.create_envelope.side_effect = create_envelope
        agreement = lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO), bridge=bridge)

        self.assertEqual(bridge.create_envelope.call_count, 1)
        self.assertEqual(second_attempt["error"].http_status, 409)
        self.assertEqual(agreement.status, Status.INVITATION_SENT)
        self.assertEqual(agreement.sadiq_reference_number, "ref-1")
        self.assertIsNone(agreement.envelope_requested_at)

    def test_provider_failure_releases_submission_claim(self):
        agreement = self.initiate()
        bridge = mock.Mock(spec=SadiqService)
        bridge.create_envelope.side_effect = exceptions.ProviderUnavailable("timeout")

        with self.assertRaises(exceptions.ProviderUnavailable):
            lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO), bridge=bridge)
        agreement.refresh_from_db()
        self.assertIsNone(agreement.envelope_requested_at)

    def test_abandoned_claim_can_be_retaken(self):
        agreement = self.initiate()
        NdaAgreement.objects.filter(pk=agreement.pk).update(envelope_requested_at=timezone.now() - timedelta(hours=1))
        agreement.refresh_from_db()

        agreement = lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO))
        self.assertEqual(agreement.status, Status.INVITATION_SENT)

    def test_cannot_complete_twice(self):
        agreement = self.send_invitation()
        with self.assertRaises(exceptions.PreconditionError):
            lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO))

    def test_agreement_cancelled_meanwhile_is_not_completed(self):
        agreement = self.initiate()
        NdaAgreement.objects.filter(pk=agreement.pk).update(status=Status.CANCELLED)

        with self.assertRaises(exceptions.PreconditionError):
            lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO))
        agreement.refresh_from_db()
        self.assertEqual(agreement.status, Status.CANCELLED)
        self.assertEqual(agreement.sadiq_envelope_id, "")


class SignatureStatusTests(LifecycleTestCase):
    def test_in_progress_keeps_invitation_sent(self):
        agreement = self.send_invitation()
        agreement = lifecycle.refresh_signature_status(agreement, bridge=status_bridge("In-progress", 50))

        self.assertEqual(agreement.status, Status.INVITATION_SENT)
        self.assertEqual(agreement.envelope_status, "In-progress")
        self.assertEqual(agreement.completion_percentage, 50)

    def test_completed_marks_signed_and_notifies(self):
        agreement = self.send_invitation()
        agreement = lifecycle.refresh_signature_status(agreement, bridge=status_bridge("Completed", 100))

        self.assertEqual(agreement.status, Status.SIGNED)
        self.assertIsNotNone(agreement.signed_at)
        self.assertIsNone(agreement.expires_at)
        self.assertEqual(agreement.completion_percentage, 100)
        self.assertEqual(Notification.objects.filter(type="nda_signed").count(), 2)
        self.assertTrue(
            AgreementStatusChange.objects.filter(agreement=agreement, to_status=Status.SIGNED, source="provider").exists()
        )

    def test_full_completion_with_unknown_label_counts_as_signed(self):
        agreement = self.send_invitation()
        agreement = lifecycle.ingest_provider_status(agreement, "Finalised", 100)
        self.assertEqual(agreement.status, Status.SIGNED)

    def test_signed_never_moves_backwards(self):
        agreement = self.sign()
        signed_at = agreement.signed_at
        bridge = status_bridge("In-progress", 10)

        agreement = lifecycle.refresh_signature_status(agreement, bridge=bridge)
        agreement = lifecycle.ingest_provider_status(agreement, "Rejected")

        self.assertEqual(agreement.status, Status.SIGNED)
        self.assertEqual(agreement.signed_at, signed_at)
        bridge.get_envelope_status.assert_not_called()

    @override_settings(NDA_VALIDITY_MONTHS=12)
    def test_validity_period_sets_expiry_after_signing(self):
        agreement = self.sign()
        self.assertEqual(agreement.expires_at, agreement.signed_at + relativedelta(months=12))

    def test_provider_rejection_cancels(self):
        agreement = self.send_invitation()
        agreement = lifecycle.ingest_provider_status(agreement, "Declined")
        self.assertEqual(agreement.status, Status.CANCELLED)

    def test_lost_race_does_not_overwrite_winner(self):
        agreement = self.send_invitation()
        NdaAgreement.objects.filter(pk=agreement.pk).update(status=Status.CANCELLED)

        # In-memory copy still says invitation_sent
        agreement.status = Status.INVITATION_SENT
        agreement = lifecycle.ingest_provider_status(agreement, "Completed", 100)

        self.assertEqual(agreement.status, Status.CANCELLED)
        self.assertIsNone(agreement.signed_at)
        self.assertFalse(Notification.objects.filter(type="nda_signed").exists())

    def test_unknown_status_only_records_raw_value(self):
        agreement = self.send_invitation()
        agreement = lifecycle.ingest_provider_status(agreement, "Archived")
        self.assertEqual(agreement.status, Status.INVITATION_SENT)
        self.assertEqual(agreement.envelope_status, "Archived")

    def test_provider_outage_on_refresh_propagates(self):
        agreement = self.send_invitation()
        bridge = mock.Mock(spec=SadiqService)
        bridge.get_envelope_status.side_effect = exceptions.ProviderUnavailable("down")

        with self.assertRaises(exceptions.ProviderUnavailable):
            lifecycle.refresh_signature_status(agreement, bridge=bridge)
        agreement.refresh_from_db()
        self.assertEqual(agreement.status, Status.INVITATION_SENT)


class CancelAgreementTests(LifecycleTestCase):
    def test_company_cancels_its_own_agreement(self):
        agreement = self.initiate()
        agreement = lifecycle.cancel_agreement(agreement, self.company, "No longer interested")

        self.assertEqual(agreement.status, Status.CANCELLED)
        self.assertEqual(agreement.cancelled_by, self.company)
        self.assertEqual(agreement.cancel_reason, "No longer interested")
        self.assertIsNotNone(agreement.cancelled_at)
        change = agreement.status_changes.get(to_status=Status.CANCELLED)
        self.assertEqual(change.source, "user")
        # The actor is not notified about their own cancellation
        self.assertEqual(
            list(Notification.objects.filter(type="nda_cancelled").values_list("user_id", flat=True)),
            [self.owner.pk],
        )

    def test_admin_cancels_sent_invitation(self):
        admin = make_admin()
        agreement = self.send_invitation()
        agreement = lifecycle.cancel_agreement(agreement, admin)

        self.assertEqual(agreement.status, Status.CANCELLED)
        self.assertEqual(agreement.status_changes.get(to_status=Status.CANCELLED).source, "admin")

    def test_cancel_is_idempotent(self):
        agreement = lifecycle.cancel_agreement(self.initiate(), self.company)
        agreement = lifecycle.cancel_agreement(agreement, self.company)
        self.assertEqual(agreement.status_changes.filter(to_status=Status.CANCELLED).count(), 1)

    def test_owner_and_strangers_cannot_cancel(self):
        agreement = self.initiate()
        for user in (self.owner, make_company("rival@example.com")):
            with self.subTest(user=user.email):
                with self.assertRaises(exceptions.PermissionDeniedError):
                    lifecycle.cancel_agreement(agreement, user)

    def test_admin_revokes_signed_agreement(self):
        agreement = self.sign()
        self.assertTrue(can_view_full_project(self.company, self.project))

        agreement = lifecycle.cancel_agreement(agreement, make_admin(), "revoked")

        self.assertEqual(agreement.status, Status.CANCELLED)
        self.assertIsNone(agreement.signed_at)
        self.assertEqual(agreement.cancel_reason, "revoked")
        change = agreement.status_changes.get(to_status=Status.CANCELLED)
        self.assertEqual((change.from_status, change.source), (Status.SIGNED, "admin"))
        self.assertFalse(can_view_full_project(self.company, self.project))

        # A late provider report cannot bring the signature back
        agreement = lifecycle.ingest_provider_status(agreement, "Completed", 100)
        self.assertEqual(agreement.status, Status.CANCELLED)

    def test_company_withdraws_from_signed_agreement(self):
        agreement = lifecycle.cancel_agreement(self.sign(), self.company)
        self.assertEqual(agreement.status, Status.CANCELLED)
        self.assertFalse(can_view_full_project(self.company, self.project))

    def test_cancelled_agreement_absorbs_everything(self):
        agreement = lifecycle.cancel_agreement(self.initiate(), self.company)

        with self.assertRaises(exceptions.PreconditionError):
            lifecycle.complete_entrepreneur_info(agreement, self.owner, dict(ENTREPRENEUR_INFO))
        agreement = lifecycle.ingest_provider_status(agreement, "Completed", 100)
        agreement = lifecycle.refresh_signature_status(agreement, bridge=status_bridge("Completed", 100))

        self.assertEqual(agreement.status, Status.CANCELLED)

    def test_new_agreement_allowed_after_cancellation(self):
        cancelled = lifecycle.cancel_agreement(self.initiate(), self.company)
        agreement, created = lifecycle.initiate_agreement(self.project, self.company)

        self.assertTrue(created)
        self.assertNotEqual(agreement.pk, cancelled.pk)
        self.assertEqual(NdaAgreement.objects.filter(project=self.project, company_user=self.company).count(), 2)


class ExpiryTests(LifecycleTestCase):
    def test_overdue_invitations_expire_in_sweep(self):
        agreement = self.send_invitation()
        fresh = self.send_invitation(self.initiate(make_company("fresh@example.com")))
        NdaAgreement.objects.filter(pk=agreement.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        self.assertEqual(lifecycle.expire_due_agreements(), 1)

        agreement.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(agreement.status, Status.EXPIRED)
        self.assertEqual(fresh.status, Status.INVITATION_SENT)
        self.assertEqual(Notification.objects.filter(type="nda_expired").count(), 2)

    def test_refresh_expires_overdue_invitation_without_calling_provider(self):
        agreement = self.send_invitation()
        NdaAgreement.objects.filter(pk=agreement.pk).update(expires_at=timezone.now() - timedelta(days=1))
        agreement.refresh_from_db()
        bridge = status_bridge("In-progress")

        agreement = lifecycle.refresh_signature_status(agreement, bridge=bridge)

        self.assertEqual(agreement.status, Status.EXPIRED)
        bridge.get_envelope_status.assert_not_called()

    def test_signed_agreement_cannot_be_expired(self):
        agreement = self.sign()
        with self.assertRaises(exceptions.PreconditionError):
            lifecycle.expire_agreement(agreement)

    def test_admin_can_expire_awaiting_agreement(self):
        admin = make_admin()
        agreement = lifecycle.expire_agreement(self.initiate(), actor=admin, note="stale request")
        self.assertEqual(agreement.status, Status.EXPIRED)
        self.assertEqual(agreement.status_changes.get(to_status=Status.EXPIRED).source, "admin")


class EndToEndTests(LifecycleTestCase):
    def test_company_signs_and_second_company_is_unaffected(self):
        other = make_company("second@example.com")

        first = self.initiate()
        self.assertEqual(first.status, Status.AWAITING_ENTREPRENEUR)
        first = self.send_invitation(first)
        self.assertEqual(first.status, Status.INVITATION_SENT)
        first = self.sign(first)
        self.assertEqual(first.status, Status.SIGNED)

        second = self.initiate(other)
        self.assertEqual(second.status, Status.AWAITING_ENTREPRENEUR)
        first.refresh_from_db()
        self.assertEqual(first.status, Status.SIGNED)

        history = list(first.status_changes.order_by("created_at", "pk").values_list("to_status", flat=True))
        self.assertEqual(history, [Status.AWAITING_ENTREPRENEUR, Status.INVITATION_SENT, Status.SIGNED])
