from unittest import mock

from django.core import mail
from django.test import TestCase, override_settings
from django.urls import reverse

from tests.helpers import make_user

from .models import Notification
from .services import AzureEmailService, NotificationEvent, emit


def event_for(user, **overrides):
    fields = {
        "type": "nda_request",
        "user": user,
        "title": "NDA requested",
        "content": "A company wants to view your project.",
        "action_url": "/nda/agreements/1/",
        "metadata": {"project_id": 1, "agreement_id": 1},
    }
    fields.update(overrides)
    return NotificationEvent(**fields)


class EmitTests(TestCase):
    def setUp(self):
        self.user = make_user("owner@example.com")

    @override_settings(NDA_EMAIL_NOTIFICATIONS=False)
    def test_stores_notification_without_email(self):
        notification = emit(event_for(self.user))

        self.assertEqual(notification.user, self.user)
        self.assertEqual(notification.metadata, {"project_id": 1, "agreement_id": 1})
        self.assertFalse(notification.is_read)
        self.assertEqual(len(mail.outbox), 0)

    @override_settings(
        NDA_EMAIL_NOTIFICATIONS=True,
        AZURE_COMMUNICATION_CONNECTION_STRING=None,
        EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
        SITE_URL="https://linktech.test",
    )
    def test_falls_back_to_django_mail(self):
        emit(event_for(self.user))

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["owner@example.com"])
        self.assertIn("https://linktech.test/nda/agreements/1/", mail.outbox[0].alternatives[0][0])

    @override_settings(NDA_EMAIL_NOTIFICATIONS=True)
    def test_delivery_failure_does_not_reach_caller(self):
        email_service = mock.Mock(spec=AzureEmailService)
        email_service.send_email.side_effect = RuntimeError("smtp down")

        with self.assertLogs("notifications.services", level="ERROR"):
            notification = emit(event_for(self.user), email_service=email_service)

        self.assertIsNotNone(notification)
        self.assertEqual(Notification.objects.filter(user=self.user).count(), 1)


class NotificationViewTests(TestCase):
    def setUp(self):
        self.user = make_user("owner@example.com")
        self.other = make_user("other@example.com")
        self.notification = emit(event_for(self.user))
        emit(event_for(self.other))

    def test_list_shows_only_own_notifications(self):
        self.client.force_login(self.user)
        body = self.client.get(reverse("notifications:list")).json()
        self.assertEqual(body["unread_count"], 1)
        self.assertEqual([n["id"] for n in body["results"]], [self.notification.pk])

    def test_mark_read(self):
        self.client.force_login(self.user)
        resp = self.client.post(reverse("notifications:mark_read", args=[self.notification.pk]))
        self.assertTrue(resp.json()["is_read"])
        self.assertEqual(self.client.get(reverse("notifications:list") + "?unread=1").json()["results"], [])

    def test_cannot_touch_other_users_notifications(self):
        self.client.force_login(self.other)
        resp = self.client.post(reverse("notifications:mark_read", args=[self.notification.pk]))
        self.assertEqual(resp.status_code, 404)
