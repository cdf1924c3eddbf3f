from dataclasses import dataclass, field
from typing import Any, Dict

from django.conf import settings
from django.core.mail import send_mail
from django.utils.html import escape
from azure.communication.email import EmailClient
import logging

from .models import Notification

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    """Structured lifecycle event handed to the notification feature."""
    type: str
    user: Any
    title: str
    content: str
    action_url: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


class AzureEmailService:
    def __init__(self):
        self.connection_string = getattr(settings, 'AZURE_COMMUNICATION_CONNECTION_STRING', None)
        self.sender_address = getattr(settings, 'AZURE_COMMUNICATION_SENDER_ADDRESS', None)
        self.client = None

        if not self.connection_string or not self.sender_address:
            logger.info("Azure Communication Services not configured; using Django email backend")
            return

        try:
            self.client = EmailClient.from_connection_string(self.connection_string)
            logger.info("Azure Email Client initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize Azure Email Client: {str(e)}")
            self.client = None

    def send_email(self, to_email, subject, html_content):
        """Send an email using Azure Communication Service with fallback to Django's email backend."""
        if self.client:
            try:
                message = {
                    "senderAddress": self.sender_address,
                    "recipients": {
                        "to": [{"address": to_email}]
                    },
                    "content": {
                        "subject": subject,
                        "html": html_content
                    }
                }
                poller = self.client.begin_send(message)
                poller.result()
                logger.info(f"Email sent successfully via Azure to {to_email}")
                return True
            except Exception as e:
                logger.error(f"Azure email sending failed for {to_email}: {str(e)}")
                logger.info("Falling back to Django email backend")

        return send_mail(
            subject=subject,
            message='',
            html_message=html_content,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[to_email],
            fail_silently=False
        )


def _render_email(event: NotificationEvent) -> str:
    link = ""
    if event.action_url:
        url = f"{getattr(settings, 'SITE_URL', '').rstrip('/')}{event.action_url}"
        link = f'<p><a href="{escape(url)}">{escape(url)}</a></p>'
    return f'<div dir="rtl"><h3>{escape(event.title)}</h3><p>{escape(event.content)}</p>{link}</div>'


def emit(event: NotificationEvent, email_service=None):
    """
    Record an in-app notification and optionally mail it.

    Fire-and-forget: delivery problems are logged and never reach the caller,
    whose state transition has already been committed.
    """
    try:
        notification = Notification.objects.create(
            user=event.user,
            type=event.type,
            title=str(event.title),
            content=str(event.content),
            action_url=event.action_url,
            metadata=event.metadata,
        )
    except Exception:
        logger.exception("Failed to store %s notification for user %s", event.type, getattr(event.user, "pk", None))
        return None

    if getattr(settings, 'NDA_EMAIL_NOTIFICATIONS', False) and event.user.email:
        try:
            (email_service or AzureEmailService()).send_email(event.user.email, str(event.title), _render_email(event))
        except Exception:
            logger.exception("Failed to email %s notification to %s", event.type, event.user.email)
    return notification
