from django.conf import settings
from django.db import models
from django.utils import timezone


class Notification(models.Model):
    """In-app notification shown in the user's notification bell."""
    TYPE_CHOICES = [
        ('nda_request', 'NDA Requested'),
        ('nda_completed', 'NDA Invitation Sent'),
        ('nda_signed', 'NDA Signed'),
        ('nda_cancelled', 'NDA Cancelled'),
        ('nda_expired', 'NDA Expired'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    type = models.CharField(max_length=32, choices=TYPE_CHOICES, db_index=True)
    title = models.CharField(max_length=255)
    content = models.TextField()
    action_url = models.CharField(max_length=500, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notif_user_unread_idx'),
        ]

    def __str__(self):
        return f"{self.type} → {self.user.email} ({self.created_at.strftime('%Y-%m-%d %H:%M')})"

    def as_dict(self):
        return {
            'id': self.pk,
            'type': self.type,
            'title': self.title,
            'content': self.content,
            'action_url': self.action_url,
            'metadata': self.metadata,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat(),
        }
