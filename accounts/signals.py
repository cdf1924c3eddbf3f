from django.db.models.signals import post_migrate
from django.dispatch import receiver
from django.contrib.auth.models import Group

from .models import DEFAULT_ROLES


@receiver(post_migrate)
def create_default_groups(sender, **kwargs):
    """Create default role groups if they don't exist."""
    for group_name in DEFAULT_ROLES:
        Group.objects.get_or_create(name=group_name)
