from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from accounts.mixins import api_login_required

from .models import Notification


@api_login_required
@require_GET
def notification_list(request):
    """Latest notifications for the signed-in user."""
    notifications = Notification.objects.filter(user=request.user)
    if request.GET.get('unread') == '1':
        notifications = notifications.filter(is_read=False)
    return JsonResponse({
        'unread_count': Notification.objects.filter(user=request.user, is_read=False).count(),
        'results': [n.as_dict() for n in notifications[:50]],
    })


@api_login_required
@require_POST
def notification_mark_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return JsonResponse(notification.as_dict())
