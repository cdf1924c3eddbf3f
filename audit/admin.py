from django.contrib import admin
from .models import AgreementStatusChange


@admin.register(AgreementStatusChange)
class AgreementStatusChangeAdmin(admin.ModelAdmin):
    """Read-only view of NDA status transitions."""
    list_display = ['agreement', 'from_status', 'to_status', 'source', 'actor', 'created_at']
    list_filter = ['source', 'to_status', 'created_at']
    search_fields = ['agreement__project__title', 'actor__email', 'note']
    readonly_fields = ['agreement', 'from_status', 'to_status', 'actor', 'source', 'note', 'created_at']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        """Prevent manual creation of audit entries."""
        return False

    def has_delete_permission(self, request, obj=None):
        """Prevent deletion of audit logs."""
        return False
