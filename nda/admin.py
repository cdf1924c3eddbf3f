from django.contrib import admin, messages
from django.utils.html import format_html

from . import exceptions
from .models import NdaAgreement
from .services import lifecycle
from .services.sadiq import SadiqService


@admin.register(NdaAgreement)
class NdaAgreementAdmin(admin.ModelAdmin):
    list_display = [
        "project",
        "company_user",
        "status",
        "envelope_status",
        "completion_percentage",
        "signed_at",
        "expires_at",
        "created_at",
        "has_document",
        "signing_link",
    ]
    list_filter = ["status", "created_at", "signed_at"]
    search_fields = ["project__title", "company_user__email", "sadiq_reference_number", "sadiq_envelope_id"]
    readonly_fields = [
        "project",
        "company_user",
        "status",
        "company_signature_info",
        "entrepreneur_info",
        "document",
        "signed_at",
        "expires_at",
        "cancelled_at",
        "cancelled_by",
        "cancel_reason",
        "sadiq_envelope_id",
        "sadiq_reference_number",
        "sadiq_document_id",
        "envelope_status",
        "completion_percentage",
        "created_at",
        "updated_at",
    ]
    actions = ["force_cancel"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        """Agreements are kept as the legal record."""
        return False

    def has_document(self, obj):
        return bool(obj.document)
    has_document.boolean = True
    has_document.short_description = "Document"

    def signing_link(self, obj):
        if obj.status == NdaAgreement.Status.INVITATION_SENT and obj.sadiq_envelope_id:
            return format_html('<a href="{}" target="_blank">Open in Sadiq</a>', SadiqService().build_signing_url(obj.sadiq_envelope_id))
        return ""
    signing_link.short_description = "Signing"

    @admin.action(description="Force cancel selected agreements")
    def force_cancel(self, request, queryset):
        cancelled = 0
        for agreement in queryset.select_related("project", "project__owner", "company_user"):
            try:
                lifecycle.cancel_agreement(agreement, request.user, reason="Cancelled by administrator")
            except exceptions.NdaError as e:
                self.message_user(request, f"{agreement}: {e.message}", level=messages.WARNING)
                continue
            cancelled += 1
        self.message_user(request, f"{cancelled} agreement(s) cancelled.")
