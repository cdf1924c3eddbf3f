from django.contrib import admin

from nda.models import NdaAgreement

from .models import Project


class NdaAgreementInline(admin.TabularInline):
    model = NdaAgreement
    extra = 0
    can_delete = False
    fields = ["company_user", "status", "sadiq_reference_number", "signed_at", "created_at"]
    readonly_fields = fields
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ["title", "owner", "requires_nda", "status", "nda_agreement_count", "created_at"]
    list_filter = ["requires_nda", "status", "created_at"]
    search_fields = ["title", "owner__email"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [NdaAgreementInline]

    def nda_agreement_count(self, obj):
        return obj.nda_agreements.count()
    nda_agreement_count.short_description = "NDA Agreements"
