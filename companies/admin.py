from django.contrib import admin

from .models import CompanyProfile
from .services import verify_company


@admin.register(CompanyProfile)
class CompanyProfileAdmin(admin.ModelAdmin):
    list_display = ["company_name", "user", "phone", "verified", "profile_complete", "verified_at"]
    search_fields = ["company_name", "user__email", "commercial_registry"]
    list_filter = ["verified"]
    readonly_fields = ["verified_by", "verified_at", "created_at", "updated_at"]
    actions = ["mark_verified"]

    def profile_complete(self, obj):
        return obj.personal_info_complete
    profile_complete.boolean = True
    profile_complete.short_description = "Profile Complete"

    @admin.action(description="Verify selected companies")
    def mark_verified(self, request, queryset):
        count = 0
        for profile in queryset.filter(verified=False):
            verify_company(profile, request.user)
            count += 1
        self.message_user(request, f"{count} company profile(s) verified.")
