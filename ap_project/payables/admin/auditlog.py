from django.contrib import admin

from payables.models import ActivityLog

from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `ActivityLog` model
@admin.register(ActivityLog)
class ActivityLogAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = (
        "id",
        "business",
        "actor",
        "event_type",
        "scope_account",
        "created_at",
    )
    search_fields = ("event_type", "actor__username")

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "actor", "scope_account")
