from django.contrib import admin

from payables.models import ClosedPeriod
from payables.services import close_period, reopen_period

from .mixins import TenantAdminMixin


# Register `ClosedPeriod` model
@admin.register(ClosedPeriod)
class ClosedPeriodAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "month", "closed_by", "closed_at")
    list_filter = ("business",)
    search_fields = ("month",)
    fields = ("business", "month")

    def has_change_permission(self, request, obj=None):
        # a closed month is either there or not; no edits
        return False

    # Route through the period service so closing/reopening is logged
    def save_model(self, request, obj, form, change):
        period = close_period(obj.business, obj.month, user=request.user)
        obj.pk = period.pk

    def delete_model(self, request, obj):
        reopen_period(obj.business, obj.month, user=request.user)

    def delete_queryset(self, request, queryset):
        for period in queryset.select_related("business"):
            reopen_period(period.business, period.month, user=request.user)
