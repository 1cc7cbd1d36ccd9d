from django.contrib import admin

from payables.models import BillPaymentAllocation, Entry

from .inlines import EntryAllocationInline
from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `Entry` model
@admin.register(Entry)
class EntryAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "business",
        "account",
        "date",
        "payee",
        "amount_cents",
        "type",
        "entry_kind",
        "vendor",
        "deleted_at",
    )
    list_filter = ("business", "account", "type", "entry_kind", "status", "date")
    search_fields = ("payee", "memo", "vendor__name")
    inlines = [EntryAllocationInline]
    readonly_fields = ("deleted_at", "created_at", "updated_at")

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "account", "vendor", "category")

    def has_delete_permission(self, request, obj=None):
        # entries are soft deleted through the API; never hard delete one that pays bills
        if obj and BillPaymentAllocation.objects.active().filter(entry=obj).exists():
            return False
        return super().has_delete_permission(request, obj)


# Register `BillPaymentAllocation` model
@admin.register(BillPaymentAllocation)
class BillPaymentAllocationAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = (
        "id",
        "business",
        "entry",
        "bill",
        "applied_amount_cents",
        "is_active",
        "applied_at",
        "voided_at",
    )
    search_fields = ("bill__memo", "entry__memo")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "entry", "bill")
