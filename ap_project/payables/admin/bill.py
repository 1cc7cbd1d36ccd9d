from django.contrib import admin

from payables.models import Bill, BillPaymentAllocation, Vendor

from .actions import recompute_statuses, void_selected_bills
from .inlines import BillAllocationInline
from .mixins import TenantAdminMixin


# Register `Bill` model
@admin.register(Bill)
class BillAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "business",
        "vendor",
        "invoice_date",
        "due_date",
        "amount_cents",
        "status",
        "memo",
    )
    list_filter = ("business", "status", "invoice_date")
    search_fields = ("memo", "vendor__name")
    actions = [void_selected_bills, recompute_statuses]
    inlines = [BillAllocationInline]
    # status is derived; void metadata is written by the void action only
    readonly_fields = (
        "status",
        "voided_at",
        "voided_by",
        "void_reason",
        "created_by",
        "created_at",
        "updated_at",
    )

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "vendor")

    """ Enforce immutability at admin level """

    def get_readonly_fields(self, request, obj=None):
        # A void bill, or one with payments applied, is frozen here;
        # the bill service handles the memo/due date edits allowed on it
        if obj and (obj.is_void or self._has_payments(obj)):
            return [f.name for f in self.model._meta.fields]
        return super().get_readonly_fields(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj and self._has_payments(obj):
            return False  # removes "Delete" option from admin for that bill
        return super().has_delete_permission(request, obj)

    def _has_payments(self, obj):
        return BillPaymentAllocation.objects.active().filter(bill=obj).exists()


# Register `Vendor` model
@admin.register(Vendor)
class VendorAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "name", "created_at")
    search_fields = ("name",)
    list_filter = ("business",)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business")
