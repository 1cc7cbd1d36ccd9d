from django.contrib import admin

from payables.models import BillPaymentAllocation

# ---------- Inline admin classes ----------


class AllocationInline(admin.TabularInline):
    """
    Allocation rows under a bill or an entry. Read-only: allocations
    change only through apply/unapply so sums and statuses stay in step.
    """

    model = BillPaymentAllocation
    fk_name = None  # set by subclasses
    extra = 0  # don't show empty rows
    fields = (
        "entry",
        "bill",
        "applied_amount_cents",
        "applied_at",
        "is_active",
        "voided_at",
        "void_reason",
    )
    readonly_fields = fields
    can_delete = False
    show_change_link = False
    ordering = ("-is_active", "id")

    def has_add_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("entry", "bill")


class BillAllocationInline(AllocationInline):
    fk_name = "bill"
    verbose_name_plural = "payments applied"


class EntryAllocationInline(AllocationInline):
    fk_name = "entry"
    verbose_name_plural = "bills paid"
