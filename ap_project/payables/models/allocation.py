from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import AllocationManager
from .account import Account
from .bill import Bill
from .entitymembership import Business
from .entry import Entry


class BillPaymentAllocation(
    models.Model
):  # Bridge table recording how much of a payment entry settles a bill
    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    account = models.ForeignKey(Account, on_delete=models.CASCADE)
    entry = models.ForeignKey(
        Entry, on_delete=models.CASCADE, related_name="allocations")
    bill = models.ForeignKey(
        Bill, on_delete=models.CASCADE, related_name="allocations")
    # Supports partial payments; always > 0
    applied_amount_cents = models.BigIntegerField()
    applied_at = models.DateTimeField(default=timezone.now)

    # Reversal flips this flag and stamps void metadata; rows are never deleted
    is_active = models.BooleanField(default=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    void_reason = models.TextField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping; .active() hides reversed rows
    objects = AllocationManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "bill", "is_active"], name="alloc_bus_bill_active_idx"),
            models.Index(fields=["business", "entry", "is_active"], name="alloc_bus_entry_active_idx"),
            models.Index(fields=["business", "account", "entry"], name="alloc_bus_account_entry_idx"),
        ]

        constraints = [
            # At most one ACTIVE allocation per (entry, bill);
            # reversed rows pile up as history
            models.UniqueConstraint(
                fields=["entry", "bill"],
                condition=models.Q(is_active=True),
                name="uq_active_allocation_entry_bill",
            ),
            models.CheckConstraint(
                condition=models.Q(applied_amount_cents__gt=0),
                name="allocation_amount_positive",
            ),
        ]

    def __str__(self):
        state = "active" if self.is_active else "void"
        return f"Entry {self.entry_id} -> Bill {self.bill_id}: {self.applied_amount_cents} ({state})"

    def clean(self):
        if self.applied_amount_cents is not None and self.applied_amount_cents <= 0:
            raise ValidationError("Applied amount must be > 0")

        # Prevent cross-business contamination
        if self.entry.business_id != self.business_id:
            raise ValidationError("Entry must belong to the same business.")
        if self.bill.business_id != self.business_id:
            raise ValidationError("Bill must belong to the same business.")
