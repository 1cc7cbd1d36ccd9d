from django.core.exceptions import ValidationError
from django.db import models
from ..managers import EntryManager
from .account import Account
from .category import Category
from .entitymembership import Business
from .vendor import Vendor

ENTRY_TYPE_INCOME = "INCOME"
ENTRY_TYPE_EXPENSE = "EXPENSE"
ENTRY_TYPE_ADJUSTMENT = "ADJUSTMENT"
ENTRY_TYPE_TRANSFER = "TRANSFER"

ENTRY_TYPES = [
    (ENTRY_TYPE_INCOME, "Income"),
    (ENTRY_TYPE_EXPENSE, "Expense"),
    (ENTRY_TYPE_ADJUSTMENT, "Adjustment"),
    (ENTRY_TYPE_TRANSFER, "Transfer"),
]

PAYMENT_METHODS = [
    # Keeps payment method standardized across records
    ("CASH", "Cash"),
    ("CHECK", "Check"),
    ("CARD", "Card"),
    ("ACH", "ACH"),
    ("TRANSFER", "Transfer"),
    ("OTHER", "Other"),
]

ENTRY_STATUS = [
    ("EXPECTED", "Expected"),
    ("CLEARED", "Cleared"),
]

ENTRY_KIND_GENERAL = "GENERAL"
ENTRY_KIND_VENDOR_PAYMENT = "VENDOR_PAYMENT"

ENTRY_KINDS = [
    (ENTRY_KIND_GENERAL, "General"),
    (ENTRY_KIND_VENDOR_PAYMENT, "Vendor payment"),
]


# ---------- Ledger entries ----------
class Entry(models.Model):  # Represents a single inflow/outflow in an account
    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    # prevent Account deletion while entries exist
    account = models.ForeignKey(Account, on_delete=models.PROTECT)
    date = models.DateField()
    payee = models.CharField(max_length=200, null=True, blank=True)
    memo = models.TextField(null=True, blank=True)
    # amount: positive = inflow (deposit), negative = outflow (payment)
    amount_cents = models.BigIntegerField()
    type = models.CharField(
        max_length=20, choices=ENTRY_TYPES, default=ENTRY_TYPE_EXPENSE)
    method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, null=True, blank=True)
    status = models.CharField(
        max_length=20, choices=ENTRY_STATUS, default="EXPECTED")
    category = models.ForeignKey(
        Category, null=True, blank=True, on_delete=models.SET_NULL)
    # Unlinked entries are allowed; only vendor-linked ones can pay bills
    vendor = models.ForeignKey(
        Vendor, null=True, blank=True, on_delete=models.SET_NULL)
    entry_kind = models.CharField(
        max_length=20, choices=ENTRY_KINDS, default=ENTRY_KIND_GENERAL)

    # Soft delete marker
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping; Entry.objects.live() hides soft-deleted rows
    objects = EntryManager()

    class Meta:
        verbose_name_plural = "entries"
        indexes = [
            models.Index(fields=["business", "account"], name="entry_business_account_idx"),
            models.Index(fields=["business", "date"], name="entry_business_date_idx"),
            models.Index(fields=["business", "entry_kind"], name="entry_business_kind_idx"),
            models.Index(fields=["business", "vendor"], name="entry_business_vendor_idx"),
        ]

    def __str__(self):
        return f"{self.account.name} - {self.date} - {self.amount_cents} ({self.entry_kind})"

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @property
    def is_vendor_payment(self):
        return self.entry_kind == ENTRY_KIND_VENDOR_PAYMENT

    @property
    def payable_capacity(self):
        """How much of this entry can be applied to bills, in cents."""
        return abs(self.amount_cents or 0)

    def clean(self):
        # Tenancy checks
        if self.account_id and self.account.business_id != self.business_id:
            raise ValidationError("Account must belong to the same business.")
        if self.vendor_id and self.vendor.business_id != self.business_id:
            raise ValidationError("Vendor must belong to the same business.")
        if self.category_id and self.category.business_id != self.business_id:
            raise ValidationError("Category must belong to the same business.")
