import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Business
from .vendor import Vendor

logger = logging.getLogger(__name__)

BILL_STATUS_OPEN = "OPEN"
BILL_STATUS_PARTIAL = "PARTIAL"
BILL_STATUS_PAID = "PAID"
BILL_STATUS_VOID = "VOID"

BILL_STATUS_CHOICES = [
    (BILL_STATUS_OPEN, "Open"),
    (BILL_STATUS_PARTIAL, "Partially paid"),
    (BILL_STATUS_PAID, "Paid"),
    (BILL_STATUS_VOID, "Void"),
]


def derive_bill_status(*, is_void, amount, applied):
    """
    The only place a bill status is computed.

    `amount` and `applied` are integer cents; `applied` is the sum of the
    bill's active allocations.
    """
    if is_void:
        return BILL_STATUS_VOID
    if applied <= 0:
        return BILL_STATUS_OPEN
    if applied == amount:
        return BILL_STATUS_PAID
    if applied > amount:
        # conservation checks should make this unreachable
        logger.warning(
            "Bill applied sum exceeds amount; reporting OPEN",
            extra={"amount_cents": amount, "applied_cents": applied},
        )
        return BILL_STATUS_OPEN
    return BILL_STATUS_PARTIAL


# ---------- Bills ----------

# Vendor bill (Accounts Payable document)
class Bill(models.Model):
    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    vendor = models.ForeignKey(
        Vendor,
        # prevent deleting a vendor who has bills
        on_delete=models.PROTECT,
        related_name="bills",
    )
    invoice_date = models.DateField()
    due_date = models.DateField()

    # Face amount in cents, always > 0
    amount_cents = models.BigIntegerField()

    # Cached projection of derive_bill_status(); never set directly
    status = models.CharField(
        max_length=10, choices=BILL_STATUS_CHOICES, default=BILL_STATUS_OPEN
    )

    memo = models.TextField(null=True, blank=True)
    terms = models.CharField(max_length=100, null=True, blank=True)
    # Optional link to the uploaded source document (invoice PDF etc.)
    upload_id = models.UUIDField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Void metadata (void is terminal)
    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    void_reason = models.TextField(null=True, blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "vendor", "due_date"], name="bill_business_vendor_due_idx"),
            models.Index(fields=["business", "status", "due_date"], name="bill_business_status_due_idx"),
        ]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="bill_amount_positive",
            ),
        ]

    def __str__(self):
        return f"Bill {self.pk}: {self.memo or '-'} ({self.amount_cents})"

    @property
    def is_void(self):
        return self.voided_at is not None

    def clean(self):
        if self.amount_cents is not None and self.amount_cents <= 0:
            raise ValidationError("Bill amount must be > 0")
        # Ensure vendor chosen belongs to the same business
        if self.vendor_id and self.vendor.business_id != self.business_id:
            raise ValidationError("Vendor must belong to the same business.")
