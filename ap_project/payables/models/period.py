import re

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Business

MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


# ---------- Closed accounting months ----------
class ClosedPeriod(models.Model):
    """
    A row here freezes one calendar month of a business's books.
    No bill, payment entry or allocation dated in that month may change.
    """

    business = models.ForeignKey(Business, on_delete=models.CASCADE)

    month = models.CharField(max_length=7)  # "YYYY-MM"

    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    closed_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["business", "month"], name="uq_business_closed_month"),
        ]
        ordering = ("business", "month")

    def __str__(self):
        return f"{self.business.slug} {self.month} (closed)"  # "acme 2025-07 (closed)"

    def clean(self):
        if not MONTH_RE.match(self.month or ""):
            raise ValidationError("month must be YYYY-MM")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
