from django.db import models
from ..managers import TenantManager
from .entitymembership import Business


class Vendor(models.Model):  # Who the business owes money to (Accounts Payable)

    # Multi-tenant
    business = models.ForeignKey(Business, on_delete=models.CASCADE)

    name = models.CharField(max_length=200)
    notes = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "name"], name="vendor_business_name_idx"),
        ]

        # Vendor names must be unique per business
        constraints = [
            models.UniqueConstraint(
                fields=["business", "name"], name="uq_business_vendor_name"
            ),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
