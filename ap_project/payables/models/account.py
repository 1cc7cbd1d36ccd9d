from django.db import models
from ..managers import TenantManager
from .entitymembership import Business


# ---------- Money accounts (bank / cash / card) ----------
class Account(models.Model):  # Ledger entries live inside one of these

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    name = models.CharField(
        max_length=200
    )  # e.g. "Checking Account", "Petty Cash"
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # A business cannot have two accounts with the same name
        constraints = [
            models.UniqueConstraint(
                fields=["business", "name"], name="uq_business_account_name"
            ),
        ]

    def __str__(self):
        return self.name
