from django.db import models
from ..managers import TenantManager
from .entitymembership import Business


# ---------- Entry categories ----------
class Category(models.Model):  # e.g. "Purchase", "Rent", "Utilities"
    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    name = models.CharField(max_length=100)
    # Archived categories stay linked to old entries but are not offered again
    archived_at = models.DateTimeField(null=True, blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        verbose_name_plural = "categories"
        # Archived names may be reused, so lookups go by (business, name)
        # without a unique constraint
        indexes = [models.Index(fields=["business", "name"], name="category_business_name_idx")]

    def __str__(self):
        return f"{self.business.slug} - {self.name}"  # Example: "acme - Purchase"
