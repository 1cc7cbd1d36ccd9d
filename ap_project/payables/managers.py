from django.db import models


# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a business
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_business(self, business):
        return self.filter(business=business)


class TenantManager(models.Manager):
    # every model gets TenantQuerySet, so .for_business() is always available
    def get_queryset(self):
        return TenantQuerySet(self.model, using=self._db)

    def for_business(self, business):
        return self.get_queryset().for_business(business)


# ---------- Ledger entries ----------
class EntryQuerySet(TenantQuerySet):
    def live(self):
        # soft-deleted rows stay in the table for history
        return self.filter(deleted_at__isnull=True)


class EntryManager(TenantManager):
    def get_queryset(self):
        return EntryQuerySet(self.model, using=self._db)

    def live(self):
        return self.get_queryset().live()


# ---------- Bill / payment allocations ----------
class AllocationQuerySet(TenantQuerySet):
    def active(self):
        # reversed allocations keep their row with is_active=False
        return self.filter(is_active=True)


class AllocationManager(TenantManager):
    def get_queryset(self):
        return AllocationQuerySet(self.model, using=self._db)

    def active(self):
        return self.get_queryset().active()
