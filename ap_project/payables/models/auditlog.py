from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from ..managers import TenantManager
from .account import Account
from .entitymembership import Business


# ---------- Activity / Event log ----------
class ActivityLog(
    models.Model
):  # Append-only trail of every state-changing AP operation
    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    # Nullable in case the action was automated (background job, import script)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # e.g. AP_PAYMENT_APPLIED, AP_BILL_VOIDED, CLOSED_PERIOD_CLOSED
    event_type = models.CharField(max_length=64)
    payload = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    # Account the event is scoped to, when there is one
    scope_account = models.ForeignKey(
        Account, null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "created_at"], name="activity_business_created_idx"),
            models.Index(fields=["business", "event_type"], name="activity_business_event_idx"),
        ]
        ordering = ("-created_at", "-id")

    def __str__(self):
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {self.actor} {self.event_type}"
