import logging
from typing import Optional

from django.db import transaction

from ..models import Account, ActivityLog, Business

logger = logging.getLogger(__name__)

AP_BILL_CREATED = "AP_BILL_CREATED"
AP_BILL_UPDATED = "AP_BILL_UPDATED"
AP_BILL_VOIDED = "AP_BILL_VOIDED"
AP_PAYMENT_CREATED = "AP_PAYMENT_CREATED"
AP_PAYMENT_APPLIED = "AP_PAYMENT_APPLIED"
AP_PAYMENT_UNAPPLIED = "AP_PAYMENT_UNAPPLIED"
AP_PAYMENT_DELETED = "AP_PAYMENT_DELETED"
ENTRY_UPDATED = "ENTRY_UPDATED"
ENTRY_DELETED = "ENTRY_DELETED"
CLOSED_PERIOD_CLOSED = "CLOSED_PERIOD_CLOSED"
CLOSED_PERIOD_REOPENED = "CLOSED_PERIOD_REOPENED"


def actor_or_none(user):
    # background jobs and anonymous callers are recorded without an actor
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return user


def log_activity(
    *,
    business: Business,
    event_type: str,
    payload: dict,
    actor=None,
    scope_account: Optional[Account] = None,
):
    """
    Central activity logger.

    Best effort: call it after the business transaction has committed its
    writes. A failure here is logged and never undoes the operation.
    """
    try:
        # own savepoint so a failed insert cannot poison an outer transaction
        with transaction.atomic():
            return ActivityLog.objects.create(
                business=business,
                actor=actor_or_none(actor),
                event_type=event_type,
                payload=payload or {},
                scope_account=scope_account,
            )
    except Exception:
        logger.exception(
            "Activity log write failed",
            extra={"business_id": business.pk, "event_type": event_type},
        )
        return None
