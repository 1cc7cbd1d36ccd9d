import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def recompute_bill_statuses_task(business_id):
    """
    Re-derive and persist the status of every bill of a business.
    Operator-triggered repair; returns how many bills changed status.
    """
    # import lazily to avoid circular imports at module import time
    from django.db import transaction

    from .models import Bill, Business
    from .services.bills import recompute_bill_statuses

    business = Business.objects.get(pk=business_id)
    before = dict(
        Bill.objects.for_business(business).values_list("pk", "status")
    )

    with transaction.atomic():
        after = recompute_bill_statuses(business, list(before))

    changed = sum(1 for pk, status in after.items() if before.get(pk) != status)
    logger.info(
        "Bill statuses recomputed",
        extra={"business_id": business.pk, "bills": len(after), "changed": changed},
    )
    return changed
