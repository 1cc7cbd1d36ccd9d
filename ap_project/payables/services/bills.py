import logging
import uuid

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from ..exceptions import (BillHasApplicationsError, BillVoidedError,
                          InvalidRequestError, MustUnapplyFirstError,
                          NotFoundError)
from ..models import (BILL_STATUS_OPEN, BILL_STATUS_PAID, BILL_STATUS_PARTIAL,
                      Bill, BillPaymentAllocation, Vendor, derive_bill_status)
from .audit_helper import (AP_BILL_CREATED, AP_BILL_UPDATED, AP_BILL_VOIDED,
                           actor_or_none, log_activity)
from .money import parse_positive_cents
from .periods import assert_period_open, require_ymd

logger = logging.getLogger(__name__)

BILL_EDITABLE_FIELDS = ("memo", "due_date", "amount_cents", "invoice_date", "terms", "upload_id")
# Fields that stay editable while payments are applied to the bill
BILL_FIELDS_EDITABLE_WHEN_APPLIED = ("memo", "due_date")

BILL_LIST_FILTERS = ("open", "paid", "all")


def clamp_limit(limit):
    cap = settings.AP_LIST_LIMIT
    if limit in (None, ""):
        return cap
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise InvalidRequestError("limit must be an integer", field="limit")
    return max(1, min(limit, cap))


def _parse_upload_id(value):
    if value in (None, ""):
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise InvalidRequestError("upload_id must be a UUID", field="upload_id")


def get_vendor(business, vendor_id):
    try:
        return Vendor.objects.for_business(business).get(pk=vendor_id)
    except (Vendor.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Vendor not found", vendor_id=vendor_id)


def get_bill(business, bill_id, vendor_id=None, lock=False):
    qs = Bill.objects.for_business(business)
    if lock:
        qs = qs.select_for_update()
    if vendor_id is not None:
        qs = qs.filter(vendor_id=vendor_id)
    try:
        return qs.get(pk=bill_id)
    except (Bill.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Bill not found", bill_id=bill_id)


def has_active_allocations(business, bill):
    return (
        BillPaymentAllocation.objects.for_business(business)
        .active()
        .filter(bill=bill)
        .exists()
    )


def applied_by_bill(business, bill_ids):
    """{bill_id: sum of active applied cents}; bills with nothing applied map to 0."""
    ids = list(bill_ids)
    totals = dict.fromkeys(ids, 0)
    rows = (
        BillPaymentAllocation.objects.for_business(business)
        .active()
        .filter(bill_id__in=ids)
        .values("bill_id")
        .annotate(total=Sum("applied_amount_cents"))
    )
    for row in rows:
        totals[row["bill_id"]] = int(row["total"] or 0)
    return totals


def recompute_bill_statuses(business, bill_ids):
    """
    Re-read active sums and persist the derived status of each bill.
    Returns {bill_id: status}.
    """
    ids = list(bill_ids)
    if not ids:
        return {}
    applied = applied_by_bill(business, ids)
    statuses = {}
    for bill in Bill.objects.for_business(business).filter(pk__in=ids):
        status = derive_bill_status(
            is_void=bill.is_void,
            amount=bill.amount_cents,
            applied=applied.get(bill.pk, 0),
        )
        if status != bill.status:
            bill.status = status
            bill.save(update_fields=["status", "updated_at"])
        statuses[bill.pk] = status
    return statuses


def serialize_bill(bill, applied=0):
    return {
        "id": bill.pk,
        "vendor_id": bill.vendor_id,
        "invoice_date": bill.invoice_date.isoformat(),
        "due_date": bill.due_date.isoformat(),
        "amount_cents": bill.amount_cents,
        "applied_cents": applied,
        "outstanding_cents": bill.amount_cents - applied,
        "status": bill.status,
        "memo": bill.memo,
        "terms": bill.terms,
        "upload_id": str(bill.upload_id) if bill.upload_id else None,
    }


# ----------------------------
# Bill lifecycle
# ----------------------------
def create_bill(
    business,
    vendor_id,
    invoice_date,
    due_date,
    amount_cents,
    memo=None,
    terms=None,
    upload_id=None,
    user=None,
):
    amount = parse_positive_cents(amount_cents)
    invoice_date = require_ymd(invoice_date, "invoice_date")
    due_date = require_ymd(due_date, "due_date")
    upload_id = _parse_upload_id(upload_id)

    assert_period_open(business, invoice_date)

    with transaction.atomic():
        vendor = get_vendor(business, vendor_id)
        bill = Bill.objects.create(
            business=business,
            vendor=vendor,
            invoice_date=invoice_date,
            due_date=due_date,
            amount_cents=amount,
            status=derive_bill_status(is_void=False, amount=amount, applied=0),
            memo=memo,
            terms=terms,
            upload_id=upload_id,
            created_by=actor_or_none(user),
        )

    logger.info(
        "Bill created",
        extra={"business_id": business.pk, "bill_id": bill.pk, "vendor_id": vendor.pk},
    )
    log_activity(
        business=business,
        actor=user,
        event_type=AP_BILL_CREATED,
        payload={
            "bill_id": bill.pk,
            "vendor_id": vendor.pk,
            "amount_cents": amount,
            "invoice_date": invoice_date.isoformat(),
            "due_date": due_date.isoformat(),
        },
    )
    return bill


def _clean_bill_changes(changes):
    unknown = set(changes) - set(BILL_EDITABLE_FIELDS)
    if unknown:
        raise InvalidRequestError(
            f"Unknown bill fields: {', '.join(sorted(unknown))}", fields=sorted(unknown)
        )
    cleaned = {}
    for field, value in changes.items():
        if field == "amount_cents":
            cleaned[field] = parse_positive_cents(value)
        elif field in ("invoice_date", "due_date"):
            cleaned[field] = require_ymd(value, field)
        elif field == "upload_id":
            cleaned[field] = _parse_upload_id(value)
        else:
            cleaned[field] = value
    return cleaned


def update_bill(business, bill_id, changes, user=None, vendor_id=None):
    """
    Edit a bill. Once payments are applied only memo and due date may change.
    The period check uses the bill's stored invoice date.
    """
    cleaned = _clean_bill_changes(changes or {})

    with transaction.atomic():
        bill = get_bill(business, bill_id, vendor_id=vendor_id, lock=True)
        if bill.is_void:
            raise BillVoidedError(bill_id=bill.pk)

        assert_period_open(business, bill.invoice_date)
        if "invoice_date" in cleaned:
            assert_period_open(business, cleaned["invoice_date"])

        changed = {f: v for f, v in cleaned.items() if getattr(bill, f) != v}
        locked = [f for f in changed if f not in BILL_FIELDS_EDITABLE_WHEN_APPLIED]
        if locked and has_active_allocations(business, bill):
            raise BillHasApplicationsError(bill_id=bill.pk, fields=locked)

        for field, value in changed.items():
            setattr(bill, field, value)
        if changed:
            bill.save(update_fields=[*changed, "updated_at"])
            recompute_bill_statuses(business, [bill.pk])
            bill.refresh_from_db()

    if changed:
        logger.info(
            "Bill updated",
            extra={"business_id": business.pk, "bill_id": bill.pk, "fields": sorted(changed)},
        )
        log_activity(
            business=business,
            actor=user,
            event_type=AP_BILL_UPDATED,
            payload={"bill_id": bill.pk, "vendor_id": bill.vendor_id, "changes": changed},
        )
    return bill


def void_bill(business, bill_id, reason=None, user=None, vendor_id=None):
    """Void is terminal. Voiding a void bill returns it unchanged."""
    with transaction.atomic():
        bill = get_bill(business, bill_id, vendor_id=vendor_id, lock=True)
        if bill.is_void:
            return bill

        assert_period_open(business, bill.invoice_date)

        if has_active_allocations(business, bill):
            raise MustUnapplyFirstError(bill_id=bill.pk)

        bill.voided_at = timezone.now()
        bill.voided_by = actor_or_none(user)
        bill.void_reason = reason
        bill.status = derive_bill_status(is_void=True, amount=bill.amount_cents, applied=0)
        bill.save(update_fields=["voided_at", "voided_by", "void_reason", "status", "updated_at"])

    logger.info("Bill voided", extra={"business_id": business.pk, "bill_id": bill.pk})
    log_activity(
        business=business,
        actor=user,
        event_type=AP_BILL_VOIDED,
        payload={"bill_id": bill.pk, "vendor_id": bill.vendor_id, "reason": reason},
    )
    return bill


def list_bills(business, vendor_id, status="all", limit=None):
    """Vendor bills ordered by due date, each annotated with applied/outstanding cents."""
    status = (status or "all").lower()
    if status not in BILL_LIST_FILTERS:
        raise InvalidRequestError("status must be open, paid or all", field="status")

    vendor = get_vendor(business, vendor_id)
    qs = Bill.objects.for_business(business).filter(vendor=vendor)
    if status == "open":
        qs = qs.filter(status__in=[BILL_STATUS_OPEN, BILL_STATUS_PARTIAL])
    elif status == "paid":
        qs = qs.filter(status=BILL_STATUS_PAID)

    bills = list(qs.order_by("due_date", "invoice_date", "id")[: clamp_limit(limit)])
    applied = applied_by_bill(business, [b.pk for b in bills])
    for bill in bills:
        bill.applied_cents = applied.get(bill.pk, 0)
        bill.outstanding_cents = bill.amount_cents - bill.applied_cents
    return bills
