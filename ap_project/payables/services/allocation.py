import logging
from dataclasses import dataclass, field

from django.db import transaction
from django.utils import timezone

from ..exceptions import (CrossVendorApplicationError, DuplicateBillError,
                          InvalidRequestError, NotFoundError,
                          OverApplyBillError, OverApplyEntryError,
                          PayablesError, PaymentNotVendorLinkedError)
from ..models import Bill, BillPaymentAllocation
from .audit_helper import (AP_PAYMENT_APPLIED, AP_PAYMENT_DELETED,
                           AP_PAYMENT_UNAPPLIED, actor_or_none, log_activity)
from .bills import applied_by_bill, recompute_bill_statuses, serialize_bill
from .money import parse_positive_cents, sum_cents
from .payment import get_entry, refresh_payment_memo, soft_delete_payment
from .periods import assert_period_open

logger = logging.getLogger(__name__)

# Selector for unapply_payment meaning "every active allocation of the entry"
ALL = "ALL"

DEFAULT_DELETE_REASON = "Unapply all and delete payment"


@dataclass(frozen=True)
class ApplicationResult:
    entry_id: int
    applied_cents: int
    capacity_cents: int
    bills: list = field(default_factory=list)
    changed: bool = True

    @property
    def unapplied_cents(self):
        return max(self.capacity_cents - self.applied_cents, 0)

    def to_payload(self):
        return {
            "ok": True,
            "entry_id": self.entry_id,
            "applied_cents": self.applied_cents,
            "unapplied_cents": self.unapplied_cents,
            "bills": self.bills,
        }


# ----------------------------
# Request parsing
# ----------------------------
def _parse_bill_id(value):
    if isinstance(value, bool):
        raise InvalidRequestError("bill_id must be an integer", field="bill_id")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequestError("bill_id must be an integer", field="bill_id")


def _parse_applications(applications):
    """[{"bill_id", "amount_cents"}, ...] -> [(bill_id, cents), ...] in request order."""
    if not isinstance(applications, (list, tuple)) or not applications:
        raise InvalidRequestError("applications must be a non-empty list", field="applications")

    parsed, seen = [], set()
    for app in applications:
        if not isinstance(app, dict):
            raise InvalidRequestError("each application needs bill_id and amount_cents")
        bill_id = _parse_bill_id(app.get("bill_id"))
        if bill_id in seen:
            raise DuplicateBillError(bill_id=bill_id)
        seen.add(bill_id)
        parsed.append((bill_id, parse_positive_cents(app.get("amount_cents"))))
    return parsed


def _parse_bill_selector(bill_ids):
    if bill_ids == ALL:
        return ALL
    if not isinstance(bill_ids, (list, tuple)) or not bill_ids:
        raise InvalidRequestError(
            'bill_ids must be "ALL" or a non-empty list', field="bill_ids"
        )
    return sorted({_parse_bill_id(b) for b in bill_ids})


# ----------------------------
# Shared pieces
# ----------------------------
def _lock_vendor_bills(business, entry, bill_ids):
    """Lock the bills being paid; every one must be a live bill of the entry's vendor."""
    bills = {
        b.pk: b
        for b in Bill.objects.for_business(business)
        .select_for_update()
        .filter(pk__in=bill_ids)
        .order_by("pk")
    }
    missing = [b for b in bill_ids if b not in bills]
    if missing:
        raise NotFoundError("Bill not found", bill_id=missing[0])

    foreign = [
        b.pk for b in bills.values()
        if b.vendor_id != entry.vendor_id or b.is_void
    ]
    if foreign:
        raise CrossVendorApplicationError(bill_ids=sorted(foreign))
    return bills


def _active_allocations(business, entry, bill_ids=ALL):
    qs = (
        BillPaymentAllocation.objects.for_business(business)
        .active()
        .select_for_update()
        .filter(entry=entry)
    )
    if bill_ids != ALL:
        qs = qs.filter(bill_id__in=bill_ids)
    return list(qs.select_related("bill").order_by("bill_id"))


def _void_allocations(business, entry, allocations, reason, user):
    """Flip allocations inactive and refresh everything derived from them."""
    foreign = sorted(
        a.bill_id for a in allocations if a.bill.vendor_id != entry.vendor_id
    )
    if foreign:
        raise CrossVendorApplicationError(bill_ids=foreign)

    bill_ids = sorted({a.bill_id for a in allocations})
    BillPaymentAllocation.objects.filter(pk__in=[a.pk for a in allocations]).update(
        is_active=False,
        voided_at=timezone.now(),
        voided_by=actor_or_none(user),
        void_reason=reason,
    )
    recompute_bill_statuses(business, bill_ids)
    return bill_ids


def _entry_applied_total(business, entry):
    return sum_cents(
        BillPaymentAllocation.objects.for_business(business)
        .active()
        .filter(entry=entry)
        .values_list("applied_amount_cents", flat=True)
    )


def _result(business, entry, bill_ids, changed=True):
    applied = applied_by_bill(business, bill_ids)
    bills = Bill.objects.for_business(business).filter(pk__in=bill_ids).order_by(
        "due_date", "invoice_date", "pk"
    )
    return ApplicationResult(
        entry_id=entry.pk,
        applied_cents=_entry_applied_total(business, entry),
        capacity_cents=entry.payable_capacity,
        bills=[serialize_bill(b, applied.get(b.pk, 0)) for b in bills],
        changed=changed,
    )


# ----------------------------
# Apply
# ----------------------------
def apply_payment(business, entry_id, applications, user=None, account_id=None):
    """
    Apply one payment entry to one or more bills of its vendor.

    `applications` is a list of {"bill_id", "amount_cents"}. An amount for a
    bill that already has an active allocation from this entry replaces it.
    The whole batch is validated before anything is written, and either
    every allocation lands or none does.
    """
    try:
        parsed = _parse_applications(applications)
        bill_ids = [bill_id for bill_id, _ in parsed]

        with transaction.atomic():
            entry = get_entry(business, entry_id, account_id=account_id, lock=True)
            assert_period_open(business, entry.date)

            if entry.vendor_id is None:
                raise PaymentNotVendorLinkedError(entry_id=entry.pk)
            capacity = entry.payable_capacity

            bills = _lock_vendor_bills(business, entry, bill_ids)

            existing = {a.bill_id: a for a in _active_allocations(business, entry)}
            applied_now = applied_by_bill(business, bill_ids)

            for bill_id, amount in parsed:
                old = existing[bill_id].applied_amount_cents if bill_id in existing else 0
                if applied_now[bill_id] - old + amount > bills[bill_id].amount_cents:
                    raise OverApplyBillError(bill_id)

            existing_total = sum_cents(a.applied_amount_cents for a in existing.values())
            old_in_payload = sum_cents(
                existing[b].applied_amount_cents for b in bill_ids if b in existing
            )
            new_total = existing_total - old_in_payload + sum_cents(a for _, a in parsed)
            if new_total > capacity:
                raise OverApplyEntryError(
                    entry_id=entry.pk, capacity_cents=capacity, requested_cents=new_total
                )

            now = timezone.now()
            for bill_id, amount in parsed:
                allocation = existing.get(bill_id)
                if allocation is None:
                    BillPaymentAllocation.objects.create(
                        business=business,
                        account_id=entry.account_id,
                        entry=entry,
                        bill=bills[bill_id],
                        applied_amount_cents=amount,
                        applied_at=now,
                        created_by=actor_or_none(user),
                    )
                elif allocation.applied_amount_cents != amount:
                    allocation.applied_amount_cents = amount
                    allocation.applied_at = now
                    allocation.save(update_fields=["applied_amount_cents", "applied_at"])

            recompute_bill_statuses(business, bill_ids)
            refresh_payment_memo(entry)
            result = _result(business, entry, bill_ids)
    except PayablesError as exc:
        logger.info(
            "Payment application rejected",
            extra={"business_id": business.pk, "entry_id": entry_id, "error": exc.error_code},
        )
        raise

    logger.info(
        "Payment applied",
        extra={"business_id": business.pk, "entry_id": entry.pk, "bill_ids": bill_ids},
    )
    log_activity(
        business=business,
        actor=user,
        event_type=AP_PAYMENT_APPLIED,
        payload={
            "entry_id": entry.pk,
            "account_id": entry.account_id,
            "vendor_id": entry.vendor_id,
            "bills": [{"bill_id": b, "amount_cents": a} for b, a in parsed],
        },
        scope_account=entry.account,
    )
    return result


# ----------------------------
# Unapply
# ----------------------------
def unapply_payment(business, entry_id, bill_ids=ALL, reason=None, user=None, account_id=None):
    """
    Reverse active allocations of an entry, either the listed bills or ALL.
    Reversed rows stay in the table with is_active=False. Selecting nothing
    active is a successful no-op. Never deletes the entry.
    """
    selector = _parse_bill_selector(bill_ids)

    with transaction.atomic():
        entry = get_entry(business, entry_id, account_id=account_id, lock=True)
        assert_period_open(business, entry.date)

        if entry.vendor_id is None:
            raise PaymentNotVendorLinkedError(entry_id=entry.pk)

        allocations = _active_allocations(business, entry, selector)
        if not allocations:
            return _result(business, entry, [] if selector == ALL else selector, changed=False)

        touched = _void_allocations(business, entry, allocations, reason, user)
        refresh_payment_memo(entry)
        result = _result(business, entry, touched)

    logger.info(
        "Payment unapplied",
        extra={"business_id": business.pk, "entry_id": entry.pk, "bill_ids": touched},
    )
    log_activity(
        business=business,
        actor=user,
        event_type=AP_PAYMENT_UNAPPLIED,
        payload={
            "entry_id": entry.pk,
            "account_id": entry.account_id,
            "vendor_id": entry.vendor_id,
            "bill_ids": touched,
            "reason": reason,
        },
        scope_account=entry.account,
    )
    return result


def unapply_and_delete(business, entry_id, reason=None, user=None, account_id=None):
    """
    Reverse every allocation of a payment and soft-delete it in one step.
    Deleting an already deleted payment succeeds without changes.
    """
    reason = reason or DEFAULT_DELETE_REASON

    with transaction.atomic():
        entry = get_entry(
            business, entry_id, account_id=account_id, lock=True, include_deleted=True
        )
        if entry.is_deleted:
            return _result(business, entry, [], changed=False)

        assert_period_open(business, entry.date)

        allocations = _active_allocations(business, entry)
        touched = []
        if allocations:
            touched = _void_allocations(business, entry, allocations, reason, user)

        vendor_id = entry.vendor_id
        soft_delete_payment(entry)
        result = _result(business, entry, touched)

    logger.info(
        "Payment unapplied and deleted",
        extra={"business_id": business.pk, "entry_id": entry.pk, "bill_ids": touched},
    )
    if touched:
        log_activity(
            business=business,
            actor=user,
            event_type=AP_PAYMENT_UNAPPLIED,
            payload={
                "entry_id": entry.pk,
                "account_id": entry.account_id,
                "vendor_id": vendor_id,
                "bill_ids": touched,
                "reason": reason,
            },
            scope_account=entry.account,
        )
    log_activity(
        business=business,
        actor=user,
        event_type=AP_PAYMENT_DELETED,
        payload={"entry_id": entry.pk, "account_id": entry.account_id, "vendor_id": vendor_id},
        scope_account=entry.account,
    )
    return result
