import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..exceptions import (AppliedPaymentImmutableError, InvalidRequestError,
                          MustUnapplyFirstError, NotFoundError)
from ..models import (ENTRY_KIND_GENERAL, ENTRY_KIND_VENDOR_PAYMENT,
                      ENTRY_TYPE_EXPENSE, ENTRY_TYPE_INCOME, Account,
                      BillPaymentAllocation, Category, Entry)
from ..models.entry import ENTRY_KINDS, ENTRY_STATUS, ENTRY_TYPES, PAYMENT_METHODS
from .audit_helper import (AP_PAYMENT_CREATED, ENTRY_DELETED, ENTRY_UPDATED,
                           log_activity)
from .bills import get_vendor
from .money import parse_cents, parse_positive_cents
from .periods import assert_period_open, require_ymd

logger = logging.getLogger(__name__)

APPLIED_TO_SEPARATOR = " \u2014 Applied to: "
# Bills named in the memo before collapsing to "+N more"
MEMO_BILL_LABELS = 3

# Locked while any active allocation references the entry
IMMUTABLE_WHEN_APPLIED = ("amount_cents", "vendor_id", "account_id", "type", "method")

ENTRY_EDITABLE_FIELDS = (
    "date", "payee", "memo", "amount_cents", "type", "method", "status",
    "category_id", "vendor_id", "account_id", "entry_kind",
)


# ----------------------------
# Lookups
# ----------------------------
def get_account(business, account_id):
    try:
        return Account.objects.for_business(business).get(pk=account_id)
    except (Account.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Account not found", account_id=account_id)


def get_entry(business, entry_id, account_id=None, lock=False, include_deleted=False):
    qs = Entry.objects.for_business(business)
    if not include_deleted:
        qs = qs.live()
    if lock:
        qs = qs.select_for_update()
    if account_id is not None:
        qs = qs.filter(account_id=account_id)
    try:
        return qs.get(pk=entry_id)
    except (Entry.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Entry not found", entry_id=entry_id)


def entry_has_active_allocations(entry):
    return (
        BillPaymentAllocation.objects.for_business(entry.business_id)
        .active()
        .filter(entry=entry)
        .exists()
    )


def find_or_create_category(business, name=None):
    """Case-insensitive match among non-archived categories, else a new one."""
    name = (name or settings.AP_PURCHASE_CATEGORY).strip()
    category = (
        Category.objects.for_business(business)
        .filter(name__iexact=name, archived_at__isnull=True)
        .order_by("id")
        .first()
    )
    if category is None:
        category = Category.objects.create(business=business, name=name)
    return category


# ----------------------------
# Memo
# ----------------------------
def _base_memo(memo):
    return (memo or "").split(APPLIED_TO_SEPARATOR, 1)[0].strip()


def _is_default_memo(base):
    normalized = " ".join(base.split()).lower()
    return not normalized or normalized == settings.AP_DEFAULT_PAYMENT_MEMO.lower()


def build_payment_memo(memo, bill_labels):
    """
    "Vendor payment \u2014 Applied to: a, b, c +2 more".
    A blank or default base memo is written as the default text.
    """
    base = _base_memo(memo)
    if _is_default_memo(base):
        base = settings.AP_DEFAULT_PAYMENT_MEMO
    if not bill_labels:
        return base

    label = ", ".join(bill_labels[:MEMO_BILL_LABELS])
    extra = len(bill_labels) - MEMO_BILL_LABELS
    if extra > 0:
        label = f"{label} +{extra} more"
    return f"{base}{APPLIED_TO_SEPARATOR}{label}"


def refresh_payment_memo(entry):
    """Rewrite a vendor payment's memo from its active allocations. Idempotent."""
    if entry.entry_kind != ENTRY_KIND_VENDOR_PAYMENT:
        return entry

    allocations = (
        BillPaymentAllocation.objects.for_business(entry.business_id)
        .active()
        .filter(entry=entry)
        .select_related("bill")
        .order_by("bill__due_date", "bill__invoice_date", "bill_id")
    )
    labels = [(a.bill.memo or "").strip() or f"Bill {a.bill_id}" for a in allocations]
    memo = build_payment_memo(entry.memo, labels)
    if memo != entry.memo:
        entry.memo = memo
        entry.save(update_fields=["memo", "updated_at"])
    return entry


# ----------------------------
# Vendor payments
# ----------------------------
def create_vendor_payment(
    business,
    account_id,
    vendor_id,
    date,
    amount_cents,
    memo=None,
    method="OTHER",
    user=None,
):
    """
    Record money paid to a vendor. The caller gives a positive amount;
    it is stored as a negative EXPENSE in the Purchase category.
    """
    amount = parse_positive_cents(amount_cents)
    date = require_ymd(date, "date")
    if method not in dict(PAYMENT_METHODS):
        raise InvalidRequestError(f"Unknown payment method {method!r}", field="method")

    assert_period_open(business, date)

    with transaction.atomic():
        account = get_account(business, account_id)
        vendor = get_vendor(business, vendor_id)
        entry = Entry.objects.create(
            business=business,
            account=account,
            date=date,
            payee=vendor.name,
            memo=(memo or "").strip() or settings.AP_DEFAULT_PAYMENT_MEMO,
            amount_cents=-abs(amount),
            type=ENTRY_TYPE_EXPENSE,
            method=method,
            status="EXPECTED",
            category=find_or_create_category(business),
            vendor=vendor,
            entry_kind=ENTRY_KIND_VENDOR_PAYMENT,
        )

    logger.info(
        "Vendor payment created",
        extra={"business_id": business.pk, "entry_id": entry.pk, "vendor_id": vendor.pk},
    )
    log_activity(
        business=business,
        actor=user,
        event_type=AP_PAYMENT_CREATED,
        payload={
            "entry_id": entry.pk,
            "account_id": account.pk,
            "vendor_id": vendor.pk,
            "amount_cents": entry.amount_cents,
            "date": date.isoformat(),
        },
        scope_account=account,
    )
    return entry


# ----------------------------
# Ledger entry edits that touch AP
# ----------------------------
def assert_entry_mutable(entry, changes):
    """
    `changes` maps field name to the new value. Only fields whose value
    actually differs count as touched.
    """
    touched = [
        f for f in IMMUTABLE_WHEN_APPLIED
        if f in changes and changes[f] != getattr(entry, f)
    ]
    if touched and entry_has_active_allocations(entry):
        logger.info(
            "Rejected edit of applied payment",
            extra={"entry_id": entry.pk, "fields": touched},
        )
        raise AppliedPaymentImmutableError(entry_id=entry.pk, fields=touched)


def _normalize_sign(amount, entry_type):
    if entry_type == ENTRY_TYPE_EXPENSE:
        return -abs(amount)
    if entry_type == ENTRY_TYPE_INCOME:
        return abs(amount)
    return amount


def _clean_entry_changes(business, entry, changes):
    unknown = set(changes) - set(ENTRY_EDITABLE_FIELDS)
    if unknown:
        raise InvalidRequestError(
            f"Unknown entry fields: {', '.join(sorted(unknown))}", fields=sorted(unknown)
        )

    cleaned = {}
    for field, value in changes.items():
        if field == "date":
            cleaned[field] = require_ymd(value, "date")
        elif field == "amount_cents":
            cleaned[field] = parse_cents(value)
        elif field == "type" and value not in dict(ENTRY_TYPES):
            raise InvalidRequestError(f"Unknown entry type {value!r}", field="type")
        elif field == "method" and value is not None and value not in dict(PAYMENT_METHODS):
            raise InvalidRequestError(f"Unknown payment method {value!r}", field="method")
        elif field == "status" and value not in dict(ENTRY_STATUS):
            raise InvalidRequestError(f"Unknown entry status {value!r}", field="status")
        elif field == "entry_kind" and value not in dict(ENTRY_KINDS):
            raise InvalidRequestError(f"Unknown entry kind {value!r}", field="entry_kind")
        elif field == "vendor_id" and value is not None:
            cleaned[field] = get_vendor(business, value).pk
        elif field == "account_id":
            cleaned[field] = get_account(business, value).pk
        elif field == "category_id" and value is not None:
            try:
                cleaned[field] = Category.objects.for_business(business).get(pk=value).pk
            except (Category.DoesNotExist, ValueError, TypeError):
                raise NotFoundError("Category not found", category_id=value)
        else:
            cleaned[field] = value

    if "amount_cents" in cleaned or "type" in cleaned:
        cleaned["amount_cents"] = _normalize_sign(
            cleaned.get("amount_cents", entry.amount_cents),
            cleaned.get("type", entry.type),
        )
    if cleaned.get("entry_kind") == ENTRY_KIND_VENDOR_PAYMENT:
        cleaned["category_id"] = find_or_create_category(business).pk
    return cleaned


def update_entry(business, entry_id, changes, user=None, account_id=None):
    """
    Edit a ledger entry. Checks the stored date and, when moving the entry,
    the new date against closed periods; applied payments keep their amount,
    vendor, account, type and method.
    """
    with transaction.atomic():
        entry = get_entry(business, entry_id, account_id=account_id, lock=True)

        assert_period_open(business, entry.date)
        if "date" in (changes or {}):
            assert_period_open(business, require_ymd(changes["date"], "date"))

        cleaned = _clean_entry_changes(business, entry, changes or {})
        changed = {f: v for f, v in cleaned.items() if getattr(entry, f) != v}
        assert_entry_mutable(entry, changed)

        for field, value in changed.items():
            setattr(entry, field, value)
        if changed:
            entry.save(update_fields=[*changed, "updated_at"])
        refresh_payment_memo(entry)

    if changed:
        logger.info(
            "Entry updated",
            extra={"business_id": business.pk, "entry_id": entry.pk, "fields": sorted(changed)},
        )
        log_activity(
            business=business,
            actor=user,
            event_type=ENTRY_UPDATED,
            payload={"entry_id": entry.pk, "changes": changed},
            scope_account=entry.account,
        )
    return entry


def delete_entry(business, entry_id, user=None, account_id=None):
    """Soft delete. Refused while the entry still pays any bill."""
    with transaction.atomic():
        entry = get_entry(
            business, entry_id, account_id=account_id, lock=True, include_deleted=True
        )
        if entry.is_deleted:
            return entry

        assert_period_open(business, entry.date)
        if entry_has_active_allocations(entry):
            raise MustUnapplyFirstError(entry_id=entry.pk)

        entry.deleted_at = timezone.now()
        entry.save(update_fields=["deleted_at", "updated_at"])

    logger.info("Entry deleted", extra={"business_id": business.pk, "entry_id": entry.pk})
    log_activity(
        business=business,
        actor=user,
        event_type=ENTRY_DELETED,
        payload={"entry_id": entry.pk},
        scope_account=entry.account,
    )
    return entry


def soft_delete_payment(entry):
    """Tombstone a payment entry after its allocations are gone."""
    entry.deleted_at = timezone.now()
    entry.vendor = None
    entry.entry_kind = ENTRY_KIND_GENERAL
    entry.save(update_fields=["deleted_at", "vendor", "entry_kind", "updated_at"])
    return entry


def serialize_entry(entry):
    return {
        "id": entry.pk,
        "account_id": entry.account_id,
        "vendor_id": entry.vendor_id,
        "date": entry.date.isoformat(),
        "payee": entry.payee,
        "memo": entry.memo,
        "amount_cents": entry.amount_cents,
        "type": entry.type,
        "method": entry.method,
        "status": entry.status,
        "entry_kind": entry.entry_kind,
        "deleted": entry.is_deleted,
    }
