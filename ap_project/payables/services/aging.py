from collections import defaultdict

from django.conf import settings
from django.db.models import Q, Sum
from django.db.models.functions import Abs
from django.utils import timezone

from ..models import (ENTRY_KIND_VENDOR_PAYMENT, ENTRY_TYPE_EXPENSE, Bill,
                      BillPaymentAllocation, Category, Entry, Vendor)
from .bills import applied_by_bill, clamp_limit, get_vendor
from .money import clamp_non_negative, sum_cents
from .periods import require_ymd

BUCKETS = ("current", "days_30", "days_60", "days_90")


def bucket_for(days_past_due):
    if days_past_due <= 0:
        return "current"
    if days_past_due <= 30:
        return "days_30"
    if days_past_due <= 60:
        return "days_60"
    return "days_90"


def _as_of(value):
    if value in (None, ""):
        return timezone.localdate()
    return require_ymd(value, "as_of")


def _empty_buckets():
    return dict.fromkeys(BUCKETS, 0)


def _open_bills_by_vendor(business, vendor_ids):
    """Non-void bills with something still owed, grouped per vendor."""
    bills = list(
        Bill.objects.for_business(business)
        .filter(vendor_id__in=vendor_ids, voided_at__isnull=True)
        .order_by("due_date", "invoice_date", "pk")
    )
    applied = applied_by_bill(business, [b.pk for b in bills])
    grouped = defaultdict(list)
    for bill in bills:
        outstanding = bill.amount_cents - applied.get(bill.pk, 0)
        if outstanding > 0:
            grouped[bill.vendor_id].append((bill, outstanding))
    return grouped


def _summarize(vendor, open_bills, as_of):
    buckets = _empty_buckets()
    for bill, outstanding in open_bills:
        buckets[bucket_for((as_of - bill.due_date).days)] += outstanding
    return {
        "vendor_id": vendor.pk,
        "vendor_name": vendor.name,
        "open_bill_count": len(open_bills),
        "total_outstanding_cents": sum_cents(buckets.values()),
        "buckets": buckets,
    }


def vendor_aging_summary(business, vendor_id, as_of=None):
    """Outstanding balance of one vendor split into aging buckets by due date."""
    as_of = _as_of(as_of)
    vendor = get_vendor(business, vendor_id)
    grouped = _open_bills_by_vendor(business, [vendor.pk])
    summary = _summarize(vendor, grouped.get(vendor.pk, []), as_of)
    summary["as_of"] = as_of.isoformat()
    return summary


def vendors_aging_summary(business, as_of=None, vendor_ids=None, limit=None):
    """Aging for many vendors at once, ordered by vendor name."""
    as_of = _as_of(as_of)
    vendors = Vendor.objects.for_business(business).order_by("name", "pk")
    if vendor_ids:
        vendors = vendors.filter(pk__in=vendor_ids)
    vendors = list(vendors[: clamp_limit(limit)])

    grouped = _open_bills_by_vendor(business, [v.pk for v in vendors])
    rows = [_summarize(v, grouped.get(v.pk, []), as_of) for v in vendors]

    totals = _empty_buckets()
    for row in rows:
        for bucket, cents in row["buckets"].items():
            totals[bucket] += cents
    return {
        "as_of": as_of.isoformat(),
        "vendors": rows,
        "totals": {
            "total_outstanding_cents": sum_cents(totals.values()),
            "buckets": totals,
        },
    }


# ----------------------------
# Payments side
# ----------------------------
def _vendor_payments(business, vendor):
    purchase_ids = Category.objects.for_business(business).filter(
        name__iexact=settings.AP_PURCHASE_CATEGORY, archived_at__isnull=True
    ).values_list("pk", flat=True)
    return (
        Entry.objects.for_business(business)
        .live()
        .filter(vendor=vendor, type=ENTRY_TYPE_EXPENSE)
        .filter(Q(entry_kind=ENTRY_KIND_VENDOR_PAYMENT) | Q(category_id__in=purchase_ids))
    )


def vendor_payments_summary(business, vendor_id, limit=None):
    """
    The latest `limit` payments made to a vendor with how much of each is
    applied to bills. Totals span all of the vendor's payments; unapplied
    money is never reported below zero.
    """
    vendor = get_vendor(business, vendor_id)
    payments = _vendor_payments(business, vendor)
    entries = list(payments.order_by("-date", "-pk")[: clamp_limit(limit)])

    allocations = (
        BillPaymentAllocation.objects.for_business(business)
        .active()
        .filter(entry__in=entries)
        .select_related("bill")
        .order_by("bill__due_date", "bill__invoice_date", "bill_id")
    )
    by_entry = defaultdict(list)
    for a in allocations:
        by_entry[a.entry_id].append(a)

    rows = []
    for entry in entries:
        paid = entry.payable_capacity
        applied = sum_cents(a.applied_amount_cents for a in by_entry[entry.pk])
        rows.append({
            "entry_id": entry.pk,
            "account_id": entry.account_id,
            "date": entry.date.isoformat(),
            "memo": entry.memo,
            "method": entry.method,
            "amount_cents": paid,
            "applied_cents": applied,
            "unapplied_cents": clamp_non_negative(paid - applied),
            "applied_bills": [
                {
                    "bill_id": a.bill_id,
                    "memo": a.bill.memo,
                    "due_date": a.bill.due_date.isoformat(),
                    "applied_cents": a.applied_amount_cents,
                }
                for a in by_entry[entry.pk]
            ],
        })

    # totals cover every payment of the vendor, not just this page
    total_paid = payments.aggregate(total=Sum(Abs("amount_cents")))["total"] or 0
    total_applied = (
        BillPaymentAllocation.objects.for_business(business)
        .active()
        .filter(entry__in=payments)
        .aggregate(total=Sum("applied_amount_cents"))["total"]
        or 0
    )
    return {
        "vendor_id": vendor.pk,
        "vendor_name": vendor.name,
        "payments": rows,
        "totals": {
            "total_paid_abs": total_paid,
            "total_applied": total_applied,
            "total_unapplied": clamp_non_negative(total_paid - total_applied),
        },
    }
