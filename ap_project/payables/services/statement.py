import csv

from ..models import Bill
from .bills import applied_by_bill, get_vendor
from .periods import require_ymd

STATEMENT_COLUMNS = (
    "BillId",
    "InvoiceDate",
    "DueDate",
    "AmountCents",
    "AppliedCents",
    "OutstandingCents",
    "Status",
    "Memo",
    "UploadId",
)


def vendor_statement_rows(business, vendor_id, date_from=None, date_to=None):
    """One row per vendor bill invoiced in [date_from, date_to], by due date."""
    vendor = get_vendor(business, vendor_id)
    qs = Bill.objects.for_business(business).filter(vendor=vendor)
    if date_from not in (None, ""):
        qs = qs.filter(invoice_date__gte=require_ymd(date_from, "from"))
    if date_to not in (None, ""):
        qs = qs.filter(invoice_date__lte=require_ymd(date_to, "to"))

    bills = list(qs.order_by("due_date", "invoice_date", "pk"))
    applied = applied_by_bill(business, [b.pk for b in bills])

    rows = []
    for bill in bills:
        applied_cents = applied.get(bill.pk, 0)
        rows.append({
            "BillId": bill.pk,
            "InvoiceDate": bill.invoice_date.isoformat(),
            "DueDate": bill.due_date.isoformat(),
            "AmountCents": bill.amount_cents,
            "AppliedCents": applied_cents,
            # a void bill is no longer owed
            "OutstandingCents": 0 if bill.is_void else bill.amount_cents - applied_cents,
            "Status": bill.status,
            "Memo": bill.memo or "",
            "UploadId": str(bill.upload_id) if bill.upload_id else "",
        })
    return rows


def write_statement_csv(rows, out):
    """Write statement rows to a file-like object (an HttpResponse works)."""
    writer = csv.DictWriter(out, fieldnames=STATEMENT_COLUMNS)
    writer.writeheader()
    writer.writerows(rows)
    return out
