import csv
import datetime
import io

from django.test import SimpleTestCase

from ..exceptions import InvalidDateError, NotFoundError
from ..models import Category, Entry
from ..services import (apply_payment, bucket_for, unapply_and_delete,
                        vendor_aging_summary, vendor_payments_summary,
                        vendor_statement_rows, vendors_aging_summary,
                        void_bill, write_statement_csv)
from ..services.statement import STATEMENT_COLUMNS
from .base import PayablesTestCase


class BucketTests(SimpleTestCase):
    def test_boundaries(self):
        cases = [(-10, "current"), (0, "current"), (1, "days_30"), (30, "days_30"),
                 (31, "days_60"), (60, "days_60"), (61, "days_90"), (400, "days_90")]
        for days, bucket in cases:
            with self.subTest(days=days):
                self.assertEqual(bucket_for(days), bucket)


class VendorAgingTests(PayablesTestCase):
    def setUp(self):
        super().setUp()
        d = datetime.date
        self.current = self.make_bill(amount=1_000, due_date=d(2025, 9, 18))
        self.late = self.make_bill(amount=2_000, due_date=d(2025, 9, 1))
        self.later = self.make_bill(amount=3_000, due_date=d(2025, 8, 1))
        self.ancient = self.make_bill(amount=4_000, due_date=d(2025, 6, 1))
        self.paid = self.make_bill(amount=700, due_date=d(2025, 5, 1))
        self.voided = self.make_bill(amount=9_999, due_date=d(2025, 5, 1))
        void_bill(self.business, self.voided.pk)

        payment = self.make_payment(amount=1_200)
        apply_payment(self.business, payment.pk, [
            {"bill_id": self.late.pk, "amount_cents": 500},
            {"bill_id": self.paid.pk, "amount_cents": 700},
        ])

    def test_single_vendor_buckets(self):
        summary = vendor_aging_summary(self.business, self.vendor.pk, as_of="2025-09-18")

        self.assertEqual(summary["as_of"], "2025-09-18")
        self.assertEqual(summary["vendor_name"], "Acme")
        self.assertEqual(summary["open_bill_count"], 4)
        self.assertEqual(
            summary["buckets"],
            {"current": 1_000, "days_30": 1_500, "days_60": 3_000, "days_90": 4_000},
        )
        self.assertEqual(summary["total_outstanding_cents"], 9_500)

    def test_all_vendors_with_totals(self):
        self.make_bill(amount=250, vendor=self.other_vendor, due_date=datetime.date(2025, 9, 30))

        report = vendors_aging_summary(self.business, as_of="2025-09-18")

        self.assertEqual([v["vendor_name"] for v in report["vendors"]], ["Acme", "Globex"])
        self.assertEqual(report["totals"]["total_outstanding_cents"], 9_750)
        self.assertEqual(report["totals"]["buckets"]["current"], 1_250)

        only_globex = vendors_aging_summary(
            self.business, as_of="2025-09-18", vendor_ids=[self.other_vendor.pk]
        )
        self.assertEqual(len(only_globex["vendors"]), 1)
        self.assertEqual(only_globex["totals"]["total_outstanding_cents"], 250)

    def test_bad_inputs(self):
        with self.assertRaises(InvalidDateError):
            vendor_aging_summary(self.business, self.vendor.pk, as_of="18.09.2025")
        with self.assertRaises(NotFoundError):
            vendor_aging_summary(self.business, 999_999)


class VendorPaymentsSummaryTests(PayablesTestCase):
    def test_payments_with_applied_and_unapplied_amounts(self):
        bill_a = self.make_bill(amount=1_000, memo="A", due_date=datetime.date(2025, 10, 1))
        bill_b = self.make_bill(amount=1_000, memo="B", due_date=datetime.date(2025, 9, 20))
        first = self.make_payment(amount=1_500, date=datetime.date(2025, 9, 10))
        second = self.make_payment(amount=300, date=datetime.date(2025, 9, 12))
        apply_payment(self.business, first.pk, [
            {"bill_id": bill_a.pk, "amount_cents": 1_000},
            {"bill_id": bill_b.pk, "amount_cents": 400},
        ])

        # a deleted payment and another vendor's payment stay out of the report
        unapply_and_delete(self.business, self.make_payment(amount=50).pk)
        self.make_payment(amount=999, vendor=self.other_vendor)

        summary = vendor_payments_summary(self.business, self.vendor.pk)

        self.assertEqual([p["entry_id"] for p in summary["payments"]], [second.pk, first.pk])
        row = summary["payments"][1]
        self.assertEqual(row["amount_cents"], 1_500)
        self.assertEqual(row["applied_cents"], 1_400)
        self.assertEqual(row["unapplied_cents"], 100)
        self.assertEqual([b["bill_id"] for b in row["applied_bills"]], [bill_b.pk, bill_a.pk])
        self.assertEqual(
            summary["totals"],
            {"total_paid_abs": 1_800, "total_applied": 1_400, "total_unapplied": 400},
        )

    def test_totals_do_not_depend_on_page_size(self):
        bill = self.make_bill(amount=500)
        older = self.make_payment(amount=1_000, date=datetime.date(2025, 9, 1))
        self.make_payment(amount=2_000, date=datetime.date(2025, 9, 15))
        apply_payment(self.business, older.pk, [{"bill_id": bill.pk, "amount_cents": 500}])

        summary = vendor_payments_summary(self.business, self.vendor.pk, limit=1)

        self.assertEqual(len(summary["payments"]), 1)
        self.assertEqual(summary["payments"][0]["amount_cents"], 2_000)
        self.assertEqual(
            summary["totals"],
            {"total_paid_abs": 3_000, "total_applied": 500, "total_unapplied": 2_500},
        )

    def test_purchase_category_expense_counts_as_payment(self):
        purchase = Category.objects.create(business=self.business, name="purchase")
        Entry.objects.create(
            business=self.business, account=self.account, vendor=self.vendor,
            category=purchase, date=self.today, amount_cents=-800, type="EXPENSE",
            entry_kind="GENERAL", memo="Cash purchase",
        )
        summary = vendor_payments_summary(self.business, self.vendor.pk)
        self.assertEqual(summary["totals"]["total_unapplied"], 800)


class StatementTests(PayablesTestCase):
    def test_rows_and_csv(self):
        kept = self.make_bill(amount=1_000, memo="INV-1", invoice_date=datetime.date(2025, 9, 1))
        voided = self.make_bill(amount=500, memo="INV-2", invoice_date=datetime.date(2025, 9, 5))
        self.make_bill(amount=700, invoice_date=datetime.date(2025, 8, 1))
        void_bill(self.business, voided.pk)
        payment = self.make_payment(amount=400)
        apply_payment(self.business, payment.pk, [{"bill_id": kept.pk, "amount_cents": 400}])

        rows = vendor_statement_rows(
            self.business, self.vendor.pk, date_from="2025-09-01", date_to="2025-09-30"
        )
        self.assertEqual([r["BillId"] for r in rows], [kept.pk, voided.pk])
        self.assertEqual(rows[0]["OutstandingCents"], 600)
        self.assertEqual(rows[0]["Status"], "PARTIAL")
        self.assertEqual(rows[1]["OutstandingCents"], 0)
        self.assertEqual(rows[1]["Status"], "VOID")

        out = write_statement_csv(rows, io.StringIO())
        parsed = list(csv.DictReader(io.StringIO(out.getvalue())))
        self.assertEqual(tuple(parsed[0].keys()), STATEMENT_COLUMNS)
        self.assertEqual(parsed[0]["Memo"], "INV-1")
        self.assertEqual(parsed[1]["UploadId"], "")
