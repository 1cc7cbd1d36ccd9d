import datetime
import uuid

from django.test import SimpleTestCase

from ..exceptions import (BillHasApplicationsError, BillVoidedError,
                          ClosedPeriodError, InvalidAmountError, InvalidDateError,
                          InvalidRequestError, MustUnapplyFirstError,
                          NotFoundError)
from ..models import ActivityLog, Bill, Business, Vendor, derive_bill_status
from ..services import (apply_payment, close_period, create_bill, list_bills,
                        unapply_payment, update_bill, void_bill)
from .base import PayablesTestCase


class DeriveBillStatusTests(SimpleTestCase):
    def test_status_table(self):
        cases = [
            # (is_void, amount, applied, expected)
            (True, 100, 0, "VOID"),
            (True, 100, 100, "VOID"),
            (False, 100, 0, "OPEN"),
            (False, 100, -5, "OPEN"),
            (False, 100, 1, "PARTIAL"),
            (False, 100, 99, "PARTIAL"),
            (False, 100, 100, "PAID"),
        ]
        for is_void, amount, applied, expected in cases:
            with self.subTest(is_void=is_void, applied=applied):
                self.assertEqual(
                    derive_bill_status(is_void=is_void, amount=amount, applied=applied),
                    expected,
                )

    def test_over_applied_falls_back_to_open_and_warns(self):
        with self.assertLogs("payables.models.bill", level="WARNING"):
            self.assertEqual(derive_bill_status(is_void=False, amount=100, applied=101), "OPEN")


class CreateBillTests(PayablesTestCase):
    def test_create_bill_is_open_and_logged(self):
        upload = uuid.uuid4()
        bill = create_bill(
            self.business,
            self.vendor.pk,
            invoice_date="2025-09-01",
            due_date="2025-10-01",
            amount_cents="12500",
            memo="INV-1",
            upload_id=str(upload),
            user=self.user,
        )
        bill.refresh_from_db()
        self.assertEqual(bill.status, "OPEN")
        self.assertEqual(bill.amount_cents, 12500)
        self.assertEqual(bill.upload_id, upload)
        self.assertEqual(bill.created_by, self.user)
        log = ActivityLog.objects.get(event_type="AP_BILL_CREATED")
        self.assertEqual(log.payload["bill_id"], bill.pk)
        self.assertEqual(log.actor, self.user)

    def test_create_bill_validation(self):
        with self.assertRaises(InvalidAmountError):
            self.make_bill(amount=0)
        with self.assertRaises(InvalidAmountError):
            self.make_bill(amount=12.5)
        with self.assertRaises(InvalidDateError):
            create_bill(self.business, self.vendor.pk, "09/01/2025", "2025-10-01", 100)
        with self.assertRaises(InvalidRequestError):
            create_bill(self.business, self.vendor.pk, "2025-09-01", "2025-10-01", 100,
                        upload_id="not-a-uuid")
        self.assertFalse(Bill.objects.exists())

    def test_vendor_of_other_business_is_not_found(self):
        other = Business.objects.create(name="Other Co")
        stranger = Vendor.objects.create(business=other, name="Stranger")
        with self.assertRaises(NotFoundError):
            self.make_bill(vendor=stranger)


class UpdateBillTests(PayablesTestCase):
    def test_free_edit_without_applications(self):
        bill = self.make_bill(amount=10_000)
        bill = update_bill(
            self.business, bill.pk,
            {"amount_cents": 12_000, "terms": "Net 15", "memo": "fixed"},
            user=self.user,
        )
        self.assertEqual(bill.amount_cents, 12_000)
        self.assertEqual(bill.terms, "Net 15")
        self.assertTrue(ActivityLog.objects.filter(event_type="AP_BILL_UPDATED").exists())

    def test_applied_bill_only_allows_memo_and_due_date(self):
        bill = self.make_bill(amount=10_000)
        payment = self.make_payment(amount=4_000)
        apply_payment(self.business, payment.pk, [{"bill_id": bill.pk, "amount_cents": 4_000}])

        update_bill(self.business, bill.pk, {"memo": "note", "due_date": "2025-12-01"})
        bill.refresh_from_db()
        self.assertEqual(bill.memo, "note")
        self.assertEqual(bill.due_date, datetime.date(2025, 12, 1))

        for change in ({"amount_cents": 9_000}, {"invoice_date": "2025-09-02"},
                       {"terms": "Net 60"}, {"upload_id": str(uuid.uuid4())}):
            with self.subTest(change=change):
                with self.assertRaises(BillHasApplicationsError):
                    update_bill(self.business, bill.pk, change)

        # sending the unchanged amount back is not an edit
        update_bill(self.business, bill.pk, {"amount_cents": 10_000, "memo": "again"})

    def test_unknown_fields_and_void_bill_rejected(self):
        bill = self.make_bill()
        with self.assertRaises(InvalidRequestError):
            update_bill(self.business, bill.pk, {"status": "PAID"})
        void_bill(self.business, bill.pk)
        with self.assertRaises(BillVoidedError):
            update_bill(self.business, bill.pk, {"memo": "x"})

    def test_guard_uses_stored_invoice_date(self):
        bill = self.make_bill(invoice_date=datetime.date(2025, 7, 10))
        close_period(self.business, "2025-07")
        # moving the bill out of the closed month is still an edit of that month
        with self.assertRaises(ClosedPeriodError):
            update_bill(self.business, bill.pk, {"invoice_date": "2025-09-01"})
        bill.refresh_from_db()
        self.assertEqual(bill.invoice_date, datetime.date(2025, 7, 10))

    def test_wrong_vendor_in_path_is_not_found(self):
        bill = self.make_bill()
        with self.assertRaises(NotFoundError):
            update_bill(self.business, bill.pk, {"memo": "x"}, vendor_id=self.other_vendor.pk)


class VoidBillTests(PayablesTestCase):
    def test_void_is_terminal_and_idempotent(self):
        bill = self.make_bill()
        bill = void_bill(self.business, bill.pk, reason="duplicate", user=self.user)
        self.assertEqual(bill.status, "VOID")
        self.assertIsNotNone(bill.voided_at)
        self.assertEqual(bill.void_reason, "duplicate")

        again = void_bill(self.business, bill.pk, reason="other")
        self.assertEqual(again.void_reason, "duplicate")
        self.assertEqual(ActivityLog.objects.filter(event_type="AP_BILL_VOIDED").count(), 1)

    def test_must_unapply_before_void(self):
        bill = self.make_bill(amount=5_000)
        payment = self.make_payment(amount=5_000)
        apply_payment(self.business, payment.pk, [{"bill_id": bill.pk, "amount_cents": 5_000}])

        with self.assertRaises(MustUnapplyFirstError):
            void_bill(self.business, bill.pk)
        bill.refresh_from_db()
        self.assertEqual(bill.status, "PAID")

        unapply_payment(self.business, payment.pk, [bill.pk])
        self.assertEqual(void_bill(self.business, bill.pk).status, "VOID")

    def test_void_in_closed_month_rejected(self):
        bill = self.make_bill(invoice_date=datetime.date(2025, 6, 3))
        close_period(self.business, "2025-06")
        with self.assertRaises(ClosedPeriodError):
            void_bill(self.business, bill.pk)


class ListBillsTests(PayablesTestCase):
    def test_filters_and_outstanding(self):
        open_bill = self.make_bill(amount=1_000, due_date=datetime.date(2025, 10, 1))
        partial = self.make_bill(amount=2_000, due_date=datetime.date(2025, 9, 20))
        paid = self.make_bill(amount=3_000, due_date=datetime.date(2025, 9, 25))
        payment = self.make_payment(amount=4_000)
        apply_payment(self.business, payment.pk, [
            {"bill_id": partial.pk, "amount_cents": 1_000},
            {"bill_id": paid.pk, "amount_cents": 3_000},
        ])
        self.make_bill(amount=500, vendor=self.other_vendor)

        all_bills = list_bills(self.business, self.vendor.pk)
        self.assertEqual([b.pk for b in all_bills], [partial.pk, paid.pk, open_bill.pk])
        self.assertEqual(all_bills[0].outstanding_cents, 1_000)

        self.assertEqual(
            {b.pk for b in list_bills(self.business, self.vendor.pk, status="open")},
            {open_bill.pk, partial.pk},
        )
        self.assertEqual(
            [b.pk for b in list_bills(self.business, self.vendor.pk, status="paid")],
            [paid.pk],
        )
        self.assertEqual(len(list_bills(self.business, self.vendor.pk, limit=1)), 1)
        self.assertEqual(len(list_bills(self.business, self.vendor.pk, limit=0)), 1)

        with self.assertRaises(InvalidRequestError):
            list_bills(self.business, self.vendor.pk, status="weird")
