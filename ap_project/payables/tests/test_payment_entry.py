import datetime

from django.utils import timezone

from ..exceptions import (AppliedPaymentImmutableError, ClosedPeriodError,
                          InvalidAmountError, InvalidRequestError,
                          MustUnapplyFirstError, NotFoundError)
from ..models import ActivityLog, Category, Entry
from ..services import (apply_payment, close_period, create_vendor_payment,
                        delete_entry, find_or_create_category, refresh_payment_memo,
                        unapply_payment, update_entry)
from ..services.payment import build_payment_memo
from .base import PayablesTestCase


class CategoryStoreTests(PayablesTestCase):
    def test_matches_case_insensitively_and_skips_archived(self):
        archived = Category.objects.create(
            business=self.business, name="Purchase", archived_at=timezone.now()
        )
        created = find_or_create_category(self.business)
        self.assertNotEqual(created.pk, archived.pk)
        self.assertEqual(created.name, "Purchase")

        self.assertEqual(find_or_create_category(self.business, "purchase").pk, created.pk)
        self.assertEqual(
            Category.objects.for_business(self.business).filter(archived_at__isnull=True).count(), 1
        )


class CreateVendorPaymentTests(PayablesTestCase):
    def test_payment_is_negative_expense_in_purchase_category(self):
        entry = self.make_payment(amount=2_500)
        entry.refresh_from_db()
        self.assertEqual(entry.amount_cents, -2_500)
        self.assertEqual(entry.payable_capacity, 2_500)
        self.assertEqual(entry.type, "EXPENSE")
        self.assertEqual(entry.entry_kind, "VENDOR_PAYMENT")
        self.assertEqual(entry.method, "OTHER")
        self.assertEqual(entry.status, "EXPECTED")
        self.assertEqual(entry.payee, "Acme")
        self.assertEqual(entry.memo, "Vendor payment")
        self.assertEqual(entry.category.name, "Purchase")

        log = ActivityLog.objects.get(event_type="AP_PAYMENT_CREATED")
        self.assertEqual(log.scope_account, self.account)
        self.assertEqual(log.payload["amount_cents"], -2_500)

    def test_validation(self):
        with self.assertRaises(InvalidAmountError):
            self.make_payment(amount=-5)
        with self.assertRaises(InvalidRequestError):
            create_vendor_payment(
                self.business, self.account.pk, self.vendor.pk, "2025-09-18", 100, method="BARTER"
            )
        self.assertFalse(Entry.objects.exists())

    def test_closed_month_rejected(self):
        close_period(self.business, "2025-09")
        with self.assertRaises(ClosedPeriodError):
            self.make_payment(date=datetime.date(2025, 9, 1))
        self.assertFalse(Entry.objects.exists())


class PaymentMemoTests(PayablesTestCase):
    def test_build_memo(self):
        self.assertEqual(build_payment_memo(None, []), "Vendor payment")
        self.assertEqual(build_payment_memo("  vendor   PAYMENT ", ["A"]), "Vendor payment \u2014 Applied to: A")
        self.assertEqual(build_payment_memo("Check 1001", []), "Check 1001")
        self.assertEqual(
            build_payment_memo("Check 1001 \u2014 Applied to: old", ["A", "B"]),
            "Check 1001 \u2014 Applied to: A, B",
        )
        self.assertEqual(
            build_payment_memo("", ["A", "B", "C", "D", "E"]),
            "Vendor payment \u2014 Applied to: A, B, C +2 more",
        )

    def test_hyphenated_user_memo_is_kept_whole(self):
        memo = "Net 30 - Applied to: Q3"
        self.assertEqual(build_payment_memo(memo, []), memo)
        self.assertEqual(
            build_payment_memo(memo, ["A"]), "Net 30 - Applied to: Q3 \u2014 Applied to: A"
        )

        bill = self.make_bill(amount=100, memo="INV-1")
        payment = self.make_payment(amount=100, memo=memo)
        apply_payment(self.business, payment.pk, [{"bill_id": bill.pk, "amount_cents": 100}])
        unapply_payment(self.business, payment.pk, "ALL")
        payment.refresh_from_db()
        self.assertEqual(payment.memo, memo)

    def test_memo_follows_allocations_in_due_date_order(self):
        late = self.make_bill(amount=100, memo="INV-late", due_date=datetime.date(2025, 11, 1))
        early = self.make_bill(amount=100, memo="INV-early", due_date=datetime.date(2025, 10, 1))
        payment = self.make_payment(amount=200, memo="Check 7")

        apply_payment(self.business, payment.pk, [
            {"bill_id": late.pk, "amount_cents": 100},
            {"bill_id": early.pk, "amount_cents": 100},
        ])
        payment.refresh_from_db()
        self.assertEqual(payment.memo, "Check 7 \u2014 Applied to: INV-early, INV-late")

        unapply_payment(self.business, payment.pk, "ALL")
        payment.refresh_from_db()
        self.assertEqual(payment.memo, "Check 7")

        # refreshing again changes nothing
        refresh_payment_memo(payment)
        self.assertEqual(payment.memo, "Check 7")


class UpdateEntryTests(PayablesTestCase):
    def setUp(self):
        super().setUp()
        self.bill = self.make_bill(amount=5_000, memo="INV-9")
        self.payment = self.make_payment(amount=3_000)

    def test_applied_payment_is_immutable_but_memo_edits_work(self):
        apply_payment(self.business, self.payment.pk, [{"bill_id": self.bill.pk, "amount_cents": 3_000}])

        for change in ({"amount_cents": 2_000}, {"vendor_id": self.other_vendor.pk},
                       {"type": "INCOME"}, {"method": "CHECK"}):
            with self.subTest(change=change):
                with self.assertRaises(AppliedPaymentImmutableError):
                    update_entry(self.business, self.payment.pk, change)

        entry = update_entry(self.business, self.payment.pk, {"memo": "Check 55"}, user=self.user)
        self.assertEqual(entry.memo, "Check 55 \u2014 Applied to: INV-9")
        self.assertEqual(entry.amount_cents, -3_000)
        self.assertTrue(ActivityLog.objects.filter(event_type="ENTRY_UPDATED").exists())

    def test_sign_normalisation_and_free_edits_when_unapplied(self):
        entry = update_entry(self.business, self.payment.pk, {"amount_cents": 4_500})
        self.assertEqual(entry.amount_cents, -4_500)

        entry = update_entry(self.business, self.payment.pk, {"type": "INCOME"})
        self.assertEqual(entry.amount_cents, 4_500)

    def test_date_guard_checks_stored_and_new_date(self):
        close_period(self.business, "2025-07")
        with self.assertRaises(ClosedPeriodError):
            update_entry(self.business, self.payment.pk, {"date": "2025-07-31"})

        close_period(self.business, "2025-09")
        with self.assertRaises(ClosedPeriodError):
            update_entry(self.business, self.payment.pk, {"memo": "x"})

    def test_switching_to_vendor_payment_forces_purchase_category(self):
        rent = Category.objects.create(business=self.business, name="Rent")
        update_entry(self.business, self.payment.pk, {"entry_kind": "GENERAL", "category_id": rent.pk})
        entry = update_entry(self.business, self.payment.pk, {"entry_kind": "VENDOR_PAYMENT"})
        self.assertEqual(entry.category.name, "Purchase")

    def test_unknown_field_rejected(self):
        with self.assertRaises(InvalidRequestError):
            update_entry(self.business, self.payment.pk, {"deleted_at": None})


class DeleteEntryTests(PayablesTestCase):
    def test_delete_requires_unapply_and_is_idempotent(self):
        bill = self.make_bill(amount=1_000)
        payment = self.make_payment(amount=1_000)
        apply_payment(self.business, payment.pk, [{"bill_id": bill.pk, "amount_cents": 1_000}])

        with self.assertRaises(MustUnapplyFirstError):
            delete_entry(self.business, payment.pk)

        unapply_payment(self.business, payment.pk, "ALL")
        entry = delete_entry(self.business, payment.pk, user=self.user)
        self.assertTrue(entry.is_deleted)
        delete_entry(self.business, payment.pk)
        self.assertEqual(ActivityLog.objects.filter(event_type="ENTRY_DELETED").count(), 1)

        # deleted entries disappear from normal lookups
        with self.assertRaises(NotFoundError):
            update_entry(self.business, payment.pk, {"memo": "x"})
