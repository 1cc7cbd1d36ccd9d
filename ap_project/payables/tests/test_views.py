import json

from django.contrib.auth import get_user_model
from django.test import Client
from django.urls import reverse

from ..models import BillPaymentAllocation, ClosedPeriod, Membership
from ..models.entitymembership import ROLE_VIEWER
from .base import PayablesTestCase

User = get_user_model()


class ViewTestCase(PayablesTestCase):
    def setUp(self):
        super().setUp()
        self.client = Client()
        self.client.force_login(self.user)

    def url(self, name, **kwargs):
        return reverse(name, kwargs={"business_id": self.business.pk, **kwargs})

    def post(self, url, body=None):
        return self.client.post(url, data=json.dumps(body or {}), content_type="application/json")

    def entry_url(self, name, entry):
        return self.url(name, account_id=self.account.pk, entry_id=entry.pk)


class BillViewTests(ViewTestCase):
    def test_create_and_list(self):
        url = self.url("vendor-bills", vendor_id=self.vendor.pk)
        resp = self.post(url, {
            "invoice_date": "2025-09-01", "due_date": "2025-10-01",
            "amount_cents": 12_500, "memo": "INV-1",
        })
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["bill"]["status"], "OPEN")

        resp = self.client.get(url, {"status": "open"})
        self.assertEqual(resp.status_code, 200)
        bills = resp.json()["bills"]
        self.assertEqual(len(bills), 1)
        self.assertEqual(bills[0]["outstanding_cents"], 12_500)

    def test_invalid_amount_is_400(self):
        resp = self.post(self.url("vendor-bills", vendor_id=self.vendor.pk), {
            "invoice_date": "2025-09-01", "due_date": "2025-10-01", "amount_cents": 12.5,
        })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "INVALID_AMOUNT")

    def test_patch_and_void(self):
        bill = self.make_bill()
        detail = self.url("vendor-bill-detail", vendor_id=self.vendor.pk, bill_id=bill.pk)
        resp = self.client.patch(
            detail, data=json.dumps({"memo": "renamed"}), content_type="application/json"
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["bill"]["memo"], "renamed")

        resp = self.post(self.url("vendor-bill-void", vendor_id=self.vendor.pk, bill_id=bill.pk))
        self.assertEqual(resp.json()["bill"]["status"], "VOID")

    def test_unknown_business_is_404(self):
        resp = self.client.get(
            reverse("vendor-bills", kwargs={"business_id": 999_999, "vendor_id": self.vendor.pk})
        )
        self.assertEqual(resp.status_code, 404)


class PermissionTests(ViewTestCase):
    def test_viewer_can_read_but_not_write(self):
        viewer = User.objects.create_user(username="viewer", password="pw")
        Membership.objects.create(user=viewer, business=self.business, role=ROLE_VIEWER)
        self.client.force_login(viewer)
        url = self.url("vendor-bills", vendor_id=self.vendor.pk)

        self.assertEqual(self.client.get(url).status_code, 200)
        resp = self.post(url, {"invoice_date": "2025-09-01", "due_date": "2025-10-01",
                               "amount_cents": 100})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "FORBIDDEN")

    def test_non_member_and_anonymous_are_forbidden(self):
        outsider = User.objects.create_user(username="outsider", password="pw")
        self.client.force_login(outsider)
        url = self.url("vendor-ap-summary", vendor_id=self.vendor.pk)
        self.assertEqual(self.client.get(url).status_code, 403)

        self.client.logout()
        self.assertEqual(self.client.get(url).status_code, 403)


class PaymentViewTests(ViewTestCase):
    def test_create_apply_unapply_delete(self):
        bill = self.make_bill(amount=5_000, memo="INV-5")
        resp = self.post(self.url("vendor-payments", vendor_id=self.vendor.pk), {
            "account_id": self.account.pk, "date": "2025-09-18",
            "amount_cents": 5_000, "method": "CHECK",
        })
        self.assertEqual(resp.status_code, 201)
        entry_id = resp.json()["entry"]["id"]
        entry_kwargs = {"account_id": self.account.pk, "entry_id": entry_id}

        resp = self.post(self.url("entry-ap-apply", **entry_kwargs),
                         {"applications": [{"bill_id": bill.pk, "amount_cents": 5_000}]})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["applied_cents"], 5_000)
        self.assertEqual(data["bills"][0]["status"], "PAID")

        resp = self.post(self.url("entry-ap-unapply", **entry_kwargs), {"all": True})
        self.assertEqual(resp.json()["bills"][0]["status"], "OPEN")

        resp = self.post(self.url("entry-ap-unapply-and-delete", **entry_kwargs))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["deleted"])

    def test_conflicts_are_409_with_error_code(self):
        bill = self.make_bill(amount=1_000)
        payment = self.make_payment(amount=5_000)

        resp = self.post(self.entry_url("entry-ap-apply", payment),
                         {"applications": [{"bill_id": bill.pk, "amount_cents": 1_001}]})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"], "OVER_APPLY_BILL")
        self.assertEqual(resp.json()["bill_id"], bill.pk)
        self.assertFalse(BillPaymentAllocation.objects.exists())

        self.post(self.entry_url("entry-ap-apply", payment),
                  {"applications": [{"bill_id": bill.pk, "amount_cents": 1_000}]})
        resp = self.client.delete(self.entry_url("entry-detail", payment))
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"], "MUST_UNAPPLY_FIRST")

    def test_unapply_requires_selection(self):
        payment = self.make_payment()
        resp = self.post(self.entry_url("entry-ap-unapply", payment), {})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "INVALID_REQUEST")

    def test_entry_patch(self):
        payment = self.make_payment(amount=2_000)
        resp = self.client.patch(
            self.entry_url("entry-detail", payment),
            data=json.dumps({"memo": "Check 12"}),
            content_type="application/json",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["entry"]["memo"], "Check 12")


class ReportViewTests(ViewTestCase):
    def test_summaries(self):
        self.make_bill(amount=1_000)
        resp = self.client.get(self.url("vendor-ap-summary", vendor_id=self.vendor.pk),
                               {"asOf": "2025-09-18"})
        self.assertEqual(resp.json()["total_outstanding_cents"], 1_000)

        resp = self.client.get(self.url("ap-vendors-summary"), {"asOf": "2025-09-18"})
        self.assertEqual(resp.json()["totals"]["total_outstanding_cents"], 1_000)

        resp = self.client.get(self.url("vendor-ap-payments-summary", vendor_id=self.vendor.pk))
        self.assertEqual(resp.json()["totals"]["total_paid_abs"], 0)

    def test_statement_csv(self):
        self.make_bill(amount=1_000, memo="INV-1")
        resp = self.client.get(self.url("vendor-ap-statement", vendor_id=self.vendor.pk))
        self.assertEqual(resp["Content-Type"], "text/csv")
        lines = resp.content.decode().splitlines()
        self.assertTrue(lines[0].startswith("BillId,InvoiceDate,DueDate"))
        self.assertEqual(len(lines), 2)


class ClosedPeriodViewTests(ViewTestCase):
    def test_close_blocks_writes_and_reopen_allows_them(self):
        url = self.url("closed-period", month="2025-09")
        self.assertEqual(self.post(url).status_code, 200)
        self.assertTrue(ClosedPeriod.objects.filter(business=self.business, month="2025-09").exists())

        resp = self.post(self.url("vendor-bills", vendor_id=self.vendor.pk), {
            "invoice_date": "2025-09-05", "due_date": "2025-10-05", "amount_cents": 100,
        })
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json(), {
            "ok": False, "error": "CLOSED_PERIOD",
            "message": resp.json()["message"], "month": "2025-09",
        })

        self.assertEqual(self.client.delete(url).status_code, 200)
        self.assertFalse(ClosedPeriod.objects.exists())
