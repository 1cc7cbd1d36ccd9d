from django.urls import path

from . import views

business = "businesses/<int:business_id>/"
vendor = business + "vendors/<int:vendor_id>/"
entry = business + "accounts/<int:account_id>/entries/<int:entry_id>"

urlpatterns = [
    # Bills
    path(vendor + "bills", views.bills_view, name="vendor-bills"),
    path(vendor + "bills/<int:bill_id>", views.bill_detail_view, name="vendor-bill-detail"),
    path(vendor + "bills/<int:bill_id>/void", views.void_bill_view, name="vendor-bill-void"),
    # Reporting
    path(vendor + "ap/summary", views.vendor_summary_view, name="vendor-ap-summary"),
    path(business + "ap/vendors-summary", views.vendors_summary_view, name="ap-vendors-summary"),
    path(vendor + "ap/payments-summary", views.vendor_payments_summary_view,
         name="vendor-ap-payments-summary"),
    path(vendor + "ap/statement.csv", views.vendor_statement_view, name="vendor-ap-statement"),
    # Payments
    path(vendor + "payments", views.create_payment_view, name="vendor-payments"),
    path(entry + "/ap/apply", views.apply_payment_view, name="entry-ap-apply"),
    path(entry + "/ap/unapply", views.unapply_payment_view, name="entry-ap-unapply"),
    path(entry + "/ap/unapply-and-delete", views.unapply_and_delete_view,
         name="entry-ap-unapply-and-delete"),
    # Ledger entries
    path(entry, views.entry_detail_view, name="entry-detail"),
    # Closed periods
    path(business + "closed-periods/<str:month>", views.closed_period_view, name="closed-period"),
]
