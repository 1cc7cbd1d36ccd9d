import datetime

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from payables.models import Account, Business, Membership, Vendor
from payables.models.entitymembership import ROLE_OWNER
from payables.services import apply_payment, create_bill, create_vendor_payment

User = get_user_model()


class Command(BaseCommand):
    help = (
        "Create a demo business, owner user, and sample vendor bills and payments."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--business-name",
            default="Demo Business",
            help="Name of the demo business to create.",
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo user."
        )

    @transaction.atomic
    def handle(self, *args, **options):
        business_name = options["business_name"]
        username = options["username"]
        password = options["password"]

        # 1. Business (slug is derived on save)
        business, _ = Business.objects.get_or_create(name=business_name)
        self.stdout.write(self.style.SUCCESS(f"Business: {business} ({business.slug})"))

        # 2. Owner user
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com"},
        )
        if created:
            user.set_password(password)
            user.save()
        Membership.objects.get_or_create(
            user=user, business=business, defaults={"role": ROLE_OWNER}
        )
        self.stdout.write(self.style.SUCCESS(f"Owner: {user.username} (pw={password})"))

        # 3. Money account and vendor
        checking, _ = Account.objects.get_or_create(business=business, name="Checking")
        vendor, _ = Vendor.objects.get_or_create(business=business, name="Acme Supplies")

        # 4. Bills: one current, one a month overdue, one long overdue
        today = datetime.date.today()
        bills = [
            create_bill(
                business,
                vendor.pk,
                invoice_date=today - datetime.timedelta(days=days_ago),
                due_date=today - datetime.timedelta(days=days_ago - 30),
                amount_cents=amount,
                memo=memo,
                user=user,
            )
            for memo, amount, days_ago in (
                ("INV-1001 paper", 12_500, 10),
                ("INV-1002 toner", 48_000, 55),
                ("INV-1003 chairs", 150_000, 120),
            )
        ]
        self.stdout.write(self.style.SUCCESS(f"Created {len(bills)} bills for {vendor}"))

        # 5. A payment covering the oldest bill and part of the next
        payment = create_vendor_payment(
            business,
            account_id=checking.pk,
            vendor_id=vendor.pk,
            date=today,
            amount_cents=170_000,
            method="CHECK",
            user=user,
        )
        apply_payment(
            business,
            payment.pk,
            [
                {"bill_id": bills[2].pk, "amount_cents": 150_000},
                {"bill_id": bills[1].pk, "amount_cents": 20_000},
            ],
            user=user,
        )
        payment.refresh_from_db()
        self.stdout.write(self.style.SUCCESS(f"Created payment: {payment.memo}"))
        self.stdout.write(self.style.SUCCESS("Demo business setup complete!"))
