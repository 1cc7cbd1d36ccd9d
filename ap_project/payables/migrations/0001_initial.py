import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Business",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name_plural": "businesses",
            },
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("business", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="payables.business")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("business", "name"), name="uq_business_account_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Category",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("archived_at", models.DateTimeField(blank=True, null=True)),
                ("business", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="payables.business")),
            ],
            options={
                "verbose_name_plural": "categories",
                "indexes": [
                    models.Index(fields=["business", "name"], name="category_business_name_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Membership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(
                    choices=[
                        ("owner", "Owner"),
                        ("admin", "Admin"),
                        ("bookkeeper", "Bookkeeper"),
                        ("accountant", "Accountant"),
                        ("member", "Member"),
                        ("viewer", "Viewer"),
                    ],
                    default="viewer",
                    max_length=20,
                )),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("business", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="memberships",
                    to="payables.business",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="memberships",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["business", "user"], name="membership_business_user_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "business"), name="uq_user_business_membership"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("business", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="payables.business")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["business", "name"], name="vendor_business_name_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("business", "name"), name="uq_business_vendor_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Bill",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_date", models.DateField()),
                ("due_date", models.DateField()),
                ("amount_cents", models.BigIntegerField()),
                ("status", models.CharField(
                    choices=[
                        ("OPEN", "Open"),
                        ("PARTIAL", "Partially paid"),
                        ("PAID", "Paid"),
                        ("VOID", "Void"),
                    ],
                    default="OPEN",
                    max_length=10,
                )),
                ("memo", models.TextField(blank=True, null=True)),
                ("terms", models.CharField(blank=True, max_length=100, null=True)),
                ("upload_id", models.UUIDField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.TextField(blank=True, null=True)),
                ("business", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="payables.business")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("vendor", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="bills",
                    to="payables.vendor",
                )),
                ("voided_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["business", "vendor", "due_date"], name="bill_business_vendor_due_idx"),
                    models.Index(fields=["business", "status", "due_date"], name="bill_business_status_due_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount_cents__gt", 0)), name="bill_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Entry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("payee", models.CharField(blank=True, max_length=200, null=True)),
                ("memo", models.TextField(blank=True, null=True)),
                ("amount_cents", models.BigIntegerField()),
                ("type", models.CharField(
                    choices=[
                        ("INCOME", "Income"),
                        ("EXPENSE", "Expense"),
                        ("ADJUSTMENT", "Adjustment"),
                        ("TRANSFER", "Transfer"),
                    ],
                    default="EXPENSE",
                    max_length=20,
                )),
                ("method", models.CharField(
                    blank=True,
                    choices=[
                        ("CASH", "Cash"),
                        ("CHECK", "Check"),
                        ("CARD", "Card"),
                        ("ACH", "ACH"),
                        ("TRANSFER", "Transfer"),
                        ("OTHER", "Other"),
                    ],
                    max_length=20,
                    null=True,
                )),
                ("status", models.CharField(
                    choices=[("EXPECTED", "Expected"), ("CLEARED", "Cleared")],
                    default="EXPECTED",
                    max_length=20,
                )),
                ("entry_kind", models.CharField(
                    choices=[("GENERAL", "General"), ("VENDOR_PAYMENT", "Vendor payment")],
                    default="GENERAL",
                    max_length=20,
                )),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to="payables.account")),
                ("business", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="payables.business")),
                ("category", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to="payables.category",
                )),
                ("vendor", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to="payables.vendor",
                )),
            ],
            options={
                "verbose_name_plural": "entries",
                "indexes": [
                    models.Index(fields=["business", "account"], name="entry_business_account_idx"),
                    models.Index(fields=["business", "date"], name="entry_business_date_idx"),
                    models.Index(fields=["business", "entry_kind"], name="entry_business_kind_idx"),
                    models.Index(fields=["business", "vendor"], name="entry_business_vendor_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BillPaymentAllocation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("applied_amount_cents", models.BigIntegerField()),
                ("applied_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("is_active", models.BooleanField(default=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="payables.account")),
                ("bill", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="allocations",
                    to="payables.bill",
                )),
                ("business", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="payables.business")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("entry", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="allocations",
                    to="payables.entry",
                )),
                ("voided_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["business", "bill", "is_active"], name="alloc_bus_bill_active_idx"),
                    models.Index(fields=["business", "entry", "is_active"], name="alloc_bus_entry_active_idx"),
                    models.Index(fields=["business", "account", "entry"], name="alloc_bus_account_entry_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_active", True)),
                        fields=("entry", "bill"),
                        name="uq_active_allocation_entry_bill",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("applied_amount_cents__gt", 0)),
                        name="allocation_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ClosedPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("month", models.CharField(max_length=7)),
                ("closed_at", models.DateTimeField(auto_now_add=True)),
                ("business", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="payables.business")),
                ("closed_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "ordering": ("business", "month"),
                "constraints": [
                    models.UniqueConstraint(fields=("business", "month"), name="uq_business_closed_month"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ActivityLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(max_length=64)),
                ("payload", models.JSONField(default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("actor", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL,
                )),
                ("business", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="payables.business")),
                ("scope_account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to="payables.account",
                )),
            ],
            options={
                "ordering": ("-created_at", "-id"),
                "indexes": [
                    models.Index(fields=["business", "created_at"], name="activity_business_created_idx"),
                    models.Index(fields=["business", "event_type"], name="activity_business_event_idx"),
                ],
            },
        ),
    ]
