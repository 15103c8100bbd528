import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("businesses", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CreditSale",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("customer_id", models.CharField(blank=True, default="", max_length=64)),
                ("customer_name", models.CharField(max_length=100)),
                ("customer_phone", models.CharField(max_length=50)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "paid_amount",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=12
                    ),
                ),
                ("balance_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PARTIAL", "Partially paid"),
                            ("PAID", "Paid"),
                        ],
                        default="PENDING",
                        editable=False,
                        max_length=20,
                    ),
                ),
                ("due_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "sale",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_sale",
                        to="sales.sale",
                    ),
                ),
                (
                    "business",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_sales",
                        to="businesses.business",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["business"], name="credit_sale_business_idx"),
                    models.Index(fields=["customer_phone"], name="credit_sale_customer_idx"),
                    models.Index(fields=["status"], name="credit_sale_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total_amount__gte", Decimal("0.00"))),
                        name="credit_sale_total_nonnegative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("paid_amount__gte", Decimal("0.00"))),
                        name="credit_sale_paid_nonnegative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("balance_amount__gte", Decimal("0.00"))),
                        name="credit_sale_balance_nonnegative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CreditPayment",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "sequence",
                    models.PositiveIntegerField(
                        help_text="1-based position of this payment in the credit sale's ledger"
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                ("payment_method", models.CharField(default="CASH", max_length=20)),
                ("received_by", models.UUIDField(blank=True, null=True)),
                ("received_by_name", models.CharField(blank=True, default="", max_length=100)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "credit_sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="credit.creditsale",
                    ),
                ),
            ],
            options={
                "ordering": ["-sequence"],
                "indexes": [
                    models.Index(
                        fields=["credit_sale", "created_at"],
                        name="credit_payment_sale_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", Decimal("0.00"))),
                        name="credit_payment_amount_gt_zero",
                    ),
                    models.UniqueConstraint(
                        fields=("credit_sale", "sequence"),
                        name="uniq_credit_payment_sequence",
                    ),
                ],
            },
        ),
    ]
