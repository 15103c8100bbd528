# credit/models/credit_sale.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from credit.services.credit_status import (
    STATUS_CHOICES,
    STATUS_PENDING,
    derive_status,
)


class CreditSale(models.Model):
    """
    Money a customer owes for a sale made on credit.

    GUARANTEES:
    - total_amount is fixed at creation
    - paid_amount only grows, and only through CreditLedgerService.record_payment
    - balance_amount and status are recomputed on every save (never set directly)
    - Never deleted (financial record retention)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.OneToOneField(
        "sales.Sale",
        on_delete=models.PROTECT,
        related_name="credit_sale",
    )

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="credit_sales",
    )

    customer_id = models.CharField(max_length=64, blank=True, default="")
    customer_name = models.CharField(max_length=100)
    customer_phone = models.CharField(max_length=50)

    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    paid_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    balance_amount = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        editable=False,
    )

    due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["business"], name="credit_sale_business_idx"),
            models.Index(fields=["customer_phone"], name="credit_sale_customer_idx"),
            models.Index(fields=["status"], name="credit_sale_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=Decimal("0.00")),
                name="credit_sale_total_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(paid_amount__gte=Decimal("0.00")),
                name="credit_sale_paid_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(balance_amount__gte=Decimal("0.00")),
                name="credit_sale_balance_nonnegative",
            ),
        ]

    def clean(self):
        if not (self.customer_name or "").strip():
            raise ValidationError({"customer_name": "customer_name is required"})
        if not (self.customer_phone or "").strip():
            raise ValidationError({"customer_phone": "customer_phone is required"})

    def _validate_against_previous(self, previous: "CreditSale"):
        if self.total_amount != previous.total_amount:
            raise ValueError("Credit sale total_amount cannot be changed.")
        if self.sale_id != previous.sale_id:
            raise ValueError("Credit sale cannot be moved to another sale.")
        if self.paid_amount < previous.paid_amount:
            raise ValueError("Credit sale paid_amount cannot decrease.")

    def save(self, *args, **kwargs):
        self.total_amount = Decimal(str(self.total_amount))
        self.paid_amount = Decimal(str(self.paid_amount or "0.00"))

        if self.pk and not self._state.adding:
            previous = CreditSale.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_against_previous(previous)

        if self.paid_amount > self.total_amount:
            raise ValueError("Credit sale paid_amount cannot exceed total_amount.")

        self.balance_amount = self.total_amount - self.paid_amount
        self.status = derive_status(self.total_amount, self.paid_amount)

        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {
                "balance_amount",
                "status",
                "updated_at",
            }

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Credit sales are financial records and cannot be deleted.")

    def __str__(self):
        return f"{self.customer_name} ({self.customer_phone}) | {self.balance_amount} {self.status}"
