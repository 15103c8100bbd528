# credit/models/credit_payment.py

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class CreditPayment(models.Model):
    """
    One payment received against a CreditSale.

    Append-only ledger row:
    - created once by CreditLedgerService.record_payment
    - never updated, never deleted
    - received_by / received_by_name are snapshots of the operator at write
      time, so the audit trail survives later user edits or removals
    """

    METHOD_CASH = "CASH"
    METHOD_CARD = "CARD"
    METHOD_MOBILE = "MOBILE"
    METHOD_MPESA = "MPESA"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    credit_sale = models.ForeignKey(
        "credit.CreditSale",
        on_delete=models.PROTECT,
        related_name="payments",
    )

    sequence = models.PositiveIntegerField(
        help_text="1-based position of this payment in the credit sale's ledger",
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )

    payment_method = models.CharField(max_length=20, default=METHOD_CASH)

    received_by = models.UUIDField(null=True, blank=True)
    received_by_name = models.CharField(max_length=100, blank=True, default="")

    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-sequence"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0.00")),
                name="credit_payment_amount_gt_zero",
            ),
            models.UniqueConstraint(
                fields=["credit_sale", "sequence"],
                name="uniq_credit_payment_sequence",
            ),
        ]
        indexes = [
            models.Index(
                fields=["credit_sale", "created_at"],
                name="credit_payment_sale_idx",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Credit payments are append-only and cannot be modified.")
        if self.payment_method is not None:
            self.payment_method = self.payment_method.strip().upper()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Credit payments are append-only and cannot be deleted.")

    def __str__(self):
        return f"#{self.sequence} {self.amount} {self.payment_method}"
