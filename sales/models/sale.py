# sales/models/sale.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Sale(models.Model):
    """
    Represents a completed POS transaction.

    GUARANTEES:
    - Immutable financial record once saved
    - A sale paid "credit" owns exactly one CreditSale (see credit app)
    - customer_name / customer_phone are snapshots taken at the counter
    """

    METHOD_CASH = "cash"
    METHOD_CARD = "card"
    METHOD_MOBILE = "mobile"
    METHOD_MPESA = "mpesa"
    METHOD_CREDIT = "credit"

    METHOD_CHOICES = [
        (METHOD_CASH, "Cash"),
        (METHOD_CARD, "Card"),
        (METHOD_MOBILE, "Mobile money"),
        (METHOD_MPESA, "M-Pesa"),
        (METHOD_CREDIT, "Credit"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice_no = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated invoice / receipt number",
    )

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sales",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name="sales",
        help_text="Cashier / staff who processed the sale",
    )

    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    payment_method = models.CharField(
        max_length=32,
        choices=METHOD_CHOICES,
        default=METHOD_CASH,
    )

    customer_name = models.CharField(max_length=100, blank=True, default="")
    customer_phone = models.CharField(max_length=50, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="sales_sale_created_idx"),
            models.Index(fields=["invoice_no"], name="sales_sale_invoice_idx"),
            models.Index(
                fields=["business", "created_at"], name="sales_sale_biz_created_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=Decimal("0.00")),
                name="sale_total_nonnegative",
            ),
        ]

    _IMMUTABLE_FIELDS = (
        "business_id",
        "user_id",
        "total_amount",
        "payment_method",
        "customer_name",
        "customer_phone",
    )

    @property
    def is_credit(self) -> bool:
        return self.payment_method == self.METHOD_CREDIT

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = Sale.objects.filter(pk=self.pk).first()
            if previous is not None:
                for field in self._IMMUTABLE_FIELDS:
                    if getattr(self, field) != getattr(previous, field):
                        raise ValueError(
                            f"Sale is immutable. Field '{field}' cannot be changed."
                        )

        if not self.invoice_no:
            prefix = timezone.now().strftime("INV%Y%m%d")
            self.invoice_no = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"

        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.invoice_no} | {self.total_amount}"
