# credit/api/serializers.py

from rest_framework import serializers

from credit.models import CreditPayment, CreditSale


class CreditPaymentSerializer(serializers.ModelSerializer):
    """
    One ledger row (read-only). Listed newest first on its credit sale.
    """

    class Meta:
        model = CreditPayment
        fields = [
            "id",
            "sequence",
            "amount",
            "payment_method",
            "received_by",
            "received_by_name",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class CreditSaleSerializer(serializers.ModelSerializer):
    """
    CANONICAL CREDIT SALE SERIALIZER

    Expects the queryset from CreditLedgerService (sale + payments prefetched);
    payments keep the order of that prefetch.
    """

    sale_id = serializers.UUIDField(read_only=True)
    business_id = serializers.UUIDField(read_only=True, allow_null=True)
    invoice_no = serializers.SerializerMethodField()
    cashier_name = serializers.SerializerMethodField()
    sale_created_at = serializers.SerializerMethodField()

    payments = CreditPaymentSerializer(many=True, read_only=True)

    class Meta:
        model = CreditSale
        fields = [
            "id",
            "sale_id",
            "invoice_no",
            "business_id",
            "customer_id",
            "customer_name",
            "customer_phone",
            "total_amount",
            "paid_amount",
            "balance_amount",
            "status",
            "due_date",
            "notes",
            "cashier_name",
            "sale_created_at",
            "created_at",
            "updated_at",
            "payments",
        ]
        read_only_fields = fields

    def get_invoice_no(self, obj):
        sale = getattr(obj, "sale", None)
        return getattr(sale, "invoice_no", None)

    def get_cashier_name(self, obj):
        sale = getattr(obj, "sale", None)
        cashier = getattr(sale, "user", None)
        if cashier is None:
            return None
        return cashier.get_display_name()

    def get_sale_created_at(self, obj):
        sale = getattr(obj, "sale", None)
        created = getattr(sale, "created_at", None)
        return created.isoformat() if created else None


class CreditSummarySerializer(serializers.Serializer):
    total_outstanding = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_credits = serializers.IntegerField()
    pending_count = serializers.IntegerField()
    partial_count = serializers.IntegerField()
    paid_count = serializers.IntegerField()


class CreditListQuerySerializer(serializers.Serializer):
    """
    Query string of GET /api/credit/.

    customerId carries the customer's phone number (the grouping key for
    a customer's credit history).
    """

    status = serializers.CharField(required=False, allow_blank=True, default="")
    customerId = serializers.CharField(required=False, allow_blank=True, default="")


class RecordPaymentInputSerializer(serializers.Serializer):
    """
    Explicit payment input serializer.

    Fields are loose here. Presence, amount and method checks live in
    CreditLedgerService.record_payment so every caller gets the same messages.
    """

    credit_sale_id = serializers.CharField(required=False, allow_blank=True, default="")
    amount = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        default=None,
        help_text="Positive amount, at most the current balance",
    )
    payment_method = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        default=None,
        help_text="CASH, CARD, MOBILE or MPESA (default CASH)",
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")
