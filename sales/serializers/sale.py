# sales/serializers/sale.py

from decimal import Decimal

from rest_framework import serializers

from sales.models import Sale


class SaleSerializer(serializers.ModelSerializer):
    """
    CANONICAL SALE SERIALIZER (read-only)

    credit_sale_id is set only for sales made on credit.
    """

    business_id = serializers.UUIDField(read_only=True, allow_null=True)
    cashier_name = serializers.SerializerMethodField()
    credit_sale_id = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            "id",
            "invoice_no",
            "business_id",
            "cashier_name",
            "total_amount",
            "payment_method",
            "customer_name",
            "customer_phone",
            "notes",
            "credit_sale_id",
            "created_at",
        ]
        read_only_fields = fields

    def get_cashier_name(self, obj):
        user = getattr(obj, "user", None)
        return user.get_display_name() if user else None

    def get_credit_sale_id(self, obj):
        credit = getattr(obj, "credit_sale", None) if obj.is_credit else None
        return str(credit.id) if credit else None


class RecordSaleInputSerializer(serializers.Serializer):
    """
    Explicit sale input serializer.

    CREDIT RULE:
    - payment_method "credit" requires customer_name and customer_phone;
      the sale then opens a CreditSale for its full total.
    """

    total_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
        help_text="Sale total",
    )
    payment_method = serializers.CharField(required=False, default=Sale.METHOD_CASH)
    customer_name = serializers.CharField(required=False, allow_blank=True, default="")
    customer_phone = serializers.CharField(required=False, allow_blank=True, default="")
    due_date = serializers.DateField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_payment_method(self, value):
        method = (value or "").strip().lower()
        if method not in dict(Sale.METHOD_CHOICES):
            raise serializers.ValidationError(f"\"{value}\" is not a valid choice.")
        return method

    def validate(self, attrs):
        if attrs.get("payment_method") == Sale.METHOD_CREDIT:
            if not attrs.get("customer_name", "").strip() or not attrs.get("customer_phone", "").strip():
                raise serializers.ValidationError(
                    "Customer name and phone are required for credit sales"
                )
        return attrs
