# credit/admin.py

from django.contrib import admin

from credit.models import CreditPayment, CreditSale


class ReadOnlyLedgerAdmin(admin.ModelAdmin):
    """
    Ledger rows are written only by CreditLedgerService.
    """

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class CreditPaymentInline(admin.TabularInline):
    model = CreditPayment
    extra = 0
    can_delete = False
    ordering = ("-sequence",)
    fields = (
        "sequence",
        "amount",
        "payment_method",
        "received_by_name",
        "notes",
        "created_at",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(CreditSale)
class CreditSaleAdmin(ReadOnlyLedgerAdmin):
    list_display = (
        "customer_name",
        "customer_phone",
        "total_amount",
        "paid_amount",
        "balance_amount",
        "status",
        "due_date",
        "created_at",
    )
    list_filter = ("status", "business", "created_at")
    search_fields = ("customer_name", "customer_phone", "sale__invoice_no")
    inlines = [CreditPaymentInline]


@admin.register(CreditPayment)
class CreditPaymentAdmin(ReadOnlyLedgerAdmin):
    list_display = (
        "credit_sale",
        "sequence",
        "amount",
        "payment_method",
        "received_by_name",
        "created_at",
    )
    list_filter = ("payment_method", "created_at")
    search_fields = ("credit_sale__customer_phone", "received_by_name")
