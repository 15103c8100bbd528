# sales/admin.py

from django.contrib import admin

from sales.models.sale import Sale


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_no",
        "business",
        "payment_method",
        "total_amount",
        "customer_name",
        "created_at",
    )
    readonly_fields = (
        "invoice_no",
        "business",
        "user",
        "total_amount",
        "payment_method",
        "customer_name",
        "customer_phone",
        "created_at",
    )
    search_fields = ("invoice_no", "customer_name", "customer_phone")
    list_filter = ("payment_method", "business", "created_at")

    def has_delete_permission(self, request, obj=None):
        return False
