# sales/api/urls.py

"""
SALES API URLS

Mounted at /api/sales/ by backend/urls.py.

Provides:
- POST /api/sales/   record a sale (credit sales open a CreditSale)
"""

from django.urls import path

from sales.views.sale import RecordSaleView

urlpatterns = [
    path("", RecordSaleView.as_view(), name="sales-record"),
]
