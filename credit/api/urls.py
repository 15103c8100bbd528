# credit/api/urls.py

"""
CREDIT API URLS

Mounted at /api/credit/ by backend/urls.py.

Rules:
- Explicit routes (summary/, payment/, customer/) MUST come before the
  <credit_sale_id>/ catch-all, otherwise "summary" is read as an id.
- The id segment is a plain string so malformed ids get the enveloped 404.
"""

from django.urls import path

from credit.api.views import (
    CreditSaleDetailView,
    CreditSaleListView,
    CreditSummaryView,
    CustomerCreditHistoryView,
    RecordCreditPaymentView,
)

urlpatterns = [
    path("", CreditSaleListView.as_view(), name="credit-list"),
    path("summary/", CreditSummaryView.as_view(), name="credit-summary"),
    path("payment/", RecordCreditPaymentView.as_view(), name="credit-payment"),
    path(
        "customer/<str:phone>/",
        CustomerCreditHistoryView.as_view(),
        name="credit-customer",
    ),
    path("<str:credit_sale_id>/", CreditSaleDetailView.as_view(), name="credit-detail"),
]
