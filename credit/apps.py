# credit/apps.py

"""
CREDIT APP CONFIG

Credit ledger module:
- CreditSale opened when a sale is paid on credit
- CreditPayment rows appended as the customer pays
- Settlement status derived from amounts only
"""

from django.apps import AppConfig


class CreditConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "credit"
    verbose_name = "Credit Ledger"
