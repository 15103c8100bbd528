# credit/models/__init__.py

"""
CREDIT MODELS PACKAGE EXPORTS
"""

from .credit_payment import CreditPayment
from .credit_sale import CreditSale

__all__ = [
    "CreditSale",
    "CreditPayment",
]
