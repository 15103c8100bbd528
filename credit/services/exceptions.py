# credit/services/exceptions.py

"""
CREDIT LEDGER SERVICE ERRORS

Centralized domain errors for the credit ledger.
"""


class CreditLedgerError(Exception):
    """Base exception for all credit ledger failures."""


class CreditValidationError(CreditLedgerError):
    """Raised when input is missing, malformed or out of range."""


class PaymentExceedsBalanceError(CreditValidationError):
    """Raised when a payment would take the balance below zero."""

    def __init__(self, amount, balance):
        self.amount = amount
        self.balance = balance
        super().__init__(f"Payment amount ({amount}) exceeds balance ({balance})")


class CreditSaleNotFoundError(CreditLedgerError):
    """Raised when the referenced credit sale does not exist."""


class TransientStoreError(CreditLedgerError):
    """Raised when the datastore fails mid-operation; the transaction was rolled back."""


class IdentityResolutionError(CreditLedgerError):
    """Raised when an operator id cannot be turned into a display name (non-fatal)."""
