"""
CREDIT SETTLEMENT STATUS RULES

The ONLY place where a credit sale's status is decided.

DESIGN PRINCIPLES:
- Pure function of (total_amount, paid_amount)
- No database access
- Every write path (service + model save) calls derive_status
"""

from __future__ import annotations

from decimal import Decimal

STATUS_PENDING = "PENDING"
STATUS_PARTIAL = "PARTIAL"
STATUS_PAID = "PAID"

STATUS_CHOICES = [
    (STATUS_PENDING, "Pending"),
    (STATUS_PARTIAL, "Partially paid"),
    (STATUS_PAID, "Paid"),
]

STATUSES = {STATUS_PENDING, STATUS_PARTIAL, STATUS_PAID}

ZERO = Decimal("0.00")


def derive_status(total, paid) -> str:
    total = Decimal(str(total))
    paid = Decimal(str(paid))

    if total - paid <= ZERO:
        return STATUS_PAID
    if paid > ZERO:
        return STATUS_PARTIAL
    return STATUS_PENDING


def normalize_status(value) -> str | None:
    """
    Accept any casing ("paid", "Paid") and return the canonical value,
    or None when the input is blank. Unknown values are returned uppercased
    so callers can reject them with the original spelling in view.
    """
    s = str(value or "").strip().upper()
    return s or None
