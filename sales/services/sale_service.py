# sales/services/sale_service.py

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import DatabaseError, transaction

from credit.services.exceptions import CreditLedgerError
from credit.services.ledger_service import get_ledger_service
from sales.models import Sale

logger = logging.getLogger("sales")

TWOPLACES = Decimal("0.01")

ALLOWED_METHODS = {choice for choice, _ in Sale.METHOD_CHOICES}


class SaleRecordingError(Exception):
    pass


def _money(v) -> Decimal:
    try:
        return Decimal(str(v).strip()).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise SaleRecordingError(f"Invalid sale total: {v!r}") from exc


def record_sale(
    *,
    user,
    total_amount,
    payment_method: str = "cash",
    customer_name: str = "",
    customer_phone: str = "",
    due_date=None,
    notes: str = "",
    ledger=None,
):
    """
    CORE SALES DOMAIN SERVICE

    SINGLE SOURCE OF TRUTH for:
    - Sale creation
    - Opening the CreditSale of a sale made on credit

    GUARANTEES:
    - Fully atomic: a credit sale never exists without its Sale, and a
      "credit" Sale never exists without its CreditSale
    - Business is taken from the cashier, never from the client

    Returns (sale, credit_sale_or_None).
    """
    method = (payment_method or Sale.METHOD_CASH).strip().lower()
    if method not in ALLOWED_METHODS:
        raise SaleRecordingError(
            f"Invalid payment method {method}. Use one of: {', '.join(sorted(ALLOWED_METHODS))}"
        )

    total = _money(total_amount)
    if total <= Decimal("0.00"):
        raise SaleRecordingError("Sale total must be greater than 0")

    customer_name = (customer_name or "").strip()
    customer_phone = (customer_phone or "").strip()

    is_credit = method == Sale.METHOD_CREDIT
    if is_credit and (not customer_name or not customer_phone):
        raise SaleRecordingError(
            "Customer name and phone are required for credit sales"
        )

    ledger = ledger or get_ledger_service()

    try:
        with transaction.atomic():
            sale = Sale.objects.create(
                business_id=getattr(user, "business_id", None),
                user=user,
                total_amount=total,
                payment_method=method,
                customer_name=customer_name,
                customer_phone=customer_phone,
                notes=(notes or "").strip(),
            )

            credit = None
            if is_credit:
                credit = ledger.open_credit_sale(
                    sale=sale,
                    customer_name=customer_name,
                    customer_phone=customer_phone,
                    due_date=due_date,
                    notes=notes,
                )
    except CreditLedgerError as exc:
        raise SaleRecordingError(str(exc)) from exc
    except DatabaseError as exc:
        logger.exception("Datastore failure while recording sale", extra={"total_amount": str(total)})
        raise SaleRecordingError("Failed to record sale") from exc

    logger.info(
        "Sale recorded",
        extra={
            "sale_id": str(sale.id),
            "invoice_no": sale.invoice_no,
            "payment_method": method,
            "total_amount": str(total),
            "credit_sale_id": str(credit.id) if credit else None,
        },
    )
    return sale, credit
