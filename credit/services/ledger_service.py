# credit/services/ledger_service.py

"""
CREDIT LEDGER SERVICE (AUTHORITATIVE)

Answers and mutates ONE thing: what a customer still owes on a credit sale.

Operations:
- open_credit_sale()   sale made on credit -> CreditSale(PENDING, balance = total)
- record_payment()     append a CreditPayment and move paid/balance/status (atomic)
- get_credit_sale()    one credit sale + payments (newest first)
- list_credit_sales()  filtered list, each with its payments
- summarize()          outstanding total + per-status counts, recomputed per call

RULES:
- Status comes from derive_status() only
- Payments are append-only; a payment larger than the balance is rejected, never clamped
- record_payment locks the CreditSale row (SELECT ... FOR UPDATE) so concurrent
  payments serialize on the database, not in the process
- Configuration is injected once (LedgerConfig), never re-read per call
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import lru_cache

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, DecimalField, Prefetch, Q, Sum
from django.db.models.functions import Coalesce

from credit.filters import CreditSaleFilter
from credit.models import CreditPayment, CreditSale
from credit.services.credit_status import (
    STATUS_PAID,
    STATUS_PARTIAL,
    STATUS_PENDING,
    STATUSES,
    derive_status,
    normalize_status,
)
from credit.services.exceptions import (
    CreditSaleNotFoundError,
    CreditValidationError,
    IdentityResolutionError,
    PaymentExceedsBalanceError,
    TransientStoreError,
)
from credit.services.operators import resolve_operator_name

logger = logging.getLogger("credit")

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _parse_amount(value) -> Decimal:
    if isinstance(value, bool):
        raise CreditValidationError("Amount must be a valid number")

    try:
        amt = Decimal(str(value).strip())
        if not amt.is_finite():
            raise InvalidOperation(value)
    except (InvalidOperation, ValueError) as exc:
        raise CreditValidationError(f"Amount must be a valid number, got {value!r}") from exc

    if amt <= ZERO:
        raise CreditValidationError("Amount must be greater than 0")

    # sub-cent amounts are rejected, not rounded
    if amt != amt.quantize(TWOPLACES):
        raise CreditValidationError(
            f"Amount cannot have more than 2 decimal places, got {value}"
        )
    return amt


def _operator_uuid(operator_id):
    # received_by only holds well-formed ids; anything else is kept as NULL
    if not operator_id:
        return None
    try:
        return uuid.UUID(str(operator_id))
    except ValueError:
        return None


# ============================================================
# CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class LedgerConfig:
    default_payment_method: str = "CASH"
    payment_methods: frozenset = frozenset({"CASH", "CARD", "MOBILE", "MPESA"})
    unknown_operator_name: str = "Unknown"

    def __post_init__(self):
        if self.default_payment_method not in self.payment_methods:
            raise ImproperlyConfigured(
                f"Default credit payment method {self.default_payment_method!r} "
                f"is not one of {sorted(self.payment_methods)}"
            )

    @classmethod
    def from_settings(cls) -> "LedgerConfig":
        options = getattr(settings, "CREDIT_LEDGER", None) or {}

        methods = options.get("PAYMENT_METHODS") or cls.payment_methods
        methods = frozenset(str(m).strip().upper() for m in methods if str(m).strip())

        return cls(
            default_payment_method=str(
                options.get("DEFAULT_PAYMENT_METHOD") or cls.default_payment_method
            ).strip().upper(),
            payment_methods=methods,
            unknown_operator_name=str(
                options.get("UNKNOWN_OPERATOR_NAME") or cls.unknown_operator_name
            ).strip(),
        )


# ============================================================
# SERVICE
# ============================================================


class CreditLedgerService:
    def __init__(self, config: LedgerConfig | None = None, *, operator_resolver=None):
        self.config = config or LedgerConfig()
        self._resolve_operator = operator_resolver or resolve_operator_name

    # --------------------------------------------------------
    # helpers
    # --------------------------------------------------------

    def _credit_queryset(self):
        return (
            CreditSale.objects.select_related("sale", "sale__user", "business")
            .prefetch_related(
                Prefetch("payments", queryset=CreditPayment.objects.order_by("-sequence"))
            )
            .order_by("-created_at")
        )

    def _normalize_method(self, payment_method) -> str:
        method = str(payment_method or "").strip().upper() or self.config.default_payment_method
        if method not in self.config.payment_methods:
            raise CreditValidationError(
                f"Invalid payment method {method}. "
                f"Use one of: {', '.join(sorted(self.config.payment_methods))}"
            )
        return method

    def _operator_name(self, operator_id) -> str:
        max_length = CreditPayment._meta.get_field("received_by_name").max_length
        try:
            name = self._resolve_operator(operator_id)
        except IdentityResolutionError as exc:
            logger.warning(
                "Operator name lookup failed; recording payment under sentinel name",
                extra={"operator_id": str(operator_id), "reason": str(exc)},
            )
            name = self.config.unknown_operator_name
        # snapshot column is bounded; a full name can be longer
        return name[:max_length]

    def _lock_credit_sale(self, credit_sale_id) -> CreditSale:
        try:
            return CreditSale.objects.select_for_update().get(pk=credit_sale_id)
        except (CreditSale.DoesNotExist, ValidationError, ValueError) as exc:
            logger.error(
                "Credit sale not found during payment",
                extra={"credit_sale_id": str(credit_sale_id)},
            )
            raise CreditSaleNotFoundError("Credit sale not found") from exc

    # --------------------------------------------------------
    # write paths
    # --------------------------------------------------------

    def open_credit_sale(
        self,
        *,
        sale,
        customer_name: str,
        customer_phone: str,
        due_date=None,
        notes: str = "",
        customer_id: str = "",
    ) -> CreditSale:
        name = (customer_name or "").strip()
        phone = (customer_phone or "").strip()
        if not name or not phone:
            raise CreditValidationError(
                "Customer name and phone are required for credit sales"
            )

        total = _money(sale.total_amount)
        if total <= ZERO:
            raise CreditValidationError("Credit sale total must be greater than 0")

        try:
            with transaction.atomic():
                credit = CreditSale.objects.create(
                    sale=sale,
                    business_id=sale.business_id,
                    customer_id=(customer_id or "").strip(),
                    customer_name=name,
                    customer_phone=phone,
                    total_amount=total,
                    paid_amount=ZERO,
                    balance_amount=total,
                    due_date=due_date,
                    notes=(notes or "").strip(),
                )
        except IntegrityError as exc:
            logger.error(
                "Credit sale could not be opened",
                extra={"sale_id": str(sale.pk)},
            )
            raise CreditValidationError(
                f"Sale {sale.pk} already has a credit record"
            ) from exc
        except DatabaseError as exc:
            logger.exception(
                "Datastore failure while opening credit sale",
                extra={"sale_id": str(sale.pk)},
            )
            raise TransientStoreError("Failed to open credit sale") from exc

        logger.info(
            "Credit sale opened",
            extra={
                "credit_sale_id": str(credit.id),
                "sale_id": str(sale.pk),
                "total_amount": str(total),
            },
        )
        return credit

    def record_payment(
        self,
        *,
        credit_sale_id,
        amount,
        payment_method: str | None = None,
        operator_id=None,
        notes: str = "",
    ) -> CreditSale:
        """
        Append one payment to a credit sale and return the updated sale with
        its full payment history (newest first).

        Nothing is written unless every step succeeds.
        """
        if not credit_sale_id or amount is None or str(amount).strip() == "":
            raise CreditValidationError("Credit sale ID and amount are required")

        amt = _parse_amount(amount)
        method = self._normalize_method(payment_method)

        logger.info(
            "Recording credit payment",
            extra={
                "credit_sale_id": str(credit_sale_id),
                "amount": str(amt),
                "payment_method": method,
                "operator_id": str(operator_id),
            },
        )

        try:
            with transaction.atomic():
                credit = self._lock_credit_sale(credit_sale_id)

                if amt > credit.balance_amount:
                    logger.warning(
                        "Credit payment rejected: amount exceeds balance",
                        extra={
                            "credit_sale_id": str(credit.id),
                            "amount": str(amt),
                            "balance": str(credit.balance_amount),
                        },
                    )
                    raise PaymentExceedsBalanceError(
                        amount=amt, balance=_money(credit.balance_amount)
                    )

                payment = CreditPayment.objects.create(
                    credit_sale=credit,
                    sequence=credit.payments.count() + 1,
                    amount=amt,
                    payment_method=method,
                    received_by=_operator_uuid(operator_id),
                    received_by_name=self._operator_name(operator_id),
                    notes=(notes or "").strip(),
                )

                new_paid = credit.paid_amount + amt
                new_balance = credit.total_amount - new_paid
                new_status = derive_status(credit.total_amount, new_paid)

                credit.paid_amount = new_paid
                credit.balance_amount = new_balance
                credit.status = new_status
                credit.save(update_fields=["paid_amount", "balance_amount", "status", "updated_at"])
        except DatabaseError as exc:
            logger.exception(
                "Datastore failure while recording credit payment; rolled back",
                extra={
                    "credit_sale_id": str(credit_sale_id),
                    "amount": str(amt),
                },
            )
            raise TransientStoreError("Failed to record payment") from exc

        logger.info(
            "Credit payment recorded",
            extra={
                "credit_sale_id": str(credit.id),
                "payment_id": str(payment.id),
                "paid_amount": str(new_paid),
                "balance": str(new_balance),
                "status": new_status,
            },
        )

        return self.get_credit_sale(credit.id)

    # --------------------------------------------------------
    # read paths
    # --------------------------------------------------------

    def get_credit_sale(self, credit_sale_id) -> CreditSale:
        try:
            return self._credit_queryset().get(pk=credit_sale_id)
        except (CreditSale.DoesNotExist, ValidationError, ValueError) as exc:
            raise CreditSaleNotFoundError("Credit sale not found") from exc

    def list_credit_sales(
        self,
        *,
        status: str | None = None,
        customer_phone: str | None = None,
        business_id=None,
    ) -> list[CreditSale]:
        data = {}

        status = normalize_status(status)
        if status:
            if status not in STATUSES:
                raise CreditValidationError(
                    f"Invalid status {status}. "
                    f"Use one of: {STATUS_PENDING}, {STATUS_PARTIAL}, {STATUS_PAID}"
                )
            data["status"] = status

        phone = (customer_phone or "").strip()
        if phone:
            data["customer_phone"] = phone

        if business_id:
            data["business_id"] = str(business_id)

        filterset = CreditSaleFilter(data=data, queryset=self._credit_queryset())
        if not filterset.is_valid():
            raise CreditValidationError(f"Invalid credit sale filters: {dict(filterset.errors)}")

        return list(filterset.qs)

    def summarize(self, *, business_id=None) -> dict:
        qs = CreditSale.objects.all()
        if business_id:
            qs = qs.filter(business_id=business_id)

        totals = qs.aggregate(
            total_outstanding=Coalesce(
                Sum("balance_amount"),
                ZERO,
                output_field=DecimalField(max_digits=14, decimal_places=2),
            ),
            total_credits=Count("id"),
            pending_count=Count("id", filter=Q(status=STATUS_PENDING)),
            partial_count=Count("id", filter=Q(status=STATUS_PARTIAL)),
            paid_count=Count("id", filter=Q(status=STATUS_PAID)),
        )

        return {
            "total_outstanding": _money(totals["total_outstanding"]),
            "total_credits": int(totals["total_credits"] or 0),
            "pending_count": int(totals["pending_count"] or 0),
            "partial_count": int(totals["partial_count"] or 0),
            "paid_count": int(totals["paid_count"] or 0),
        }


@lru_cache(maxsize=1)
def get_ledger_service() -> CreditLedgerService:
    """
    Process-wide ledger built once from settings.CREDIT_LEDGER.
    """
    return CreditLedgerService(LedgerConfig.from_settings())
