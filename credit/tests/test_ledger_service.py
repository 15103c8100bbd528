import uuid
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError
from django.db.models.query import QuerySet
from django.test import TestCase, override_settings

from businesses.models import Business
from credit.models import CreditPayment, CreditSale
from credit.services.credit_status import (
    STATUS_PAID,
    STATUS_PARTIAL,
    STATUS_PENDING,
    derive_status,
)
from credit.services.exceptions import (
    CreditSaleNotFoundError,
    CreditValidationError,
    IdentityResolutionError,
    PaymentExceedsBalanceError,
    TransientStoreError,
)
from credit.services.ledger_service import CreditLedgerService, LedgerConfig
from sales.models import Sale

User = get_user_model()


class LedgerTestCase(TestCase):
    def setUp(self):
        self.business = Business.objects.create(name="Mji Pharmacy", code="MJI")
        self.cashier = User.objects.create_user(
            email="cashier@example.com",
            password="pass",
            role="cashier",
            first_name="Grace",
            last_name="Wambui",
            business=self.business,
        )
        self.ledger = CreditLedgerService(LedgerConfig())

    def make_credit(self, total="1000.00", phone="0711000001", business=None):
        sale = Sale.objects.create(
            business=business or self.business,
            user=self.cashier,
            total_amount=Decimal(total),
            payment_method=Sale.METHOD_CREDIT,
            customer_name="Jane Achieng",
            customer_phone=phone,
        )
        return self.ledger.open_credit_sale(
            sale=sale,
            customer_name="Jane Achieng",
            customer_phone=phone,
        )

    def pay(self, credit, amount, **kwargs):
        kwargs.setdefault("operator_id", self.cashier.id)
        return self.ledger.record_payment(
            credit_sale_id=credit.id, amount=amount, **kwargs
        )


class OpenCreditSaleTests(LedgerTestCase):
    def test_new_credit_sale_owes_full_total(self):
        credit = self.make_credit("1000.00")

        self.assertEqual(credit.total_amount, Decimal("1000.00"))
        self.assertEqual(credit.paid_amount, Decimal("0.00"))
        self.assertEqual(credit.balance_amount, Decimal("1000.00"))
        self.assertEqual(credit.status, STATUS_PENDING)
        self.assertEqual(credit.business_id, self.business.id)

    def test_customer_name_and_phone_are_required(self):
        sale = Sale.objects.create(
            business=self.business, user=self.cashier, total_amount=Decimal("50.00")
        )
        with self.assertRaises(CreditValidationError):
            self.ledger.open_credit_sale(sale=sale, customer_name="", customer_phone="0711")
        with self.assertRaises(CreditValidationError):
            self.ledger.open_credit_sale(sale=sale, customer_name="Jane", customer_phone=" ")

        self.assertEqual(CreditSale.objects.count(), 0)

    def test_zero_total_sale_cannot_open_credit(self):
        sale = Sale.objects.create(
            business=self.business, user=self.cashier, total_amount=Decimal("0.00")
        )
        with self.assertRaises(CreditValidationError):
            self.ledger.open_credit_sale(sale=sale, customer_name="Jane", customer_phone="0711")

    def test_a_sale_opens_at_most_one_credit(self):
        credit = self.make_credit()

        with self.assertRaises(CreditValidationError):
            self.ledger.open_credit_sale(
                sale=credit.sale, customer_name="Jane", customer_phone="0711"
            )
        self.assertEqual(CreditSale.objects.count(), 1)


class RecordPaymentScenarioTests(LedgerTestCase):
    """
    GUARANTEES:
    - paid grows by exactly the payment amount
    - balance = total - paid
    - status follows derive_status
    """

    def test_partial_payment_moves_pending_to_partial(self):
        credit = self.make_credit("1000.00")

        updated = self.pay(credit, Decimal("400"))

        self.assertEqual(updated.paid_amount, Decimal("400.00"))
        self.assertEqual(updated.balance_amount, Decimal("600.00"))
        self.assertEqual(updated.status, STATUS_PARTIAL)

        payments = list(updated.payments.all())
        self.assertEqual(len(payments), 1)
        self.assertEqual(payments[0].amount, Decimal("400.00"))
        self.assertEqual(payments[0].sequence, 1)
        self.assertEqual(payments[0].payment_method, "CASH")
        self.assertEqual(payments[0].received_by, self.cashier.id)
        self.assertEqual(payments[0].received_by_name, "Grace Wambui")

    def test_second_payment_settles_credit(self):
        credit = self.make_credit("1000.00")
        self.pay(credit, "400")

        updated = self.pay(credit, "600")

        self.assertEqual(updated.paid_amount, Decimal("1000.00"))
        self.assertEqual(updated.balance_amount, Decimal("0.00"))
        self.assertEqual(updated.status, STATUS_PAID)
        self.assertEqual(
            [p.amount for p in updated.payments.all()],
            [Decimal("600.00"), Decimal("400.00")],
        )

    def test_overpayment_is_rejected_and_nothing_changes(self):
        credit = self.make_credit("200.00")

        with self.assertRaises(PaymentExceedsBalanceError) as ctx:
            self.pay(credit, "250")

        self.assertIn("250", str(ctx.exception))
        self.assertIn("200", str(ctx.exception))
        self.assertEqual(ctx.exception.amount, Decimal("250.00"))
        self.assertEqual(ctx.exception.balance, Decimal("200.00"))

        credit.refresh_from_db()
        self.assertEqual(credit.balance_amount, Decimal("200.00"))
        self.assertEqual(credit.paid_amount, Decimal("0.00"))
        self.assertEqual(credit.status, STATUS_PENDING)
        self.assertEqual(CreditPayment.objects.count(), 0)

    def test_overpayment_is_a_validation_error(self):
        credit = self.make_credit("200.00")

        with self.assertRaises(CreditValidationError):
            self.pay(credit, "200.01")

    def test_non_positive_amounts_are_rejected_before_any_query(self):
        credit = self.make_credit("200.00")

        for amount in (0, "0", Decimal("0.00"), -5, "-5"):
            with self.subTest(amount=amount):
                with self.assertNumQueries(0):
                    with self.assertRaises(CreditValidationError):
                        self.pay(credit, amount)

    def test_non_numeric_amount_is_rejected(self):
        credit = self.make_credit("200.00")

        for amount in ("abc", "NaN", "Infinity", True):
            with self.subTest(amount=amount):
                with self.assertRaises(CreditValidationError):
                    self.pay(credit, amount)

    def test_missing_id_or_amount_is_rejected(self):
        credit = self.make_credit()

        with self.assertRaisesMessage(
            CreditValidationError, "Credit sale ID and amount are required"
        ):
            self.ledger.record_payment(credit_sale_id="", amount="10")

        with self.assertRaisesMessage(
            CreditValidationError, "Credit sale ID and amount are required"
        ):
            self.ledger.record_payment(credit_sale_id=credit.id, amount=None)

    def test_unknown_credit_sale_is_not_found(self):
        with self.assertRaises(CreditSaleNotFoundError):
            self.ledger.record_payment(credit_sale_id=uuid.uuid4(), amount="10")

        with self.assertRaises(CreditSaleNotFoundError):
            self.ledger.record_payment(credit_sale_id="not-a-uuid", amount="10")

    def test_payment_equal_to_balance_settles_credit(self):
        credit = self.make_credit("350.50")
        self.pay(credit, "100.25")

        updated = self.pay(credit, "250.25")

        self.assertEqual(updated.balance_amount, Decimal("0.00"))
        self.assertEqual(updated.status, STATUS_PAID)

    def test_settled_credit_rejects_further_payments(self):
        credit = self.make_credit("100.00")
        self.pay(credit, "100")

        with self.assertRaises(PaymentExceedsBalanceError):
            self.pay(credit, "0.01")

    def test_rejected_payment_can_be_repeated_without_effect(self):
        credit = self.make_credit("200.00")
        self.pay(credit, "50")

        for _ in range(2):
            with self.assertRaises(PaymentExceedsBalanceError):
                self.pay(credit, "500")

        credit.refresh_from_db()
        self.assertEqual(credit.paid_amount, Decimal("50.00"))
        self.assertEqual(credit.balance_amount, Decimal("150.00"))
        self.assertEqual(credit.payments.count(), 1)

    def test_amount_with_sub_cent_digits_is_rejected(self):
        credit = self.make_credit("100.00")

        with self.assertRaises(CreditValidationError):
            self.pay(credit, "10.005")

        credit.refresh_from_db()
        self.assertEqual(credit.paid_amount, Decimal("0.00"))
        self.assertEqual(CreditPayment.objects.count(), 0)

    def test_sub_cent_excess_over_balance_is_not_accepted(self):
        credit = self.make_credit("200.00")

        with self.assertRaises(CreditValidationError):
            self.pay(credit, "200.004")

        credit.refresh_from_db()
        self.assertEqual(credit.paid_amount, Decimal("0.00"))
        self.assertEqual(credit.balance_amount, Decimal("200.00"))
        self.assertEqual(credit.status, STATUS_PENDING)
        self.assertEqual(CreditPayment.objects.count(), 0)

    def test_trailing_zero_decimals_are_accepted(self):
        credit = self.make_credit("100.00")

        updated = self.pay(credit, "10.500")

        self.assertEqual(updated.paid_amount, Decimal("10.50"))

    def test_overpayment_error_reports_the_amount_as_given(self):
        credit = self.make_credit("200.00")

        with self.assertRaises(PaymentExceedsBalanceError) as ctx:
            self.pay(credit, "200.5")

        self.assertEqual(ctx.exception.amount, Decimal("200.5"))
        self.assertIn("200.5", str(ctx.exception))


class LedgerInvariantTests(LedgerTestCase):
    def test_paid_equals_sum_of_payments_and_balances_add_up(self):
        credit = self.make_credit("1000.00")

        for amount in ("100", "250.50", "49.50", "600"):
            updated = self.pay(credit, amount)

            payments_total = sum(p.amount for p in updated.payments.all())
            self.assertEqual(updated.paid_amount, payments_total)
            self.assertEqual(updated.paid_amount + updated.balance_amount, updated.total_amount)
            self.assertEqual(
                updated.status, derive_status(updated.total_amount, updated.paid_amount)
            )

        self.assertEqual(updated.status, STATUS_PAID)

    def test_sequences_are_contiguous_and_newest_first(self):
        credit = self.make_credit("100.00")
        for _ in range(3):
            updated = self.pay(credit, "10")

        self.assertEqual([p.sequence for p in updated.payments.all()], [3, 2, 1])


class PaymentMethodTests(LedgerTestCase):
    def test_method_defaults_to_cash(self):
        credit = self.make_credit()

        updated = self.pay(credit, "10", payment_method=None)

        self.assertEqual(updated.payments.all()[0].payment_method, "CASH")

    def test_method_is_uppercased(self):
        credit = self.make_credit()

        updated = self.pay(credit, "10", payment_method=" mpesa ")

        self.assertEqual(updated.payments.all()[0].payment_method, "MPESA")

    def test_unknown_method_is_rejected(self):
        credit = self.make_credit()

        with self.assertRaises(CreditValidationError):
            self.pay(credit, "10", payment_method="cheque")

        self.assertEqual(CreditPayment.objects.count(), 0)

    def test_configured_default_method_is_used(self):
        ledger = CreditLedgerService(
            LedgerConfig(
                default_payment_method="MOBILE",
                payment_methods=frozenset({"MOBILE", "CASH"}),
            )
        )
        credit = self.make_credit()

        updated = ledger.record_payment(credit_sale_id=credit.id, amount="10")

        self.assertEqual(updated.payments.all()[0].payment_method, "MOBILE")


class OperatorIdentityTests(LedgerTestCase):
    def test_missing_operator_is_recorded_as_unknown(self):
        credit = self.make_credit()

        updated = self.pay(credit, "10", operator_id=None)

        payment = updated.payments.all()[0]
        self.assertEqual(payment.received_by_name, "Unknown")
        self.assertIsNone(payment.received_by)

    def test_unknown_operator_id_is_recorded_as_unknown(self):
        credit = self.make_credit()
        ghost = uuid.uuid4()

        updated = self.pay(credit, "10", operator_id=ghost)

        payment = updated.payments.all()[0]
        self.assertEqual(payment.received_by_name, "Unknown")
        self.assertEqual(payment.received_by, ghost)

    def test_failing_resolver_does_not_fail_the_payment(self):
        def resolver(operator_id):
            raise IdentityResolutionError("directory offline")

        ledger = CreditLedgerService(
            LedgerConfig(unknown_operator_name="N/A"), operator_resolver=resolver
        )
        credit = self.make_credit()

        updated = ledger.record_payment(
            credit_sale_id=credit.id, amount="10", operator_id=self.cashier.id
        )

        self.assertEqual(updated.paid_amount, Decimal("10.00"))
        self.assertEqual(updated.payments.all()[0].received_by_name, "N/A")

    def test_operator_name_falls_back_to_username(self):
        clerk = User.objects.create_user(username="clerk2", password="pass")
        credit = self.make_credit()

        updated = self.pay(credit, "10", operator_id=clerk.id)

        self.assertEqual(updated.payments.all()[0].received_by_name, "clerk2")

    def test_long_operator_name_is_cut_to_column_width(self):
        clerk = User.objects.create_user(
            email="long.name@example.com",
            password="pass",
            first_name="A" * 100,
            last_name="B" * 100,
        )
        credit = self.make_credit("100.00")

        updated = self.pay(credit, "10", operator_id=clerk.id)

        payment = updated.payments.all()[0]
        self.assertEqual(len(payment.received_by_name), 100)
        self.assertEqual(payment.received_by_name, "A" * 100)
        self.assertEqual(updated.paid_amount, Decimal("10.00"))

    def test_long_sentinel_name_is_cut_to_column_width(self):
        ledger = CreditLedgerService(LedgerConfig(unknown_operator_name="X" * 150))
        credit = self.make_credit("100.00")

        updated = ledger.record_payment(
            credit_sale_id=credit.id, amount="10", operator_id=uuid.uuid4()
        )

        self.assertEqual(updated.payments.all()[0].received_by_name, "X" * 100)


class TransientStoreFailureTests(LedgerTestCase):
    def test_failed_payment_insert_rolls_back(self):
        credit = self.make_credit("500.00")

        with patch.object(
            CreditPayment.objects, "create", side_effect=DatabaseError("connection reset")
        ):
            with self.assertRaises(TransientStoreError):
                self.pay(credit, "100")

        credit.refresh_from_db()
        self.assertEqual(credit.paid_amount, Decimal("0.00"))
        self.assertEqual(credit.balance_amount, Decimal("500.00"))
        self.assertEqual(CreditPayment.objects.count(), 0)

    def test_failed_credit_update_discards_the_payment_row(self):
        credit = self.make_credit("500.00")

        with patch.object(CreditSale, "save", side_effect=DatabaseError("disk full")):
            with self.assertRaises(TransientStoreError):
                self.pay(credit, "100")

        credit.refresh_from_db()
        self.assertEqual(credit.paid_amount, Decimal("0.00"))
        self.assertEqual(CreditPayment.objects.count(), 0)

    def test_credit_row_is_locked_for_update(self):
        credit = self.make_credit("500.00")

        with patch.object(
            QuerySet,
            "select_for_update",
            autospec=True,
            side_effect=QuerySet.select_for_update,
        ) as lock:
            self.pay(credit, "100")

        locked_models = [call.args[0].model for call in lock.call_args_list]
        self.assertIn(CreditSale, locked_models)

    def test_rejected_overpayment_still_takes_the_row_lock(self):
        credit = self.make_credit("100.00")

        with patch.object(
            QuerySet,
            "select_for_update",
            autospec=True,
            side_effect=QuerySet.select_for_update,
        ) as lock:
            with self.assertRaises(PaymentExceedsBalanceError):
                self.pay(credit, "150")

        self.assertTrue(any(call.args[0].model is CreditSale for call in lock.call_args_list))


class ReadPathTests(LedgerTestCase):
    def test_get_credit_sale_returns_payments_newest_first(self):
        credit = self.make_credit("300.00")
        self.pay(credit, "100")
        self.pay(credit, "50")

        fetched = self.ledger.get_credit_sale(credit.id)

        self.assertEqual(fetched.id, credit.id)
        self.assertEqual(
            [p.amount for p in fetched.payments.all()],
            [Decimal("50.00"), Decimal("100.00")],
        )

    def test_get_missing_credit_sale_is_not_found(self):
        with self.assertRaises(CreditSaleNotFoundError):
            self.ledger.get_credit_sale(uuid.uuid4())
        with self.assertRaises(CreditSaleNotFoundError):
            self.ledger.get_credit_sale("nope")

    def test_status_filter_returns_only_matching_sales(self):
        paid = self.make_credit("100.00", phone="0711000001")
        partial = self.make_credit("100.00", phone="0711000002")
        pending = self.make_credit("100.00", phone="0711000003")
        self.pay(paid, "100")
        self.pay(partial, "40")

        result = self.ledger.list_credit_sales(status="PAID")

        self.assertEqual([c.id for c in result], [paid.id])
        self.assertTrue(all(c.status == STATUS_PAID for c in result))

        self.assertEqual(
            {c.id for c in self.ledger.list_credit_sales(status="partial")}, {partial.id}
        )
        self.assertEqual(
            {c.id for c in self.ledger.list_credit_sales(status="Pending")}, {pending.id}
        )

    def test_unfiltered_list_returns_everything(self):
        a = self.make_credit(phone="0711000001")
        b = self.make_credit(phone="0711000002")

        self.assertEqual({c.id for c in self.ledger.list_credit_sales()}, {a.id, b.id})

    def test_filters_combine(self):
        other = Business.objects.create(name="Kilimani Chemist")
        mine = self.make_credit(phone="0711000001")
        self.make_credit(phone="0711000002")
        self.make_credit(phone="0711000001", business=other)

        result = self.ledger.list_credit_sales(
            customer_phone="0711000001", business_id=self.business.id
        )

        self.assertEqual([c.id for c in result], [mine.id])

    def test_unknown_status_filter_is_rejected(self):
        with self.assertRaises(CreditValidationError):
            self.ledger.list_credit_sales(status="settled")

    def test_summary_counts_and_outstanding(self):
        a = self.make_credit("1000.00", phone="0711000001")
        b = self.make_credit("200.00", phone="0711000002")
        self.make_credit("300.00", phone="0711000003")
        self.pay(a, "400")
        self.pay(b, "200")

        summary = self.ledger.summarize(business_id=self.business.id)

        self.assertEqual(
            summary,
            {
                "total_outstanding": Decimal("900.00"),
                "total_credits": 3,
                "pending_count": 1,
                "partial_count": 1,
                "paid_count": 1,
            },
        )

    def test_summary_is_business_scoped(self):
        other = Business.objects.create(name="Kilimani Chemist")
        self.make_credit("1000.00")
        self.make_credit("50.00", business=other)

        summary = self.ledger.summarize(business_id=other.id)

        self.assertEqual(summary["total_outstanding"], Decimal("50.00"))
        self.assertEqual(summary["total_credits"], 1)
        self.assertEqual(self.ledger.summarize()["total_credits"], 2)

    def test_empty_summary_is_zero(self):
        summary = self.ledger.summarize(business_id=self.business.id)

        self.assertEqual(summary["total_outstanding"], Decimal("0.00"))
        self.assertEqual(summary["total_credits"], 0)


class LedgerConfigTests(TestCase):
    @override_settings(
        CREDIT_LEDGER={
            "DEFAULT_PAYMENT_METHOD": "card",
            "PAYMENT_METHODS": ["cash", "card"],
            "UNKNOWN_OPERATOR_NAME": "Front desk",
        }
    )
    def test_from_settings_normalizes_values(self):
        config = LedgerConfig.from_settings()

        self.assertEqual(config.default_payment_method, "CARD")
        self.assertEqual(config.payment_methods, frozenset({"CASH", "CARD"}))
        self.assertEqual(config.unknown_operator_name, "Front desk")

    @override_settings(CREDIT_LEDGER={})
    def test_from_settings_defaults(self):
        config = LedgerConfig.from_settings()

        self.assertEqual(config, LedgerConfig())

    def test_default_method_must_be_allowed(self):
        with self.assertRaises(ImproperlyConfigured):
            LedgerConfig(default_payment_method="CHEQUE")
