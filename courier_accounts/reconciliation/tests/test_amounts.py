"""Unit tests for per-order courier amounts."""

from __future__ import annotations

import unittest
from decimal import Decimal

from courier_accounts.reconciliation.amounts import (
    courier_base_amount,
    courier_total_amount,
    split_payment_base_amount,
    withheld_fees,
)
from courier_accounts.reconciliation.models import Order, ReportDiagnostics


def _order(**columns) -> Order:
    record = {"id": "o1"}
    record.update(columns)
    return Order.from_record(record)


class TestCourierBaseAmount(unittest.TestCase):
    def test_partial_uses_magnitude(self) -> None:
        order = _order(status="partial", total_order_fees=100, partial_paid_amount=-40, delivery_fee=10, hold_fee=5)
        self.assertEqual(courier_base_amount(order), Decimal("40"))
        self.assertEqual(courier_total_amount(order), Decimal("45"))

    def test_partial_with_zero_amount_is_zero(self) -> None:
        order = _order(status="partial", total_order_fees=100, partial_paid_amount=0)
        self.assertEqual(courier_base_amount(order), Decimal("0"))

    def test_hand_to_hand_base_is_zero(self) -> None:
        order = _order(status="hand_to_hand", total_order_fees=300, partial_paid_amount=50)
        self.assertEqual(courier_base_amount(order), Decimal("0"))

    def test_delivered_uses_order_total(self) -> None:
        order = _order(status="delivered", total_order_fees="250.50")
        self.assertEqual(courier_base_amount(order), Decimal("250.50"))

    def test_partial_amount_on_other_status(self) -> None:
        order = _order(status="assigned", total_order_fees=500, partial_paid_amount="-75")
        self.assertEqual(courier_base_amount(order), Decimal("75"))

    def test_pending_without_partial_is_zero(self) -> None:
        order = _order(status="pending", total_order_fees=500)
        self.assertEqual(courier_base_amount(order), Decimal("0"))


class TestCourierTotalAmount(unittest.TestCase):
    def test_hand_to_hand_is_clamped(self) -> None:
        order = _order(status="hand_to_hand", partial_paid_amount=0, delivery_fee=0, hold_fee=20)
        self.assertEqual(courier_total_amount(order), Decimal("0"))

    def test_hand_to_hand_keeps_positive_result(self) -> None:
        order = _order(status="hand_to_hand", partial_paid_amount=30, delivery_fee=20, extra_fee=10)
        self.assertEqual(courier_total_amount(order), Decimal("40"))

    def test_partial_is_not_clamped(self) -> None:
        order = _order(status="partial", partial_paid_amount=0, delivery_fee=0, hold_fee=30)
        self.assertEqual(courier_total_amount(order), Decimal("-30"))

    def test_delivered_subtracts_withheld_fees(self) -> None:
        order = _order(status="delivered", total_order_fees=200, delivery_fee=20, admin_delivery_fee=3, extra_fee=5)
        self.assertEqual(courier_total_amount(order), Decimal("212"))

    def test_canceled_and_return_without_fees_are_zero(self) -> None:
        for status in ("canceled", "return"):
            order = _order(status=status, total_order_fees=900, partial_paid_amount=100)
            self.assertEqual(courier_total_amount(order), Decimal("0"), status)

    def test_canceled_and_return_keep_fee_terms(self) -> None:
        # Base amount is excluded but delivery and withheld fees still count.
        canceled = _order(status="canceled", total_order_fees=900, delivery_fee=15, hold_fee=5)
        returned = _order(status="return", total_order_fees=400, admin_delivery_fee=7)
        self.assertEqual(courier_total_amount(canceled), Decimal("10"))
        self.assertEqual(courier_total_amount(returned), Decimal("-7"))

    def test_malformed_money_counts_as_zero(self) -> None:
        order = _order(status="delivered", total_order_fees="abc", delivery_fee="", hold_fee=None, extra_fee="NaN")
        self.assertEqual(courier_total_amount(order), Decimal("0"))
        self.assertEqual(withheld_fees(order), Decimal("0"))


class TestSplitPaymentAmounts(unittest.TestCase):
    def test_split_base_is_sum_of_sub_payments(self) -> None:
        order = _order(
            status="delivered",
            total_order_fees=50,
            payment_sub_type="onther",
            onther_payments=[{"method": "cash", "amount": "30"}, {"method": "wallet", "amount": "20"}],
            delivery_fee=0,
        )
        self.assertEqual(split_payment_base_amount(order), Decimal("50"))
        self.assertEqual(courier_total_amount(order), Decimal("50"))

    def test_split_from_json_text(self) -> None:
        order = _order(
            status="assigned",
            payment_sub_type="onther",
            onther_payments='[{"method": "instapay", "amount": 70.5}]',
            delivery_fee=10,
            hold_fee=0.5,
        )
        self.assertEqual(courier_total_amount(order), Decimal("80.0"))

    def test_malformed_split_payload_degrades_to_zero(self) -> None:
        diagnostics = ReportDiagnostics()
        order = _order(
            status="delivered",
            total_order_fees=100,
            payment_sub_type="onther",
            onther_payments="[not json",
            delivery_fee=10,
        )
        with self.assertLogs("courier_accounts.reconciliation.split_payments", level="WARNING"):
            total = courier_total_amount(order, diagnostics=diagnostics)
        self.assertEqual(total, Decimal("10"))
        self.assertEqual(diagnostics.malformed_split_payments, ["o1"])

    def test_partial_status_ignores_split_payload(self) -> None:
        order = _order(
            status="partial",
            partial_paid_amount=25,
            payment_sub_type="onther",
            onther_payments=[{"method": "cash", "amount": "999"}],
        )
        self.assertEqual(courier_total_amount(order), Decimal("25"))
