"""Unit tests for the composed courier reconciliation report."""

from __future__ import annotations

import unittest
from decimal import Decimal

from courier_accounts.reconciliation.models import (
    Order,
    OrderSnapshot,
    OrderStatus,
    PaymentChannel,
    ReportScope,
)
from courier_accounts.reconciliation.report import compute_report


def _order(order_id: str, **columns) -> Order:
    record = {"id": order_id}
    record.update(columns)
    return Order.from_record(record)


def _orders() -> list:
    return [
        _order("o1", status="delivered", total_order_fees=100, delivery_fee=10, payment_method="cash", assigned_courier_id="c1"),
        _order(
            "o2",
            status="delivered",
            total_order_fees=200,
            collected_by="CAR",
            hold_fee=20,
            hold_fee_added_at="2026-03-01T10:00:00Z",
            assigned_courier_id="c1",
        ),
        _order(
            "o3",
            status="partial",
            total_order_fees=150,
            partial_paid_amount=-50,
            delivery_fee=10,
            payment_method="instapay",
            assigned_courier_id="c2",
        ),
        _order("o4", status="assigned", total_order_fees=80, payment_method="wallet", assigned_courier_id="c2"),
        _order("o5", status="pending", total_order_fees=70, payment_method="valu"),
        _order(
            "o6",
            status="delivered",
            total_order_fees=100,
            payment_sub_type="onther",
            onther_payments=[{"method": "wallet", "amount": "60"}, {"method": "visa_machine", "amount": "40"}],
            extra_fee=5,
            assigned_courier_id="c1",
        ),
    ]


class TestEmptyReport(unittest.TestCase):
    def test_empty_and_none_give_zeroed_report(self) -> None:
        for orders in ([], None):
            report = compute_report(orders)
            self.assertEqual(report.total_orders_count, 0)
            self.assertEqual(report.total_original_value, Decimal("0"))
            self.assertEqual(set(report.statuses), set(OrderStatus))
            self.assertEqual(set(report.channels), set(PaymentChannel))
            self.assertTrue(all(b.count == 0 for b in report.statuses.values()))
            self.assertEqual(report.total_cod.amount, Decimal("0"))
            self.assertEqual(report.adjusted_total, Decimal("0"))
            self.assertEqual(report.accounting_difference, Decimal("0"))
            self.assertFalse(report.diagnostics.has_issues)
            summary = report.as_dict()
            self.assertEqual(summary["totals"]["orders_count"], 0)
            self.assertEqual(len(summary["channels"]), 8)


class TestComputeReport(unittest.TestCase):
    def test_totals_and_fees(self) -> None:
        report = compute_report(_orders())
        self.assertEqual(report.total_orders_count, 6)
        self.assertEqual(report.total_original_value, Decimal("700"))
        self.assertEqual(report.total_hold_fees, Decimal("20"))
        self.assertEqual(report.total_extra_fees, Decimal("5"))
        self.assertEqual(report.total_admin_delivery_fees, Decimal("0"))
        self.assertEqual(report.adjusted_total, Decimal("675"))
        self.assertEqual(report.total_delivery_fees, Decimal("20"))
        self.assertEqual(report.total_partial_amounts, Decimal("50"))

    def test_status_buckets(self) -> None:
        report = compute_report(_orders())
        delivered = report.status(OrderStatus.DELIVERED)
        self.assertEqual((delivered.count, delivered.original_value, delivered.collected), (3, Decimal("400"), Decimal("385")))
        self.assertEqual(report.status(OrderStatus.PARTIAL).collected, Decimal("60"))
        self.assertEqual(report.status(OrderStatus.PENDING).count, 1)
        self.assertEqual(report.status(OrderStatus.ASSIGNED).count, 1)
        self.assertIsNone(report.diagnostics.count_mismatch)

    def test_channels_and_cod(self) -> None:
        report = compute_report(_orders())
        amounts = {c: report.channel(c).amount for c in PaymentChannel}
        self.assertEqual(amounts[PaymentChannel.CASH], Decimal("110"))
        self.assertEqual(amounts[PaymentChannel.ON_HAND], Decimal("180"))
        self.assertEqual(amounts[PaymentChannel.INSTAPAY], Decimal("60"))
        self.assertEqual(amounts[PaymentChannel.WALLET], Decimal("60"))
        self.assertEqual(amounts[PaymentChannel.VISA_MACHINE], Decimal("40"))
        self.assertEqual(amounts[PaymentChannel.VALU], Decimal("0"))
        self.assertEqual(report.channel(PaymentChannel.WALLET).orders[0].id, "o6")
        self.assertEqual(report.total_cod.count, 4)
        self.assertEqual(report.total_cod.amount, Decimal("340"))
        self.assertEqual(report.total_hand_to_accounting, Decimal("180"))

    def test_accounting_difference_heuristic(self) -> None:
        report = compute_report(_orders())
        # assigned.collected (0) minus every terminal bucket's collected (385 + 60).
        self.assertEqual(report.accounting_difference, Decimal("-445"))

    def test_raw_method_totals(self) -> None:
        totals = compute_report(_orders()).raw_method_totals
        self.assertEqual(totals["cash"], Decimal("100"))
        self.assertEqual(totals["on_hand"], Decimal("100"))
        self.assertEqual(totals["instapay"], Decimal("150"))
        self.assertEqual(totals["wallet"], Decimal("80"))
        self.assertEqual(totals["valu"], Decimal("70"))
        self.assertEqual(totals["card"], Decimal("0"))

    def test_raw_method_totals_accept_arabic_variants(self) -> None:
        orders = [
            _order("a1", status="delivered", total_order_fees=30, payment_method="نقداً"),
            _order("a2", status="delivered", total_order_fees=45, payment_method="المحفظة"),
        ]
        totals = compute_report(orders).raw_method_totals
        self.assertEqual(totals["cash"], Decimal("30"))
        self.assertEqual(totals["wallet"], Decimal("45"))

    def test_exclude_hold_fee_orders_from_channels(self) -> None:
        report = compute_report(_orders(), ReportScope(include_hold_fees=False))
        self.assertEqual(report.channel(PaymentChannel.ON_HAND).count, 0)
        self.assertEqual(report.total_cod.amount, Decimal("160"))
        # Status and fee totals still cover every order.
        self.assertEqual(report.total_orders_count, 6)
        self.assertEqual(report.total_hold_fees, Decimal("20"))

    def test_negative_partial_amounts_are_reported(self) -> None:
        report = compute_report(_orders())
        self.assertEqual(report.diagnostics.negative_partial_amounts, ["o3"])

    def test_report_is_deterministic(self) -> None:
        orders = _orders()
        self.assertEqual(compute_report(orders).as_dict(), compute_report(orders).as_dict())


class TestReportScope(unittest.TestCase):
    def test_single_courier(self) -> None:
        report = compute_report(_orders(), ReportScope(courier_id="c1"))
        self.assertEqual([o.id for o in report.orders], ["o1", "o2", "o6"])
        self.assertEqual(report.total_original_value, Decimal("400"))

    def test_total_means_every_assigned_order(self) -> None:
        report = compute_report(_orders(), ReportScope(courier_id="total"))
        self.assertEqual(report.total_orders_count, 5)
        self.assertNotIn("o5", [o.id for o in report.orders])

    def test_courier_view_folds_pending(self) -> None:
        report = compute_report(_orders(), ReportScope(courier_view=True))
        self.assertEqual(report.status(OrderStatus.ASSIGNED).count, 2)
        self.assertEqual(report.status(OrderStatus.PENDING).count, 0)
        self.assertIsNone(report.diagnostics.count_mismatch)

    def test_admin_view_keeps_pending(self) -> None:
        report = compute_report(_orders())
        self.assertEqual(report.status(OrderStatus.PENDING).count, 1)


class TestDataQuality(unittest.TestCase):
    def test_unknown_status_flags_mismatch(self) -> None:
        orders = _orders() + [_order("o7", status="lost", total_order_fees=10)]
        with self.assertLogs("courier_accounts.reconciliation.status", level="WARNING"):
            report = compute_report(orders)
        self.assertEqual(report.total_orders_count, 7)
        self.assertEqual(report.unrecognized.count, 1)
        self.assertEqual(report.diagnostics.count_mismatch, (7, 6))
        self.assertEqual(dict(report.diagnostics.unknown_statuses), {"lost": 1})
        self.assertTrue(report.diagnostics.has_issues)

    def test_malformed_fields_never_raise(self) -> None:
        orders = [
            _order("m1", status="delivered", total_order_fees="oops", delivery_fee="NaN", payment_method=None),
            _order("m2", status="delivered", payment_sub_type="onther", onther_payments="{broken"),
        ]
        with self.assertLogs("courier_accounts.reconciliation", level="WARNING"):
            report = compute_report(orders)
        self.assertEqual(report.total_orders_count, 2)
        self.assertEqual(report.total_original_value, Decimal("0"))
        self.assertEqual(report.diagnostics.malformed_split_payments, ["m2"])

    def test_directly_built_orders_with_raw_values(self) -> None:
        orders = [
            Order(id="x", status="partial", partial_paid_amount="-40", delivery_fee=10, hold_fee="5"),
            Order(id="y", status="delivered", total_order_fees="100", payment_method=None),
        ]
        report = compute_report(orders)
        self.assertEqual(report.diagnostics.negative_partial_amounts, ["x"])
        self.assertEqual(report.total_partial_amounts, Decimal("40"))
        self.assertEqual(report.total_hold_fees, Decimal("5"))
        self.assertEqual(report.total_original_value, Decimal("100"))
        self.assertEqual(report.raw_method_totals["cash"], Decimal("0"))
        self.assertTrue(orders[0].has_active_hold)


class TestOrderSnapshot(unittest.TestCase):
    def test_hold_fee_update_refreshes_snapshot(self) -> None:
        snapshot = OrderSnapshot(orders=tuple(_orders()), hold_fee_orders=tuple(_orders()[:2]))
        updated = snapshot.apply_update("o2", {"hold_fee": None, "hold_fee_removed_at": "2026-03-02T10:00:00Z"})
        self.assertTrue(updated.is_newer_than(snapshot))
        self.assertEqual(updated.generation, 1)
        self.assertIsNone(updated.hold_fee_orders[1].hold_fee)
        self.assertEqual(snapshot.hold_fee_orders[1].hold_fee, Decimal("20"))

        before = compute_report(snapshot.orders)
        after = compute_report(updated.orders)
        self.assertEqual(before.total_hold_fees, Decimal("20"))
        self.assertEqual(after.total_hold_fees, Decimal("0"))
        self.assertEqual(after.channel(PaymentChannel.ON_HAND).amount, Decimal("200"))
