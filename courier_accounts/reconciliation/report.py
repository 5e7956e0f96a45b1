"""
Compose the courier reconciliation report from an order snapshot.

compute_report is pure: same orders and scope in, same report out. Callers
recompute on every change of date range, courier selection or order set.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from courier_accounts.reconciliation.expander import expand_payment_lines
from courier_accounts.reconciliation.models import (
    COD_CHANNELS,
    TERMINAL_STATUSES,
    ChannelBucket,
    Order,
    OrderStatus,
    PaymentChannel,
    PaymentLineItem,
    ReconciliationReport,
    ReportDiagnostics,
    ReportScope,
)
from courier_accounts.reconciliation.money import ZERO, amount_or_zero, decimal_sum, magnitude
from courier_accounts.reconciliation.status import build_status_breakdown, check_status_consistency

logger = logging.getLogger(__name__)

# Raw payment_method values summed together per method, as the orders form stores them
# in English or Arabic.
RAW_METHOD_VARIANTS: Dict[str, Tuple[str, ...]] = {
    "cash": ("cash", "نقداً", "on_hand"),
    "card": ("card", "visa_machine", "ماكينة فيزا"),
    "valu": ("valu", "فاليو"),
    "paymob": ("paymob", "باي موب"),
    "instapay": ("instapay", "إنستاباي"),
    "wallet": ("wallet", "المحفظة"),
    "visa_machine": ("visa_machine", "ماكينة فيزا", "card"),
    "on_hand": ("on_hand", "نقداً", "cash"),
}


def _channel_bucket(channel: str, items: List[PaymentLineItem]) -> ChannelBucket:
    return ChannelBucket(
        channel=channel,
        count=len(items),
        amount=decimal_sum(item.amount for item in items),
        items=tuple(items),
    )


def raw_method_totals(orders: Iterable[Order]) -> Dict[str, Decimal]:
    """Σ total_order_fees per raw payment_method family (variants may overlap)."""
    orders = list(orders)
    totals: Dict[str, Decimal] = {}
    for key, variants in RAW_METHOD_VARIANTS.items():
        wanted = {v.lower() for v in variants}
        totals[key] = decimal_sum(
            amount_or_zero(o.total_order_fees)
            for o in orders
            if (o.payment_method or "").strip().lower() in wanted
        )
    return totals


def _record_negative_partials(orders: Iterable[Order], diagnostics: ReportDiagnostics) -> None:
    for order in orders:
        if amount_or_zero(order.partial_paid_amount) < 0:
            diagnostics.negative_partial_amounts.append(order.id)
    if diagnostics.negative_partial_amounts:
        logger.info(
            "Read %d negative partial_paid_amount value(s) as magnitudes",
            len(diagnostics.negative_partial_amounts),
        )


def compute_report(
    orders: Optional[Iterable[Order]],
    scope: Optional[ReportScope] = None,
) -> ReconciliationReport:
    """
    Build the full report for one scope.

    Never raises for malformed orders; None or an empty set gives a zeroed
    report with every status and channel present.
    """
    scope = scope or ReportScope()
    diagnostics = ReportDiagnostics()
    scoped = [o for o in (orders or []) if scope.includes(o)]

    total_count = len(scoped)
    total_value = decimal_sum(amount_or_zero(o.total_order_fees) for o in scoped)
    _record_negative_partials(scoped, diagnostics)

    breakdown = build_status_breakdown(scoped, fold_pending=scope.courier_scoped, diagnostics=diagnostics)
    check_status_consistency(breakdown, total_count, total_value, diagnostics=diagnostics)

    line_items = expand_payment_lines(scoped, include_hold_fees=scope.include_hold_fees, diagnostics=diagnostics)
    grouped: Dict[PaymentChannel, List[PaymentLineItem]] = {channel: [] for channel in PaymentChannel}
    for item in line_items:
        grouped[item.channel].append(item)
    channels = {channel: _channel_bucket(channel.value, items) for channel, items in grouped.items()}

    cod_items: List[PaymentLineItem] = []
    for channel in COD_CHANNELS:
        cod_items.extend(grouped[channel])
    total_cod = _channel_bucket("total_cod", cod_items)
    hand_to_accounting = channels[PaymentChannel.ON_HAND].amount

    # Coarse discrepancy signal, not a ledger balance.
    terminal_collected = decimal_sum(breakdown.get(status).collected for status in TERMINAL_STATUSES)
    accounting_difference = breakdown.get(OrderStatus.ASSIGNED).collected - terminal_collected

    hold_fees = decimal_sum(amount_or_zero(o.hold_fee) for o in scoped)
    extra_fees = decimal_sum(amount_or_zero(o.extra_fee) for o in scoped)
    admin_fees = decimal_sum(amount_or_zero(o.admin_delivery_fee) for o in scoped)

    report = ReconciliationReport(
        scope=scope,
        orders=tuple(scoped),
        total_orders_count=total_count,
        total_original_value=total_value,
        statuses=dict(breakdown.buckets),
        unrecognized=breakdown.unrecognized,
        channels=channels,
        total_cod=total_cod,
        total_hand_to_accounting=hand_to_accounting,
        accounting_difference=accounting_difference,
        total_hold_fees=hold_fees,
        total_extra_fees=extra_fees,
        total_admin_delivery_fees=admin_fees,
        adjusted_total=total_value - (hold_fees + extra_fees + admin_fees),
        total_delivery_fees=decimal_sum(amount_or_zero(o.delivery_fee) for o in scoped),
        total_partial_amounts=decimal_sum(magnitude(o.partial_paid_amount) for o in scoped),
        raw_method_totals=raw_method_totals(scoped),
        line_items=tuple(line_items),
        diagnostics=diagnostics,
    )
    logger.debug(
        "Report for courier=%s: %d orders, value=%s, cod=%s",
        scope.courier_id or "all",
        total_count,
        total_value,
        total_cod.amount,
    )
    return report
