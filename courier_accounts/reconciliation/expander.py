"""Flatten orders into payment line items, one per sub-payment for split orders."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from courier_accounts.reconciliation.amounts import courier_total_amount
from courier_accounts.reconciliation.models import (
    Order,
    PaymentChannel,
    PaymentLineItem,
    ReportDiagnostics,
)
from courier_accounts.reconciliation.payments import classify_payment_method, resolve_source_method
from courier_accounts.reconciliation.split_payments import is_split_payment, parse_other_payments

logger = logging.getLogger(__name__)


def has_hold_fee_activity(order: Order) -> bool:
    """True when a hold fee was ever added to or removed from the order."""
    return bool(order.hold_fee_added_at or order.hold_fee_removed_at)


def expand_order(
    order: Order,
    diagnostics: Optional[ReportDiagnostics] = None,
) -> List[PaymentLineItem]:
    """
    Line items for one order.

    Split orders give one item per positive sub-payment. Other orders give a
    single item carrying courier_total_amount, emitted when positive or when the
    channel is on_hand (a cash handoff happened even at zero).
    """
    if is_split_payment(order):
        items: List[PaymentLineItem] = []
        for sub in parse_other_payments(order.other_payments, order_id=order.id, diagnostics=diagnostics):
            if sub.amount <= 0:
                continue
            items.append(
                PaymentLineItem(
                    order=order,
                    channel=classify_payment_method(sub.method, diagnostics=diagnostics),
                    amount=sub.amount,
                    sub_method=sub.method,
                    is_split=True,
                )
            )
        return items

    channel = classify_payment_method(resolve_source_method(order), diagnostics=diagnostics)
    amount = courier_total_amount(order, diagnostics=diagnostics)
    if amount > 0 or channel == PaymentChannel.ON_HAND:
        return [PaymentLineItem(order=order, channel=channel, amount=amount)]
    return []


def expand_payment_lines(
    orders: Iterable[Order],
    include_hold_fees: bool = True,
    diagnostics: Optional[ReportDiagnostics] = None,
) -> List[PaymentLineItem]:
    """
    Flatten orders for per-channel totals.

    With include_hold_fees off, orders with any hold-fee activity are dropped
    before expansion. Output keeps input order.
    """
    result: List[PaymentLineItem] = []
    skipped = 0
    for order in orders:
        if not include_hold_fees and has_hold_fee_activity(order):
            skipped += 1
            continue
        result.extend(expand_order(order, diagnostics=diagnostics))
    if skipped:
        logger.debug("Skipped %d order(s) with hold-fee activity from payment lines", skipped)
    return result
