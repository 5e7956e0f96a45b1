"""Per-order courier amounts: what the courier actually handled, net of withheld fees."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from courier_accounts.reconciliation.models import Order, OrderStatus, ReportDiagnostics
from courier_accounts.reconciliation.money import ZERO, amount_or_zero, magnitude
from courier_accounts.reconciliation.split_payments import is_split_payment, parse_other_payments


def withheld_fees(order: Order) -> Decimal:
    """hold_fee + admin_delivery_fee + extra_fee, missing values counted as 0."""
    return (
        amount_or_zero(order.hold_fee)
        + amount_or_zero(order.admin_delivery_fee)
        + amount_or_zero(order.extra_fee)
    )


def courier_base_amount(order: Order) -> Decimal:
    """
    Order value the courier collected, before delivery fee and withheld fees.

    - hand_to_hand: 0 (an exchange never counts its face value)
    - partial: |partial_paid_amount|, even when 0
    - any status with a non-zero partial amount: that magnitude
    - delivered: total_order_fees
    - everything else: 0
    """
    partial_paid = magnitude(order.partial_paid_amount)
    status = order.status

    if status == OrderStatus.HAND_TO_HAND.value:
        return ZERO
    if status == OrderStatus.PARTIAL.value:
        return partial_paid
    if partial_paid > 0:
        return partial_paid
    if status == OrderStatus.DELIVERED.value:
        return amount_or_zero(order.total_order_fees)
    return ZERO


def split_payment_base_amount(
    order: Order,
    diagnostics: Optional[ReportDiagnostics] = None,
) -> Decimal:
    """Sum of every sub-payment amount on a split order (0 when the payload is unusable)."""
    return sum(
        (sub.amount for sub in parse_other_payments(order.other_payments, order_id=order.id, diagnostics=diagnostics)),
        ZERO,
    )


def courier_total_amount(
    order: Order,
    diagnostics: Optional[ReportDiagnostics] = None,
) -> Decimal:
    """
    Amount used in every financial roll-up: base amount + delivery fee - withheld fees.

    partial is never clamped; hand_to_hand is clamped at 0. canceled/return have a
    zero base but still carry their delivery and withheld fees.
    """
    partial_paid = magnitude(order.partial_paid_amount)
    delivery = amount_or_zero(order.delivery_fee)
    fees = withheld_fees(order)
    status = order.status

    if status == OrderStatus.PARTIAL.value:
        return partial_paid + delivery - fees
    if status == OrderStatus.HAND_TO_HAND.value:
        return max(partial_paid + delivery - fees, ZERO)

    if status in (OrderStatus.CANCELED.value, OrderStatus.RETURN.value):
        base = ZERO
    elif is_split_payment(order):
        base = split_payment_base_amount(order, diagnostics=diagnostics)
    else:
        base = courier_base_amount(order)
    return base + delivery - fees
