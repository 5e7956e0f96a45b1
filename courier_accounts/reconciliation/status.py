"""Group orders by status into count / original value / collected buckets."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

from courier_accounts.reconciliation.amounts import courier_total_amount
from courier_accounts.reconciliation.models import (
    Order,
    OrderStatus,
    ReportDiagnostics,
    StatusBreakdown,
    StatusBucket,
)
from courier_accounts.reconciliation.money import ZERO, amount_or_zero

logger = logging.getLogger(__name__)

VALUE_TOLERANCE = Decimal("0.01")
UNRECOGNIZED_STATUS = "unrecognized"


def _bucket(
    status: str,
    orders: Sequence[Order],
    diagnostics: Optional[ReportDiagnostics] = None,
) -> StatusBucket:
    return StatusBucket(
        status=status,
        count=len(orders),
        original_value=sum((amount_or_zero(o.total_order_fees) for o in orders), ZERO),
        collected=sum((courier_total_amount(o, diagnostics=diagnostics) for o in orders), ZERO),
        orders=tuple(orders),
    )


def aggregate_by_status(
    orders: Iterable[Order],
    status: Union[OrderStatus, str],
    diagnostics: Optional[ReportDiagnostics] = None,
) -> StatusBucket:
    """count, Σ total_order_fees and Σ courier_total_amount for one status."""
    key = status.value if isinstance(status, OrderStatus) else str(status)
    matching = [o for o in orders if o.status == key]
    return _bucket(key, matching, diagnostics=diagnostics)


def fold_pending_into_assigned(breakdown: StatusBreakdown) -> StatusBreakdown:
    """
    Courier-scoped views have no "pending" bucket: pending is summed into assigned
    (assigned orders first) and pending is zeroed.
    """
    pending = breakdown.get(OrderStatus.PENDING)
    if pending.count == 0:
        return breakdown
    buckets = dict(breakdown.buckets)
    buckets[OrderStatus.ASSIGNED] = breakdown.get(OrderStatus.ASSIGNED).merged_with(pending)
    buckets[OrderStatus.PENDING] = StatusBucket(status=OrderStatus.PENDING.value)
    return StatusBreakdown(buckets=buckets, unrecognized=breakdown.unrecognized)


def build_status_breakdown(
    orders: Iterable[Order],
    fold_pending: bool = False,
    diagnostics: Optional[ReportDiagnostics] = None,
) -> StatusBreakdown:
    """
    One bucket per known status, plus an "unrecognized" bucket for orders whose
    status is missing or unknown. Nothing is dropped.
    """
    grouped: Dict[OrderStatus, List[Order]] = {status: [] for status in OrderStatus}
    unknown: List[Order] = []
    for order in orders:
        status = order.known_status
        if status is None:
            unknown.append(order)
            continue
        grouped[status].append(order)

    if unknown:
        logger.warning(
            "Found %d order(s) with missing or unexpected status: %s",
            len(unknown),
            ", ".join(f"{o.order_number or o.id}={o.status or '<empty>'}" for o in unknown[:10]),
        )
        if diagnostics is not None:
            for order in unknown:
                diagnostics.unknown_statuses[order.status or "<empty>"] += 1
                diagnostics.unknown_status_order_ids.append(order.id)

    breakdown = StatusBreakdown(
        buckets={status: _bucket(status.value, items, diagnostics) for status, items in grouped.items()},
        unrecognized=_bucket(UNRECOGNIZED_STATUS, unknown, diagnostics),
    )
    if fold_pending:
        breakdown = fold_pending_into_assigned(breakdown)
    return breakdown


def check_status_consistency(
    breakdown: StatusBreakdown,
    total_count: int,
    total_value: Decimal,
    diagnostics: Optional[ReportDiagnostics] = None,
) -> bool:
    """
    Recognized buckets must add up to the orders in scope (value within 0.01).

    A mismatch is a data-quality warning, reported on diagnostics, never raised.
    """
    consistent = True
    bucket_count = breakdown.recognized_count
    bucket_value = breakdown.recognized_value
    if bucket_count != total_count:
        consistent = False
        logger.warning("Total orders count mismatch: in scope=%d, by status=%d", total_count, bucket_count)
        if diagnostics is not None:
            diagnostics.count_mismatch = (total_count, bucket_count)
    if abs(bucket_value - total_value) > VALUE_TOLERANCE:
        consistent = False
        logger.warning("Total orders value mismatch: in scope=%s, by status=%s", total_value, bucket_value)
        if diagnostics is not None:
            diagnostics.value_mismatch = (total_value, bucket_value)
    return consistent
