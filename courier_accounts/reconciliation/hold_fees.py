"""Hold-fee ledger: date filtering, active/removed views and edit payloads."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union
from zoneinfo import ZoneInfo

from courier_accounts.reconciliation.dates import local_date, parse_timestamp
from courier_accounts.reconciliation.models import HoldFeeLedger, Order, ReportScope
from courier_accounts.reconciliation.money import ZERO, amount_or_zero, to_decimal

logger = logging.getLogger(__name__)


class HoldFeeFilter(str, Enum):
    ALL = "all"
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7_DAYS = "last7days"
    LAST_30_DAYS = "last30days"
    CUSTOM = "custom"


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def has_hold_fee_history(order: Order) -> bool:
    """Active hold, or any hold-fee timestamp recorded."""
    return bool(
        order.has_active_hold
        or order.hold_fee_added_at
        or order.hold_fee_removed_at
        or order.hold_fee_created_at
    )


def hold_fee_reference_date(order: Order, tz: ZoneInfo) -> Optional[date]:
    """
    Local calendar date a hold fee is filed under. Removal wins over addition,
    so a fee added on day 1 and removed on day 5 belongs to day 5.
    """
    stamp = order.hold_fee_removed_at or order.hold_fee_added_at or order.hold_fee_created_at
    return local_date(stamp, tz)


def _coerce_filter(keyword: Union[HoldFeeFilter, str, None]) -> Optional[HoldFeeFilter]:
    if isinstance(keyword, HoldFeeFilter):
        return keyword
    try:
        return HoldFeeFilter((keyword or HoldFeeFilter.ALL.value).strip().lower())
    except ValueError:
        logger.warning("Unknown hold-fee filter %r; returning all hold fees", keyword)
        return None


def filter_hold_fees_by_date(
    orders: Iterable[Order],
    keyword: Union[HoldFeeFilter, str, None],
    today: date,
    tz: ZoneInfo,
    custom_date: Optional[date] = None,
) -> List[Order]:
    """
    Keep hold-fee orders whose reference date falls in the window.

    "all", an unknown keyword, or "custom" without a date return the input
    unchanged. Orders without any hold timestamp never match a dated window.
    """
    items = list(orders)
    kind = _coerce_filter(keyword)
    if kind is None or kind == HoldFeeFilter.ALL:
        return items
    if kind == HoldFeeFilter.CUSTOM and custom_date is None:
        return items

    if kind == HoldFeeFilter.TODAY:
        start = end = today
    elif kind == HoldFeeFilter.YESTERDAY:
        start = end = today - timedelta(days=1)
    elif kind == HoldFeeFilter.LAST_7_DAYS:
        start, end = today - timedelta(days=7), today
    elif kind == HoldFeeFilter.LAST_30_DAYS:
        start, end = today - timedelta(days=30), today
    else:
        start = end = custom_date

    out: List[Order] = []
    for order in items:
        ref = hold_fee_reference_date(order, tz)
        if ref is not None and start <= ref <= end:
            out.append(order)
    return out


def _sort_stamp(*values: Optional[str]) -> datetime:
    for value in values:
        parsed = parse_timestamp(value)
        if parsed is not None:
            return parsed
    return _EPOCH


def is_removed_hold(order: Order) -> bool:
    """Hold cleared but its history (who/when) is still on the row."""
    return (
        not order.has_active_hold
        and bool(order.hold_fee_created_at)
        and bool(order.hold_fee_created_by)
    )


def build_hold_fee_ledger(
    orders: Iterable[Order],
    keyword: Union[HoldFeeFilter, str, None],
    today: date,
    tz: ZoneInfo,
    custom_date: Optional[date] = None,
    courier_id: Optional[str] = None,
) -> HoldFeeLedger:
    """
    Active holds sorted newest addition first, removed holds sorted newest
    removal first, both after the date filter and courier scoping.
    """
    scope = ReportScope(courier_id=courier_id)
    in_scope = [o for o in orders if scope.includes(o)]

    active = filter_hold_fees_by_date(
        [o for o in in_scope if o.has_active_hold], keyword, today, tz, custom_date
    )
    removed = filter_hold_fees_by_date(
        [o for o in in_scope if is_removed_hold(o)], keyword, today, tz, custom_date
    )
    active.sort(key=lambda o: _sort_stamp(o.hold_fee_added_at, o.hold_fee_created_at), reverse=True)
    removed.sort(key=lambda o: _sort_stamp(o.hold_fee_removed_at, o.hold_fee_created_at), reverse=True)
    return HoldFeeLedger(active=tuple(active), removed=tuple(removed))


def build_hold_fee_update(
    order: Optional[Order],
    amount: Any,
    comment: Optional[str],
    actor_id: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Fields to persist when staff save the hold-fee editor for an order.

    An empty amount keeps the current one. When the amount is unchanged on an
    active hold only the comment is written. A positive amount keeps the first
    creator/creation/addition stamps; a zero amount clears the hold and stamps
    the removal time (keeping an earlier removal stamp).
    """
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    current = amount_or_zero(order.hold_fee) if order is not None else ZERO

    if amount is None or (isinstance(amount, str) and not amount.strip()):
        new_amount = current
    else:
        new_amount = to_decimal(amount) or ZERO

    if new_amount == current and current > 0:
        return {"hold_fee_comment": comment or None}

    if new_amount > 0:
        return {
            "hold_fee": str(new_amount),
            "hold_fee_comment": comment or None,
            "hold_fee_created_by": (order.hold_fee_created_by if order else None) or actor_id,
            "hold_fee_created_at": (order.hold_fee_created_at if order else None) or stamp,
            "hold_fee_added_at": (order.hold_fee_added_at if order else None) or stamp,
            "hold_fee_removed_at": None,
        }
    return {
        "hold_fee": None,
        "hold_fee_comment": None,
        "hold_fee_created_by": None,
        "hold_fee_created_at": None,
        "hold_fee_added_at": None,
        "hold_fee_removed_at": (order.hold_fee_removed_at if order else None) or stamp,
    }


def build_hold_fee_removal(actor_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Fields to persist when staff remove a hold fee outright."""
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return {
        "hold_fee": None,
        "hold_fee_comment": None,
        "hold_fee_created_by": actor_id,
        "hold_fee_created_at": stamp,
        "hold_fee_removed_at": stamp,
    }
