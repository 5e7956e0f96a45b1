"""Order sources: exported order files, query parameters, and merging fetches by id."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol
from zoneinfo import ZoneInfo

import pandas as pd

from courier_accounts.reconciliation.dates import local_date
from courier_accounts.reconciliation.hold_fees import has_hold_fee_history
from courier_accounts.reconciliation.models import TOTAL_COURIERS, Order

logger = logging.getLogger(__name__)


class DateField(str, Enum):
    """Which timestamp a date range is applied to."""

    ASSIGNED_AT = "assigned_at"
    UPDATED_AT = "updated_at"
    BOTH = "both"  # assigned_at results first, then updated_at, merged by id


@dataclass(frozen=True)
class OrderQuery:
    start: date
    end: date
    courier_id: Optional[str] = None  # None or "total" -> no courier filter
    date_field: DateField = DateField.BOTH

    @property
    def date_fields(self) -> List[DateField]:
        if self.date_field == DateField.BOTH:
            return [DateField.ASSIGNED_AT, DateField.UPDATED_AT]
        return [self.date_field]

    @property
    def filters_courier(self) -> bool:
        return bool(self.courier_id) and self.courier_id != TOTAL_COURIERS


class OrderSource(Protocol):
    def fetch_orders(self, query: OrderQuery) -> List[Order]:
        ...


def merge_orders_by_id(*batches: Iterable[Order]) -> List[Order]:
    """Concatenate batches keeping the first occurrence of each order id."""
    seen = set()
    merged: List[Order] = []
    for batch in batches:
        for order in batch:
            if order.id and order.id in seen:
                continue
            if order.id:
                seen.add(order.id)
            merged.append(order)
    return merged


def _records_from_json(path: Path) -> List[Mapping[str, Any]]:
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, Mapping):
        payload = payload.get("orders", [])
    if not isinstance(payload, list):
        raise ValueError(f"Orders file must hold a list of orders: {path}")
    return [row for row in payload if isinstance(row, Mapping)]


def _records_from_csv(path: Path) -> List[Dict[str, Any]]:
    df = pd.read_csv(path, dtype=str)
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def load_orders_file(path: Path) -> List[Order]:
    """
    Load an orders export (JSON list, {"orders": [...]}, or CSV with table columns).

    Raises FileNotFoundError when missing and ValueError for an unusable layout.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Orders file not found: {path}")
    if path.suffix.lower() == ".json":
        records = _records_from_json(path)
    elif path.suffix.lower() == ".csv":
        records = _records_from_csv(path)
    else:
        raise ValueError(f"Unsupported orders file type (expected .json or .csv): {path}")
    orders = [Order.from_record(r) for r in records]
    logger.info("Loaded %d order(s) from %s", len(orders), path)
    return orders


class FileOrderSource:
    """OrderSource over an exported file, applying the query's dates and courier locally."""

    def __init__(self, path: Path, tz: ZoneInfo) -> None:
        self.path = Path(path)
        self.tz = tz
        self._orders: Optional[List[Order]] = None

    def _all(self) -> List[Order]:
        if self._orders is None:
            self._orders = load_orders_file(self.path)
        return self._orders

    def _matches_courier(self, order: Order, query: OrderQuery) -> bool:
        if not query.filters_courier:
            return True
        return order.assigned_courier_id == query.courier_id

    def fetch_orders(self, query: OrderQuery) -> List[Order]:
        batches: List[List[Order]] = []
        for field in query.date_fields:
            batch = []
            for order in self._all():
                if not self._matches_courier(order, query):
                    continue
                day = local_date(getattr(order, field.value), self.tz)
                if day is not None and query.start <= day <= query.end:
                    batch.append(order)
            batches.append(batch)
        return merge_orders_by_id(*batches)

    def fetch_hold_fee_orders(self, courier_id: Optional[str] = None) -> List[Order]:
        orders = [o for o in self._all() if has_hold_fee_history(o)]
        if courier_id and courier_id != TOTAL_COURIERS:
            orders = [o for o in orders if o.assigned_courier_id == courier_id]
        return orders
