"""
Orders table access over the Supabase REST (PostgREST) endpoint.

Reads follow the accounting dashboard: one query per date field, merged by
order id with assigned-at results first. Writes only touch hold-fee columns.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import requests

from courier_accounts.reconciliation.dates import day_bounds_utc
from courier_accounts.reconciliation.models import TOTAL_COURIERS, Order
from courier_accounts.reconciliation.orders_io import DateField, OrderQuery, merge_orders_by_id
from courier_accounts.settings import Settings

logger = logging.getLogger(__name__)

ORDERS_SELECT = "*,assigned_courier:users!orders_assigned_courier_id_fkey(id,name)"
HOLD_FEE_ACTIVITY_FILTER = (
    "(hold_fee.gt.0,hold_fee_added_at.not.is.null,"
    "hold_fee_removed_at.not.is.null,hold_fee_created_at.not.is.null)"
)

Params = Sequence[Tuple[str, str]]

# ids embedded in PostgREST filter strings must be plain tokens
_FILTER_TOKEN = re.compile(r"[A-Za-z0-9_-]+")


class OrderSourceError(RuntimeError):
    """The orders database could not be read or written."""


def _filter_token(value: str, what: str) -> str:
    if not _FILTER_TOKEN.fullmatch(value or ""):
        raise OrderSourceError(f"Invalid {what} for an orders query: {value!r}")
    return value


class SupabaseOrderClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        settings.require_supabase()
        self.settings = settings
        self.base_url = f"{settings.supabase_url}/rest/v1/orders"
        self.session = session or requests.Session()

    def _headers(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.settings.supabase_key,
            "Authorization": f"Bearer {self.settings.supabase_key}",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, params: Params, **kwargs) -> Any:
        """
        Send one request to the orders endpoint and return the decoded JSON body.

        Network failures and non-2xx responses raise OrderSourceError.
        """
        headers = self._headers(kwargs.pop("headers", None))
        try:
            resp = self.session.request(
                method,
                self.base_url,
                params=list(params),
                headers=headers,
                timeout=self.settings.request_timeout_seconds,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise OrderSourceError(f"{method} {self.base_url} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise OrderSourceError(
                f"{method} {self.base_url} returned {resp.status_code}: {resp.text[:300]}"
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise OrderSourceError(f"{method} {self.base_url} returned invalid JSON") from exc

    def _fetch(self, params: Params) -> List[Order]:
        rows = self._request("GET", params)
        if not isinstance(rows, list):
            raise OrderSourceError(f"Expected a list of orders, got {type(rows).__name__}")
        return [Order.from_record(row) for row in rows if isinstance(row, Mapping)]

    def fetch_orders(self, query: OrderQuery) -> List[Order]:
        courier_id = _filter_token(query.courier_id, "courier id") if query.filters_courier else None
        start_iso, end_iso = day_bounds_utc(query.start, query.end, self.settings.tz)
        batches: List[List[Order]] = []
        for field in query.date_fields:
            params: List[Tuple[str, str]] = [("select", ORDERS_SELECT)]
            if field == DateField.ASSIGNED_AT:
                params.append(("assigned_at", "not.is.null"))
            params.append((field.value, f"gte.{start_iso}"))
            params.append((field.value, f"lte.{end_iso}"))
            if courier_id:
                params.append(
                    (
                        "or",
                        f"(assigned_courier_id.eq.{courier_id},"
                        f"original_courier_id.eq.{courier_id})",
                    )
                )
            batch = self._fetch(params)
            logger.info(
                "Fetched %d order(s) by %s between %s and %s", len(batch), field.value, start_iso, end_iso
            )
            batches.append(batch)
        return merge_orders_by_id(*batches)

    def fetch_hold_fee_orders(self, courier_id: Optional[str] = None) -> List[Order]:
        """Every order with hold-fee activity, past or present."""
        params: List[Tuple[str, str]] = [("select", ORDERS_SELECT)]
        if courier_id and courier_id != TOTAL_COURIERS:
            params.append(("assigned_courier_id", f"eq.{_filter_token(courier_id, 'courier id')}"))
        params.append(("or", HOLD_FEE_ACTIVITY_FILTER))
        orders = self._fetch(params)
        logger.info("Fetched %d order(s) with hold-fee activity", len(orders))
        return orders

    def fetch_order(self, order_id: str) -> Optional[Order]:
        orders = self._fetch([("select", ORDERS_SELECT), ("id", f"eq.{_filter_token(order_id, 'order id')}")])
        return orders[0] if orders else None

    def update_hold_fee(self, order_id: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """
        PATCH the hold-fee columns of one order.

        Returns the updated row, or `fields` when the server sends no representation.
        """
        body = self._request(
            "PATCH",
            [("id", f"eq.{_filter_token(order_id, 'order id')}")],
            json=dict(fields),
            headers={"Prefer": "return=representation", "Content-Type": "application/json"},
        )
        logger.info("Updated hold fee on order %s: %s", order_id, sorted(fields))
        if isinstance(body, list) and body and isinstance(body[0], Mapping):
            return dict(body[0])
        return dict(fields)
