"""Normalize the `onther_payments` payload of split-payment orders."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Mapping, Optional

from courier_accounts.reconciliation.models import (
    SPLIT_PAYMENT_SUBTYPE,
    Order,
    ReportDiagnostics,
    SubPayment,
)
from courier_accounts.reconciliation.money import amount_or_zero

logger = logging.getLogger(__name__)


def _has_payload(raw: Any) -> bool:
    if raw is None:
        return False
    if isinstance(raw, str):
        return bool(raw.strip())
    return True


def is_split_payment(order: Order) -> bool:
    """True when the order is settled through several sub-payments."""
    return order.payment_sub_type == SPLIT_PAYMENT_SUBTYPE and _has_payload(order.other_payments)


def _record_malformed(order_id: str, diagnostics: Optional[ReportDiagnostics]) -> None:
    if diagnostics is not None and order_id not in diagnostics.malformed_split_payments:
        diagnostics.malformed_split_payments.append(order_id)


def parse_other_payments(
    raw: Any,
    order_id: str = "",
    diagnostics: Optional[ReportDiagnostics] = None,
) -> List[SubPayment]:
    """
    Turn a structured list or its JSON text into SubPayment entries.

    Never raises: undecodable text, non-list payloads and non-mapping entries
    yield nothing, invalid amounts become 0.
    """
    if not _has_payload(raw):
        return []
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    items: Any = raw
    if isinstance(raw, str):
        try:
            items = json.loads(raw)
        except ValueError:
            logger.warning("Order %s: split payment payload is not valid JSON", order_id or "?")
            _record_malformed(order_id, diagnostics)
            return []
    if not isinstance(items, (list, tuple)):
        logger.warning("Order %s: split payment payload is not a list", order_id or "?")
        _record_malformed(order_id, diagnostics)
        return []

    out: List[SubPayment] = []
    for item in items:
        if not isinstance(item, Mapping):
            _record_malformed(order_id, diagnostics)
            continue
        method = item.get("method")
        out.append(
            SubPayment(
                method=str(method).strip() if method is not None else "",
                amount=amount_or_zero(item.get("amount")),
            )
        )
    return out
