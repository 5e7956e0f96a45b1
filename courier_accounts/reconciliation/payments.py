"""Normalize free-text payment method strings into canonical payment channels."""

from __future__ import annotations

import logging
from typing import Optional

from courier_accounts.reconciliation.models import (
    SPLIT_PAYMENT_SUBTYPE,
    Order,
    PaymentChannel,
    ReportDiagnostics,
)

logger = logging.getLogger(__name__)

# Accounting collectors (e.g. "CAR", "Emad") hand cash straight to accounting.
ON_HAND_ALIASES = ("car", "emad", "cae")
PAYMOB_HINTS = ("paymob", "pay mob", "باي موب", "visa", "mastercard", "card", "credit", "debit")
CASH_EXACT = ("cash", "cod", "cash_on_delivery")

_EXACT_CHANNELS = {
    "visa_machine": PaymentChannel.VISA_MACHINE,
    "instapay": PaymentChannel.INSTAPAY,
    "wallet": PaymentChannel.WALLET,
    "on_hand": PaymentChannel.ON_HAND,
    "on hand": PaymentChannel.ON_HAND,
}


def _match_channel(m: str) -> Optional[PaymentChannel]:
    # First match wins. Collector aliases are checked first, so anything containing
    # "car" (including "card" and "mastercard") lands in on_hand.
    if any(alias in m for alias in ON_HAND_ALIASES):
        return PaymentChannel.ON_HAND
    if "valu" in m:
        return PaymentChannel.VALU
    if m in _EXACT_CHANNELS:
        return _EXACT_CHANNELS[m]
    if m == "paymob" or any(hint in m for hint in PAYMOB_HINTS):
        return PaymentChannel.PAYMOB
    if m in CASH_EXACT or "cash on delivery" in m:
        return PaymentChannel.CASH
    return None


def classify_payment_method(
    method: Optional[str],
    diagnostics: Optional[ReportDiagnostics] = None,
) -> PaymentChannel:
    """
    Classify a raw payment method string (case-insensitive, trimmed).

    Unrecognized non-empty values fall back to OTHER and are logged; they are
    also counted on `diagnostics` when one is given.
    """
    m = (method or "").strip().lower()
    channel = _match_channel(m)
    if channel is not None:
        return channel
    if m and m != PaymentChannel.OTHER.value:
        logger.warning("Unrecognized payment method grouped as 'other': %r", method)
        if diagnostics is not None:
            diagnostics.unrecognized_payment_methods[m] += 1
    return PaymentChannel.OTHER


def resolve_source_method(order: Order) -> str:
    """
    Pick the most specific payment indicator on a non-split order.

    payment_sub_type (unless it is the split marker), then collected_by, then payment_method.
    """
    if order.payment_sub_type and order.payment_sub_type != SPLIT_PAYMENT_SUBTYPE:
        return order.payment_sub_type
    return order.collected_by or order.payment_method or ""
