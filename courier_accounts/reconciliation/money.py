"""Decimal coercion for loosely typed monetary columns."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

ZERO = Decimal("0")


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a monetary value into a finite Decimal.

    Returns None for missing, blank, non-numeric, NaN or infinite input.
    Booleans are not money and also return None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return None
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return None
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return None
    else:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def amount_or_zero(value: Any) -> Decimal:
    parsed = to_decimal(value)
    return parsed if parsed is not None else ZERO


def magnitude(value: Any) -> Decimal:
    """Absolute value of a monetary field; partial amounts can arrive negative."""
    return abs(amount_or_zero(value))


def decimal_sum(values) -> Decimal:
    total = ZERO
    for value in values:
        total += amount_or_zero(value)
    return total


def as_float(value: Decimal, places: int = 2) -> float:
    return round(float(value), places)
