"""
Calendar-date handling for reports: one local timezone for "today", quick
ranges and hold-fee dates.

Timestamps from the orders table are ISO 8601 strings, normally with an
offset. Naive timestamps are read as UTC. PostgREST trims trailing zeros from
fractional seconds and may send a bare "+00" offset; forms the stdlib parser
rejects go through pandas.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

import pandas as pd

QUICK_RANGES = ("today", "yesterday", "last7Days", "last30Days")

_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_SHORT_OFFSET = re.compile(r"([+-]\d{2})$")


def _parse_iso_text(text: str) -> Optional[datetime]:
    if not _ISO_DATE_PREFIX.match(text):
        return None
    if "T" in text or " " in text:
        text = _SHORT_OFFSET.sub(r"\1:00", text)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    parsed = pd.to_datetime(text, errors="coerce", utc=True)
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware datetime; None when missing or malformed."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        parsed = _parse_iso_text(text)
        if parsed is None:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def local_date(value: Union[str, datetime, None], tz: ZoneInfo) -> Optional[date]:
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.astimezone(tz).date()


def local_today(tz: ZoneInfo, now: Optional[datetime] = None) -> date:
    current = now if now is not None else datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(tz).date()


def parse_date(value: Optional[str]) -> Optional[date]:
    """YYYY-MM-DD -> date; None for blank or malformed input."""
    text = (value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def quick_date_range(keyword: str, today: date) -> Tuple[date, date]:
    """
    Start/end dates for a dashboard quick filter. Ranges include today, so
    last7Days starts 6 days back. Unknown keywords give today only.
    """
    if keyword == "yesterday":
        day = today - timedelta(days=1)
        return day, day
    if keyword == "last7Days":
        return today - timedelta(days=6), today
    if keyword == "last30Days":
        return today - timedelta(days=29), today
    return today, today


def day_bounds_utc(start: date, end: date, tz: ZoneInfo) -> Tuple[str, str]:
    """
    ISO UTC bounds covering local start 00:00:00.000 through end 23:59:59.999.
    """
    start_local = datetime.combine(start, time.min, tzinfo=tz)
    end_local = datetime.combine(end, time(23, 59, 59, 999000), tzinfo=tz)
    return (
        start_local.astimezone(timezone.utc).isoformat(timespec="milliseconds"),
        end_local.astimezone(timezone.utc).isoformat(timespec="milliseconds"),
    )
