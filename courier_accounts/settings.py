"""Environment-driven settings shared by the reconciliation scripts."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "Africa/Cairo"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30
DEFAULT_LOG_LEVEL = "INFO"

_VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    business_timezone: str
    request_timeout_seconds: int
    log_level: str

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)

    def require_supabase(self) -> None:
        if not self.supabase_url:
            raise ValueError("SUPABASE_URL is required to query the orders database.")
        if not self.supabase_key:
            raise ValueError("SUPABASE_ANON_KEY (or SUPABASE_KEY) is required to query the orders database.")


def _read_int_env(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    if value < minimum:
        return default
    return value


def _validate_timezone_name(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Invalid COURIER_ACCOUNTS_TIMEZONE timezone: {name}") from exc
    return name


def normalize_log_level(raw_level: Optional[str]) -> str:
    level = (raw_level or DEFAULT_LOG_LEVEL).strip().upper()
    if level in _VALID_LOG_LEVELS:
        return level
    return DEFAULT_LOG_LEVEL


def resolve_logging_level(name: Optional[str]) -> int:
    return getattr(logging, normalize_log_level(name), logging.INFO)


def configure_logging(level_name: Optional[str]) -> None:
    logging.basicConfig(
        level=resolve_logging_level(level_name),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )


def load_settings() -> Settings:
    supabase_url = (os.getenv("SUPABASE_URL") or "").strip().rstrip("/")
    supabase_key = (os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "").strip()
    business_timezone = _validate_timezone_name(
        (os.getenv("COURIER_ACCOUNTS_TIMEZONE") or DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE
    )
    request_timeout_seconds = _read_int_env(
        "COURIER_ACCOUNTS_HTTP_TIMEOUT",
        DEFAULT_HTTP_TIMEOUT_SECONDS,
        minimum=1,
    )
    log_level = normalize_log_level(os.getenv("COURIER_ACCOUNTS_LOG_LEVEL", DEFAULT_LOG_LEVEL))

    return Settings(
        supabase_url=supabase_url,
        supabase_key=supabase_key,
        business_timezone=business_timezone,
        request_timeout_seconds=request_timeout_seconds,
        log_level=log_level,
    )
