"""CLI config and default output paths for courier report runs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from courier_accounts.paths import OPS_REPORTS_DIR
from courier_accounts.reconciliation.hold_fees import HoldFeeFilter
from courier_accounts.reconciliation.models import ReportScope
from courier_accounts.reconciliation.orders_io import DateField, OrderQuery


def resolve_default_out_dir(
    courier_id: Optional[str],
    out_dir_override: Optional[Path] = None,
) -> Path:
    """
    Resolve output base dir. An override wins; otherwise
    courier_accounts/reports/courier_accounts/<courier_id or "all">/.
    """
    if out_dir_override is not None:
        return Path(out_dir_override).resolve()
    return (OPS_REPORTS_DIR / "courier_accounts" / (courier_id or "all")).resolve()


@dataclass
class ReportConfig:
    """Configuration for one courier report run."""

    start: date
    end: date
    courier_id: Optional[str] = None  # None = every order, "total" = every assigned order
    courier_view: bool = False
    include_hold_fees: bool = True
    date_field: DateField = DateField.BOTH
    hold_filter: HoldFeeFilter = HoldFeeFilter.ALL
    hold_date: Optional[date] = None
    orders_file: Optional[Path] = None
    hold_fees_file: Optional[Path] = None
    out_dir: Path = OPS_REPORTS_DIR / "courier_accounts"

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"End date {self.end} is before start date {self.start}")

    def output_range_dir(self) -> Path:
        """Output folder for this run: out_dir / <start>_<end>."""
        return Path(self.out_dir) / f"{self.start.isoformat()}_{self.end.isoformat()}"

    def scope(self) -> ReportScope:
        return ReportScope(
            courier_id=self.courier_id,
            courier_view=self.courier_view,
            include_hold_fees=self.include_hold_fees,
        )

    def query(self) -> OrderQuery:
        return OrderQuery(
            start=self.start,
            end=self.end,
            courier_id=self.courier_id,
            date_field=self.date_field,
        )
