"""Write courier report CSV breakdowns and the summary JSON."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from courier_accounts.reconciliation.models import HoldFeeLedger, ReconciliationReport
from courier_accounts.reconciliation.money import as_float, to_decimal

STATUS_FIELDS = ["status", "count", "original_value", "collected"]
CHANNEL_FIELDS = ["channel", "count", "amount"]
LINE_FIELDS = [
    "order_id",
    "order_number",
    "status",
    "courier_id",
    "courier_name",
    "channel",
    "amount",
    "sub_method",
    "is_split",
]
HOLD_FEE_FIELDS = [
    "state",
    "order_id",
    "order_number",
    "courier_id",
    "courier_name",
    "hold_fee",
    "hold_fee_comment",
    "hold_fee_created_by",
    "hold_fee_created_at",
    "hold_fee_added_at",
    "hold_fee_removed_at",
]


def _money(value: Any) -> Any:
    parsed = to_decimal(value)
    return as_float(parsed) if parsed is not None else ""


def _write_rows(path: Path, fieldnames: List[str], rows: List[Dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
        w.writeheader()
        w.writerows(rows)


def write_status_breakdown(report: ReconciliationReport, path: Path) -> None:
    """status_breakdown.csv: one row per status, unrecognized last."""
    rows = [bucket.as_dict() for bucket in report.statuses.values()]
    rows.append(report.unrecognized.as_dict())
    _write_rows(path, STATUS_FIELDS, rows)


def write_payment_channels(report: ReconciliationReport, path: Path) -> None:
    """payment_channels.csv: the eight channels plus the total_cod row."""
    rows = [bucket.as_dict() for bucket in report.channels.values()]
    rows.append(report.total_cod.as_dict())
    _write_rows(path, CHANNEL_FIELDS, rows)


def write_payment_lines(report: ReconciliationReport, path: Path) -> None:
    rows = []
    for item in report.line_items:
        o = item.order
        rows.append({
            "order_id": o.id,
            "order_number": o.order_number,
            "status": o.status,
            "courier_id": o.assigned_courier_id or "",
            "courier_name": o.courier_name or "",
            "channel": item.channel.value,
            "amount": as_float(item.amount),
            "sub_method": item.sub_method or "",
            "is_split": item.is_split,
        })
    _write_rows(path, LINE_FIELDS, rows)


def write_hold_fees(ledger: HoldFeeLedger, path: Path) -> None:
    """hold_fees.csv: active holds first, then removed holds, each in ledger order."""
    rows = []
    for state, orders in (("active", ledger.active), ("removed", ledger.removed)):
        for o in orders:
            rows.append({
                "state": state,
                "order_id": o.id,
                "order_number": o.order_number,
                "courier_id": o.assigned_courier_id or "",
                "courier_name": o.courier_name or "",
                "hold_fee": _money(o.hold_fee),
                "hold_fee_comment": o.hold_fee_comment or "",
                "hold_fee_created_by": o.hold_fee_created_by or "",
                "hold_fee_created_at": o.hold_fee_created_at or "",
                "hold_fee_added_at": o.hold_fee_added_at or "",
                "hold_fee_removed_at": o.hold_fee_removed_at or "",
            })
    _write_rows(path, HOLD_FEE_FIELDS, rows)


def build_summary(
    report: ReconciliationReport,
    ledger: Optional[HoldFeeLedger] = None,
    run_info: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build report_summary.json content."""
    summary = report.as_dict()
    if ledger is not None:
        summary["hold_fee_ledger"] = ledger.as_dict()
    if run_info:
        summary["run"] = dict(run_info)
    return summary


def write_report_summary(summary: Dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)


def write_all_reports(
    out_dir: Path,
    report: ReconciliationReport,
    ledger: HoldFeeLedger,
    run_info: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Write all 5 outputs to out_dir and return the summary dict."""
    out_dir = Path(out_dir)
    write_status_breakdown(report, out_dir / "status_breakdown.csv")
    write_payment_channels(report, out_dir / "payment_channels.csv")
    write_payment_lines(report, out_dir / "payment_lines.csv")
    write_hold_fees(ledger, out_dir / "hold_fees.csv")
    summary = build_summary(report, ledger=ledger, run_info=run_info)
    write_report_summary(summary, out_dir / "report_summary.json")
    return summary
