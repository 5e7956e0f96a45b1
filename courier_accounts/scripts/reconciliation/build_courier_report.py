"""
Courier accounts report for one date range.

Process:
1) Fetch orders for the range (Supabase, or an exported orders file).
2) Fetch every order with hold-fee activity for the hold-fee ledger.
3) Compute status, payment-channel and fee totals for the courier scope.
4) Write report_summary.json and CSV breakdowns under <out-dir>/<start>_<end>/.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

# Ensure repo root on path when run as script.
_REPO_ROOT = Path(__file__).resolve().parents[3]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from courier_accounts.load_env import load_env_file
from courier_accounts.reconciliation.config import ReportConfig, resolve_default_out_dir
from courier_accounts.reconciliation.dates import QUICK_RANGES, local_today, parse_date, quick_date_range
from courier_accounts.reconciliation.hold_fees import HoldFeeFilter, build_hold_fee_ledger
from courier_accounts.reconciliation.models import Order
from courier_accounts.reconciliation.orders_io import DateField, FileOrderSource
from courier_accounts.reconciliation.report import compute_report
from courier_accounts.reconciliation.report_writer import write_all_reports
from courier_accounts.reconciliation.supabase_source import OrderSourceError, SupabaseOrderClient
from courier_accounts.settings import configure_logging, load_settings

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Build the courier accounts report (statuses, payment channels, hold fees) for a date range.",
    )
    p.add_argument("--start", default=None, help="Start date YYYY-MM-DD (default: today).")
    p.add_argument("--end", default=None, help="End date YYYY-MM-DD (default: --start).")
    p.add_argument(
        "--range",
        choices=QUICK_RANGES,
        default=None,
        help="Quick date range relative to today; overrides --start/--end.",
    )
    p.add_argument(
        "--courier-id",
        default=None,
        help='Courier id to scope the report to, or "total" for every assigned order (default: all orders).',
    )
    p.add_argument(
        "--courier-view",
        action="store_true",
        help="Report as seen by the courier (pending orders folded into assigned).",
    )
    p.add_argument(
        "--orders-file",
        type=Path,
        default=None,
        help="Exported orders file (.json or .csv) used instead of Supabase.",
    )
    p.add_argument(
        "--hold-fees-file",
        type=Path,
        default=None,
        help="Exported orders file for the hold-fee ledger (default: --orders-file, else Supabase).",
    )
    p.add_argument(
        "--date-field",
        choices=[f.value for f in DateField],
        default=DateField.BOTH.value,
        help="Timestamp the date range applies to (default: both, merged by order id).",
    )
    p.add_argument(
        "--hold-filter",
        choices=[f.value for f in HoldFeeFilter],
        default=HoldFeeFilter.ALL.value,
        help="Hold-fee ledger date filter (default: all).",
    )
    p.add_argument("--hold-date", default=None, help="Date YYYY-MM-DD for --hold-filter custom.")
    p.add_argument(
        "--exclude-hold-fees",
        action="store_true",
        help="Leave orders with hold-fee activity out of the payment-channel totals.",
    )
    p.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help="Base output directory (default: courier_accounts/reports/courier_accounts/<courier>/).",
    )
    p.add_argument("--log-level", default=None, help="Logging level (default: COURIER_ACCOUNTS_LOG_LEVEL or INFO).")
    return p.parse_args(argv)


def _resolve_dates(args: argparse.Namespace, today: date) -> Tuple[date, date]:
    """Quick range wins; otherwise --start/--end, each defaulting sensibly. Raises ValueError."""
    if args.range:
        return quick_date_range(args.range, today)
    start = parse_date(args.start) if args.start else today
    if start is None:
        raise ValueError(f"Invalid --start date: {args.start}")
    end = parse_date(args.end) if args.end else start
    if end is None:
        raise ValueError(f"Invalid --end date: {args.end}")
    return start, end


def _fetch_with_fallback(label: str, fetch) -> List[Order]:
    try:
        return fetch()
    except OrderSourceError as exc:
        logger.error("Could not fetch %s, continuing with none: %s", label, exc)
        return []


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    load_env_file()
    try:
        settings = load_settings()
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    configure_logging(args.log_level or settings.log_level)
    tz = settings.tz
    today = local_today(tz)

    hold_date = None
    if args.hold_date:
        hold_date = parse_date(args.hold_date)
        if hold_date is None:
            print(f"ERROR: Invalid --hold-date: {args.hold_date}", file=sys.stderr)
            return 1

    try:
        start, end = _resolve_dates(args, today)
        config = ReportConfig(
            start=start,
            end=end,
            courier_id=args.courier_id or None,
            courier_view=args.courier_view,
            include_hold_fees=not args.exclude_hold_fees,
            date_field=DateField(args.date_field),
            hold_filter=HoldFeeFilter(args.hold_filter),
            hold_date=hold_date,
            orders_file=args.orders_file,
            hold_fees_file=args.hold_fees_file,
            out_dir=resolve_default_out_dir(args.courier_id, args.out_dir),
        )
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    client: Optional[SupabaseOrderClient] = None
    if config.orders_file is None:
        try:
            client = SupabaseOrderClient(settings)
        except ValueError as exc:
            print(f"ERROR: {exc} Or pass --orders-file.", file=sys.stderr)
            return 1

    try:
        if config.orders_file is not None:
            order_source = FileOrderSource(config.orders_file, tz)
            orders = order_source.fetch_orders(config.query())
        else:
            orders = _fetch_with_fallback("orders", lambda: client.fetch_orders(config.query()))

        hold_path = config.hold_fees_file or config.orders_file
        if hold_path is not None:
            hold_orders = FileOrderSource(hold_path, tz).fetch_hold_fee_orders(config.courier_id)
        else:
            hold_orders = _fetch_with_fallback(
                "hold-fee orders", lambda: client.fetch_hold_fee_orders(config.courier_id)
            )
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    report = compute_report(orders, config.scope())
    ledger = build_hold_fee_ledger(
        hold_orders,
        config.hold_filter,
        today,
        tz,
        custom_date=config.hold_date,
        courier_id=config.courier_id,
    )

    run_dir = config.output_range_dir()
    summary = write_all_reports(
        run_dir,
        report,
        ledger,
        run_info={
            "start": config.start.isoformat(),
            "end": config.end.isoformat(),
            "timezone": settings.business_timezone,
            "date_field": config.date_field.value,
            "hold_filter": config.hold_filter.value,
            "hold_date": config.hold_date.isoformat() if config.hold_date else None,
            "source": str(config.orders_file) if config.orders_file else "supabase",
        },
    )

    if report.diagnostics.has_issues:
        logger.warning("Report has data-quality issues; see diagnostics in report_summary.json")
    totals = summary["totals"]
    print(f"Orders: {totals['orders_count']}  value: {totals['original_value']:.2f}")
    print(f"Cash on delivery: {summary['total_cod']['amount']:.2f}  hand to accounting: {totals['hand_to_accounting']:.2f}")
    print(f"Active hold fees: {len(ledger.active)} ({float(ledger.active_amount):.2f})  removed: {len(ledger.removed)}")
    print(f"Wrote reports to {run_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
