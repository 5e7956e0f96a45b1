"""
Set, change or remove the hold fee on one order.

Reads the current order, builds the hold-fee fields the accounting editor
would save, PATCHes them through Supabase and prints the updated fields.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

# Ensure repo root on path when run as script.
_REPO_ROOT = Path(__file__).resolve().parents[3]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from courier_accounts.load_env import load_env_file
from courier_accounts.reconciliation.hold_fees import build_hold_fee_removal, build_hold_fee_update
from courier_accounts.reconciliation.money import to_decimal
from courier_accounts.reconciliation.supabase_source import OrderSourceError, SupabaseOrderClient
from courier_accounts.settings import configure_logging, load_settings


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Set or remove the hold fee on an order.")
    p.add_argument("--order-id", required=True, help="Order row id.")
    p.add_argument("--actor-id", required=True, help="Id of the staff member making the change.")
    p.add_argument("--amount", default=None, help="New hold fee amount; 0 clears the hold. Omit to keep the current amount.")
    p.add_argument("--comment", default=None, help="Hold fee comment.")
    p.add_argument("--remove", action="store_true", help="Remove the hold fee outright.")
    p.add_argument("--log-level", default=None, help="Logging level (default: COURIER_ACCOUNTS_LOG_LEVEL or INFO).")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    load_env_file()
    try:
        settings = load_settings()
        client = SupabaseOrderClient(settings)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    configure_logging(args.log_level or settings.log_level)

    if args.amount is not None and args.amount.strip() and to_decimal(args.amount) is None:
        print(f"ERROR: Invalid --amount: {args.amount}", file=sys.stderr)
        return 1

    try:
        order = client.fetch_order(args.order_id)
        if order is None:
            print(f"ERROR: Order not found: {args.order_id}", file=sys.stderr)
            return 1
        if args.remove:
            fields = build_hold_fee_removal(args.actor_id)
        else:
            fields = build_hold_fee_update(order, args.amount, args.comment, args.actor_id)
        updated = client.update_hold_fee(order.id, fields)
    except OrderSourceError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    changed = {key: updated.get(key) for key in fields}
    print(json.dumps({"order_id": order.id, "order_number": order.order_number, "fields": changed}, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
