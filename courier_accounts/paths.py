from __future__ import annotations

from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
OPS_ROOT = BASE_DIR / "courier_accounts"
OPS_REPORTS_DIR = OPS_ROOT / "reports"
