"""Lightweight .env loader for script entrypoints."""

from __future__ import annotations

import os
from pathlib import Path

from courier_accounts.paths import BASE_DIR, OPS_ROOT


def _candidate_paths(env_file: str) -> list[Path]:
    return [
        OPS_ROOT / env_file,
        BASE_DIR / env_file,
    ]


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def load_env_file(env_file: str = ".env") -> None:
    """
    Load environment variables from `.env`.

    Search order:
    1) `courier_accounts/.env`
    2) repo-root `.env`

    Variables already present in the process environment win.
    """
    env_path = next((path for path in _candidate_paths(env_file) if path.exists()), None)
    if env_path is None:
        return

    try:
        with open(env_path, "r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                if line.startswith("export "):
                    line = line[len("export "):]

                key, value = line.split("=", 1)
                key = key.strip()
                value = _strip_quotes(value.strip())

                if key and key not in os.environ:
                    os.environ[key] = value
    except OSError:
        # Non-fatal: scripts still read the process environment.
        return
