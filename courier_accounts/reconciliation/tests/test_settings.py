"""Unit tests for env-driven settings, .env loading and run config."""

from __future__ import annotations

import logging
import os
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest import mock

from courier_accounts import load_env
from courier_accounts.reconciliation.config import ReportConfig, resolve_default_out_dir
from courier_accounts.reconciliation.orders_io import DateField
from courier_accounts.settings import load_settings, normalize_log_level, resolve_logging_level


class TestLoadSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = load_settings()
        self.assertEqual(settings.supabase_url, "")
        self.assertEqual(settings.business_timezone, "Africa/Cairo")
        self.assertEqual(settings.request_timeout_seconds, 30)
        self.assertEqual(settings.log_level, "INFO")
        with self.assertRaises(ValueError):
            settings.require_supabase()

    def test_env_values(self) -> None:
        env = {
            "SUPABASE_URL": "https://project.supabase.co/",
            "SUPABASE_KEY": "fallback-key",
            "COURIER_ACCOUNTS_TIMEZONE": "UTC",
            "COURIER_ACCOUNTS_HTTP_TIMEOUT": "12",
            "COURIER_ACCOUNTS_LOG_LEVEL": "debug",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings()
        self.assertEqual(settings.supabase_url, "https://project.supabase.co")
        self.assertEqual(settings.supabase_key, "fallback-key")
        self.assertEqual(str(settings.tz), "UTC")
        self.assertEqual(settings.request_timeout_seconds, 12)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_anon_key_preferred(self) -> None:
        env = {"SUPABASE_ANON_KEY": "anon", "SUPABASE_KEY": "other"}
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(load_settings().supabase_key, "anon")

    def test_invalid_timeout_falls_back(self) -> None:
        for raw in ("abc", "0", "-5"):
            with mock.patch.dict(os.environ, {"COURIER_ACCOUNTS_HTTP_TIMEOUT": raw}, clear=True):
                self.assertEqual(load_settings().request_timeout_seconds, 30, raw)

    def test_invalid_timezone_raises(self) -> None:
        with mock.patch.dict(os.environ, {"COURIER_ACCOUNTS_TIMEZONE": "Mars/Base"}, clear=True):
            with self.assertRaises(ValueError):
                load_settings()

    def test_log_level_normalization(self) -> None:
        self.assertEqual(normalize_log_level("warning"), "WARNING")
        self.assertEqual(normalize_log_level("verbose"), "INFO")
        self.assertEqual(normalize_log_level(None), "INFO")
        self.assertEqual(resolve_logging_level("error"), logging.ERROR)


class TestLoadEnvFile(unittest.TestCase):
    def test_reads_values_without_overriding(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / ".env").write_text(
                "# comment\n"
                "export SUPABASE_URL='https://from-file.supabase.co'\n"
                'SUPABASE_ANON_KEY="file-key"\n'
                "COURIER_ACCOUNTS_LOG_LEVEL=DEBUG\n"
                "not a pair\n",
                encoding="utf-8",
            )
            with mock.patch.object(load_env, "OPS_ROOT", root / "missing"), mock.patch.object(
                load_env, "BASE_DIR", root
            ), mock.patch.dict(os.environ, {"COURIER_ACCOUNTS_LOG_LEVEL": "ERROR"}, clear=True):
                load_env.load_env_file()
                self.assertEqual(os.environ["SUPABASE_URL"], "https://from-file.supabase.co")
                self.assertEqual(os.environ["SUPABASE_ANON_KEY"], "file-key")
                self.assertEqual(os.environ["COURIER_ACCOUNTS_LOG_LEVEL"], "ERROR")

    def test_missing_file_is_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch.object(load_env, "OPS_ROOT", Path(tmp)), mock.patch.object(
                load_env, "BASE_DIR", Path(tmp)
            ), mock.patch.dict(os.environ, {}, clear=True):
                load_env.load_env_file()
                self.assertEqual(dict(os.environ), {})


class TestReportConfig(unittest.TestCase):
    def test_output_dir_and_scope(self) -> None:
        config = ReportConfig(
            start=date(2026, 3, 1),
            end=date(2026, 3, 7),
            courier_id="c1",
            include_hold_fees=False,
            date_field=DateField.UPDATED_AT,
            out_dir=Path("/tmp/reports"),
        )
        self.assertEqual(config.output_range_dir(), Path("/tmp/reports/2026-03-01_2026-03-07"))
        scope = config.scope()
        self.assertEqual(scope.courier_id, "c1")
        self.assertFalse(scope.include_hold_fees)
        self.assertTrue(scope.courier_scoped)
        query = config.query()
        self.assertEqual(query.date_fields, [DateField.UPDATED_AT])
        self.assertTrue(query.filters_courier)

    def test_end_before_start_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ReportConfig(start=date(2026, 3, 7), end=date(2026, 3, 1))

    def test_default_out_dir(self) -> None:
        self.assertEqual(resolve_default_out_dir("c1").name, "c1")
        self.assertEqual(resolve_default_out_dir(None).name, "all")
        override = Path(tempfile.gettempdir()) / "x"
        self.assertEqual(resolve_default_out_dir("c1", override), override.resolve())
