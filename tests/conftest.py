"""
Pytest fixtures for runreport tests.

This module provides common fixtures used across test modules.
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from runreport.common.config import get_settings  # noqa: E402
from runreport.common.models import RunRecord, generate_run_time, utc_timestamp  # noqa: E402
from runreport.storage import RunLogger  # noqa: E402

pytest_plugins = ["pytester"]

# Environment variables read by the settings classes.
SETTINGS_ENV = [
    "RUNREPORT_CONFIG_FILE",
    "RUNREPORT_RESULTS_DIR",
    "RUNREPORT_HISTORY_FILE",
    "RUNREPORT_HISTORY_LIMIT",
    "RUNREPORT_RETENTION_DAYS",
    "RUNREPORT_DEBUG",
    "RUN_TIME",
    "RUN_INFO_PATH",
    "RESULTS_PATH",
    "REPORT_URL",
    "EMAIL_RECIPIENTS",
    "EMAILS_RECEIVED_NOTIFICATION",
    "RESULTS_SCAN_DIR",
    "REPORT_SUBJECT_PREFIX",
    "BASE_URL",
    "HEADLESS",
    "TEST_BROWSER",
    "TEST_ENV",
    "TEST_SUITE",
    "WORKERS",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_SECURE",
    "SMTP_USER",
    "SMTP_PASS",
    "SMTP_PASSWORD",
    "SMTP_FROM",
    "LOG_LEVEL",
    "LOG_FILE",
    "GITHUB_REF",
    "GITHUB_SHA",
    "GITHUB_ACTOR",
]

BASE_TIME = datetime(2024, 1, 5, 8, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate every test from the caller's environment and cached settings."""
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def results_dir(tmp_path):
    """Empty results directory."""
    return tmp_path / "test-results"


@pytest.fixture
def run_logger(results_dir):
    """RunLogger rooted at a temporary results directory."""
    return RunLogger(results_dir)


@pytest.fixture
def make_record():
    """
    Factory for run records.

    ``offset`` is the number of minutes after 2024-01-05 08:09 UTC; the
    run identifier and timestamp are both derived from it.
    """

    def _make(offset: int = 0, **fields) -> RunRecord:
        when = BASE_TIME + timedelta(minutes=offset)
        data = {
            "run_time": generate_run_time(when),
            "timestamp": utc_timestamp(when),
            "environment": "staging",
            "test_suite": "smoke",
        }
        data.update(fields)
        return RunRecord(**data)

    return _make
