"""
pytest plugin that logs a test session as a run.

Enable it with::

    pytest -p runreport.pytest_plugin --runreport

pytest itself is not a runtime dependency of runreport; install it with
the ``pytest`` extra (``pip install runreport[pytest]``).

The session start writes a ``running`` record, every test outcome is
collected, and at the end a ``results.json`` document is written next to
the run record, which is then updated with the final status and counts.
"""

import logging
import os
import sys
import time
from typing import Any, Optional

import pytest

from .common.config import ExecutionSettings, get_settings
from .common.exceptions import ConfigurationError, StorageError
from .common.models import RunRecord, RunStatus, generate_run_time, utc_timestamp
from .reporting.results import RESULTS_FILE
from .storage import RunLogger
from .storage.record_store import write_json

logger = logging.getLogger(__name__)

PLUGIN_NAME = "runreport-session"

PASSED = "Passed"
FAILED = "Failed"
SKIPPED = "Skipped"


def pytest_addoption(parser):
    group = parser.getgroup("runreport", "test run history")
    group.addoption(
        "--runreport",
        action="store_true",
        default=False,
        help="Log this session to the runreport history",
    )
    group.addoption(
        "--runreport-dir",
        default=None,
        help="Results directory (default: RUNREPORT_RESULTS_DIR or test-results)",
    )


def pytest_configure(config):
    if not config.getoption("runreport"):
        return

    try:
        settings = get_settings()
    except ConfigurationError as e:
        raise pytest.UsageError(f"runreport: {e}")
    run_logger = RunLogger(
        results_dir=config.getoption("runreport_dir") or settings.storage.results_dir,
        history_file=settings.storage.history_file,
        history_limit=settings.storage.history_limit,
    )
    plugin = RunReportPlugin(
        run_logger,
        settings.execution,
        run_time=os.getenv("RUN_TIME"),
        command=" ".join(["pytest", *sys.argv[1:]]),
    )
    config.pluginmanager.register(plugin, PLUGIN_NAME)


def split_nodeid(nodeid: str) -> tuple[str, str]:
    """Split ``path::Class::test`` into ``("path::Class", "test")``."""
    suite, _, name = nodeid.rpartition("::")
    return suite, name or nodeid


class RunReportPlugin:
    """Session-scoped hooks recording one run."""

    def __init__(
        self,
        run_logger: RunLogger,
        execution: Optional[ExecutionSettings] = None,
        run_time: Optional[str] = None,
        command: str = "",
    ):
        self.run_logger = run_logger
        self.execution = execution or ExecutionSettings()
        self.run_time = run_time or generate_run_time()
        self.command = command
        self.outcomes: dict[str, str] = {}
        self._started: Optional[float] = None

    def pytest_sessionstart(self, session):
        self._started = time.monotonic()
        record = RunRecord(
            run_time=self.run_time,
            environment=self.execution.environment,
            test_suite=self.execution.test_suite,
            base_url=self.execution.base_url,
            headless=self.execution.headless,
            browser=self.execution.browser,
            workers=self.execution.workers,
            command=self.command,
            timestamp=utc_timestamp(),
            status=RunStatus.RUNNING.value,
        )
        self.run_logger.log_run(record)

    def pytest_runtest_logreport(self, report):
        if report.when == "call":
            if report.passed:
                self.outcomes[report.nodeid] = PASSED
            elif report.failed:
                self.outcomes[report.nodeid] = FAILED
            else:
                self.outcomes[report.nodeid] = SKIPPED
        elif report.when == "setup" and not report.passed:
            self.outcomes[report.nodeid] = FAILED if report.failed else SKIPPED
        elif report.when == "teardown" and report.failed:
            self.outcomes[report.nodeid] = FAILED

    def results_document(self) -> dict[str, Any]:
        """Build the ``stats`` + ``testCases`` results document."""
        statuses = list(self.outcomes.values())
        test_cases = []
        for nodeid, status in self.outcomes.items():
            suite, name = split_nodeid(nodeid)
            test_cases.append({"name": name, "suite": suite, "status": status})

        return {
            "stats": {
                "totalTests": len(statuses),
                "passed": statuses.count(PASSED),
                "failed": statuses.count(FAILED),
                "skipped": statuses.count(SKIPPED),
            },
            "testCases": test_cases,
        }

    @pytest.hookimpl(trylast=True)
    def pytest_sessionfinish(self, session, exitstatus):
        document = self.results_document()
        stats = document["stats"]

        try:
            run_dir = self.run_logger.store.run_dir(self.run_time)
            write_json(run_dir / RESULTS_FILE, document)
        except StorageError as e:
            logger.error("Failed to write results for %s: %s", self.run_time, e)

        exit_code = int(exitstatus)
        duration = 0
        if self._started is not None:
            duration = int((time.monotonic() - self._started) * 1000)

        self.run_logger.update_run(
            self.run_time,
            {
                "status": RunStatus.PASSED if exit_code == 0 else RunStatus.FAILED,
                "exitCode": exit_code,
                "duration": duration,
                "totalTests": stats["totalTests"],
                "passedTests": stats["passed"],
                "failedTests": stats["failed"],
                "skippedTests": stats["skipped"],
            },
        )
