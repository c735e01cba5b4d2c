"""
Test summary building.

A TestSummary is derived from a run record and, when the test runner
produced one, its results document. It is never stored on its own.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..common.exceptions import DeserializationError, MissingConfigError
from ..common.models import RunRecord, parse_instant
from ..storage.record_store import read_json
from .results import load_results

logger = logging.getLogger(__name__)

# Layouts a runTime may come in, tried in order.
RUN_TIME_FORMATS = (
    "%Y-%m-%dT%H-%M-%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)

# Not a RunStatus value, but run-info documents written for jobs that never
# executed carry it. Kept for compatibility with those documents.
SKIPPED_STATUS = "skipped"


@dataclass
class TestCaseOutcome:
    """Outcome of one test case as listed in a results document."""

    __test__ = False

    name: str
    suite: str
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "suite": self.suite, "status": self.status}


@dataclass
class TestSummary:
    """Aggregate counts of a test run, ready for rendering."""

    __test__ = False

    total: int
    passed: int
    failed: int
    skipped: int
    execution_date: datetime
    report_url: str = ""
    test_cases: list[TestCaseOutcome] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "execution_date": self.execution_date.isoformat(),
            "report_url": self.report_url,
            "test_cases": [tc.to_dict() for tc in self.test_cases],
        }


def parse_run_time(run_time: Optional[str]) -> Optional[datetime]:
    """
    Parse a run identifier into a naive local datetime.

    Accepts ``YYYY-MM-DDTHH-MM-SS`` (the directory-safe form),
    ``YYYY-MM-DD HH:MM:SS`` and ISO 8601.
    """
    if not run_time:
        return None

    for fmt in RUN_TIME_FORMATS:
        try:
            return datetime.strptime(run_time, fmt)
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(run_time)
    except ValueError:
        return None


def resolve_execution_date(
    run_time: Optional[str],
    timestamp: Optional[str],
    now: Optional[datetime] = None,
) -> datetime:
    """
    Pick the execution date of a run.

    The run identifier wins, then the record timestamp, then ``now``, so
    a valid datetime always comes out.
    """
    execution_date = parse_run_time(run_time)
    if execution_date is None:
        execution_date = parse_instant(timestamp)
    if execution_date is None:
        logger.debug(
            "Unparseable runTime %r and timestamp %r, using current time",
            run_time,
            timestamp,
        )
        execution_date = now or datetime.now()
    return execution_date


def _count(stats: dict[str, Any], key: str) -> int:
    value = stats.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


class SummaryBuilder:
    """Builds TestSummary objects from run records and results documents."""

    def __init__(self, report_url: str = ""):
        """
        Initialize the builder.

        Args:
            report_url: Link to the full report, passed through untouched.
        """
        self.report_url = report_url

    def build(
        self,
        record: RunRecord,
        results: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> TestSummary:
        """
        Build the summary of a run.

        When a results document is given its ``stats`` are authoritative
        and the counts stored on the record are ignored.

        Args:
            record: The run record.
            results: The raw results document, if the runner wrote one.
            now: Fallback execution date.

        Returns:
            TestSummary instance.
        """
        total = passed = failed = skipped = 0
        test_cases: list[TestCaseOutcome] = []

        if results is not None:
            stats = results.get("stats")
            if not isinstance(stats, dict):
                stats = {}
            total = _count(stats, "totalTests")
            passed = _count(stats, "passed")
            failed = _count(stats, "failed")
            skipped = _count(stats, "skipped")

            for tc in results.get("testCases") or []:
                if not isinstance(tc, dict):
                    continue
                test_cases.append(
                    TestCaseOutcome(
                        name=str(tc.get("name", "")),
                        suite=str(tc.get("suite", "")),
                        status=str(tc.get("status", "")),
                    )
                )
        elif record.status == SKIPPED_STATUS:
            skipped = 1
            total = 0

        return TestSummary(
            total=total,
            passed=passed,
            failed=failed,
            skipped=skipped,
            execution_date=resolve_execution_date(record.run_time, record.timestamp, now),
            report_url=self.report_url,
            test_cases=test_cases,
        )

    def build_from_files(
        self,
        run_info_path: str | Path,
        results_path: str | Path | None = None,
    ) -> TestSummary:
        """
        Build a summary from a run-info document and an optional results file.

        Raises:
            MissingConfigError: If the run-info document does not exist.
            DeserializationError: If either document is malformed.
        """
        if not run_info_path or not Path(run_info_path).is_file():
            raise MissingConfigError(
                "RUN_INFO_PATH", {"reason": "run-info.json not found", "path": str(run_info_path)}
            )

        run_info_path = Path(run_info_path)
        try:
            record = RunRecord.from_document(read_json(run_info_path))
        except ValidationError as e:
            raise DeserializationError(
                f"Invalid run record in {run_info_path}",
                str(run_info_path),
                {"errors": e.errors(include_url=False)},
            )

        return self.build(record, load_results(results_path))
