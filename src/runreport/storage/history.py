"""
Bounded, time-ordered history of test runs.

The history is a single JSON array of run records, newest first, which is
read and rewritten as a whole on every mutation. It is capped at a fixed
number of entries; dropping an entry because of the cap leaves the run's
directory alone, only ``cleanup`` deletes run directories.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..common.exceptions import DeserializationError, StorageError
from ..common.models import RunRecord, RunStatus
from .record_store import RecordStore, read_json, write_json

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100
DEFAULT_DAYS_TO_KEEP = 30
RECENT_RUNS = 10


@dataclass
class HistorySummary:
    """Operator-facing statistics over the run history."""

    total_runs: int
    passed_runs: int
    failed_runs: int
    pass_rate: float
    recent: list[RunRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_runs": self.total_runs,
            "passed_runs": self.passed_runs,
            "failed_runs": self.failed_runs,
            "pass_rate": self.pass_rate,
            "recent": [r.to_document() for r in self.recent],
        }

    def format(self) -> str:
        """Render the plain-text summary printed by the CLI."""
        if self.total_runs == 0:
            return "No test run history found."

        rule = "=" * 80
        lines = [
            "",
            "Test Run Summary",
            "",
            rule,
            "",
            f"Total Runs: {self.total_runs}",
            f"Passed: {self.passed_runs} ({self.pass_rate:.2f}%)",
            f"Failed: {self.failed_runs}",
            "",
            "Recent Test Runs:",
            "",
        ]
        for index, run in enumerate(self.recent, 1):
            marker = "PASS" if run.status == RunStatus.PASSED.value else "FAIL"
            lines.append(
                f"{index}. [{marker}] {run.run_time} - {run.test_suite} ({run.environment})"
            )
        lines.extend(["", rule, ""])
        return "\n".join(lines)


class HistoryIndex:
    """
    History of run records stored as one JSON document.

    Entries are unique by ``runTime`` and kept sorted newest first by
    ``timestamp``.
    """

    def __init__(
        self,
        path: str | Path,
        store: RecordStore,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        """
        Initialize the index.

        Args:
            path: Location of the history JSON file.
            store: Record store owning the per-run directories.
            limit: Maximum number of entries kept.
        """
        self._path = Path(path)
        self._store = store
        self._limit = limit

    @property
    def path(self) -> Path:
        return self._path

    @property
    def limit(self) -> int:
        return self._limit

    def _read(self) -> list[RunRecord]:
        """
        Load the stored entries in file order.

        Raises:
            DeserializationError: If the file is not a list of run records.
            StorageError: If the file cannot be read.
        """
        if not self._path.is_file():
            return []

        document = read_json(self._path)
        if not isinstance(document, list):
            raise DeserializationError(
                f"History file {self._path} does not contain a list",
                str(self._path),
            )

        try:
            return [RunRecord.from_document(entry) for entry in document]
        except ValidationError as e:
            raise DeserializationError(
                f"Invalid run record in {self._path}",
                str(self._path),
                {"errors": e.errors(include_url=False)},
            )

    def _write(self, entries: list[RunRecord]) -> None:
        write_json(self._path, [entry.to_document() for entry in entries])

    def get_all(self) -> list[RunRecord]:
        """
        Return a snapshot of all entries, newest first.

        A malformed history file is logged and treated as empty.
        """
        try:
            return self._read()
        except DeserializationError as e:
            logger.error("Failed to get test run history: %s", e)
            return []

    def get(self, run_time: str) -> Optional[RunRecord]:
        """Return the entry for ``run_time`` if present."""
        for entry in self.get_all():
            if entry.run_time == run_time:
                return entry
        return None

    def upsert(self, record: RunRecord) -> list[RunRecord]:
        """
        Insert or replace the entry for ``record.run_time``.

        The collection is re-sorted newest first and truncated to the
        configured limit before being written back.

        Args:
            record: The new or updated record.

        Returns:
            The stored entries.

        Raises:
            StorageError: If the history file cannot be written.
        """
        entries = self.get_all()

        for index, entry in enumerate(entries):
            if entry.run_time == record.run_time:
                entries[index] = record
                break
        else:
            entries.append(record)

        entries.sort(key=RunRecord.sort_key, reverse=True)

        if len(entries) > self._limit:
            dropped = entries[self._limit:]
            entries = entries[: self._limit]
            logger.debug(
                "History limit %d reached, dropped %d entries",
                self._limit,
                len(dropped),
            )

        self._write(entries)
        return entries

    def cleanup(
        self,
        days_to_keep: int = DEFAULT_DAYS_TO_KEEP,
        now: Optional[datetime] = None,
    ) -> list[str]:
        """
        Delete runs older than ``days_to_keep`` days.

        Both the run directory and the history entry are removed. Entries
        with an unparseable timestamp are kept, as are entries whose run
        directory cannot be deleted.

        Args:
            days_to_keep: Age threshold in days.
            now: Reference time, defaults to the current time.

        Returns:
            The run identifiers that were removed.

        Raises:
            StorageError: If the history file cannot be written.
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        cutoff = now - timedelta(days=days_to_keep)

        entries = self.get_all()
        expired: list[str] = []
        for entry in entries:
            timestamp = entry.parsed_timestamp()
            if timestamp is not None and timestamp < cutoff:
                expired.append(entry.run_time)

        removed: list[str] = []
        for run_time in expired:
            try:
                deleted = self._store.delete(run_time)
            except StorageError as e:
                logger.warning("Skipping old test run %s: %s", run_time, e)
                continue
            if deleted:
                logger.info("Deleted old test run: %s", run_time)
            removed.append(run_time)

        remaining = [entry for entry in entries if entry.run_time not in removed]
        self._write(remaining)

        logger.info("Cleaned up %d old test runs", len(removed))
        return removed

    def summarize(self) -> HistorySummary:
        """Compute pass/fail statistics and the most recent runs."""
        entries = self.get_all()
        total = len(entries)
        passed = sum(1 for e in entries if e.status == RunStatus.PASSED.value)
        failed = sum(1 for e in entries if e.status == RunStatus.FAILED.value)
        pass_rate = (passed / total) * 100 if total else 0.0

        return HistorySummary(
            total_runs=total,
            passed_runs=passed,
            failed_runs=failed,
            pass_rate=pass_rate,
            recent=entries[:RECENT_RUNS],
        )
