"""
Test run logger for runreport.

RunLogger ties the per-run record store and the history index together
and owns the error policy of the logging path: storage problems are
logged and swallowed so that a broken results directory never fails the
test run that is being logged.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from ..common.config import Settings
from ..common.exceptions import InvalidRecordError, NotFoundWarning, StorageError
from ..common.models import RunRecord
from .history import DEFAULT_DAYS_TO_KEEP, DEFAULT_HISTORY_LIMIT, HistoryIndex, HistorySummary
from .record_store import RecordStore

logger = logging.getLogger(__name__)

HISTORY_FILE = "test-run-history.json"


class RunLogger:
    """Log and track test runs under a results directory."""

    def __init__(
        self,
        results_dir: str | Path,
        history_file: str = HISTORY_FILE,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        """
        Initialize the logger.

        Args:
            results_dir: Root directory for run directories and history.
            history_file: History file name inside ``results_dir``.
            history_limit: Maximum number of history entries.
        """
        self.store = RecordStore(results_dir)
        self.history = HistoryIndex(
            Path(results_dir) / history_file, self.store, limit=history_limit
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RunLogger":
        """Create a logger from the storage settings."""
        return cls(
            results_dir=settings.storage.results_dir,
            history_file=settings.storage.history_file,
            history_limit=settings.storage.history_limit,
        )

    @property
    def results_dir(self) -> Path:
        return self.store.root

    def log_run(self, record: RunRecord) -> bool:
        """
        Log a new test run.

        Returns:
            True if both the run record and the history were written.
        """
        try:
            self.store.write(record)
            self.history.upsert(record)
        except StorageError as e:
            logger.error("Failed to log test run %s: %s", record.run_time, e)
            return False

        logger.info("Test run logged: %s", record.run_time)
        return True

    def update_run(self, run_time: str, updates: dict[str, Any]) -> Optional[RunRecord]:
        """
        Update a logged run with results.

        Returns:
            The merged record, or None if the run is unknown, the updates
            are invalid or storage failed.
        """
        try:
            updated = self.store.update(run_time, updates)
            self.history.upsert(updated)
        except NotFoundWarning as e:
            logger.warning("%s", e)
            return None
        except InvalidRecordError as e:
            logger.error("Rejected update for test run %s: %s", run_time, e)
            return None
        except StorageError as e:
            logger.error("Failed to update test run %s: %s", run_time, e)
            return None

        logger.info("Test run updated: %s", run_time)
        return updated

    def get_run(self, run_time: str) -> Optional[RunRecord]:
        """Return the record of a run, or None if absent or unreadable."""
        try:
            return self.store.read(run_time)
        except StorageError as e:
            logger.error("Failed to get test run %s: %s", run_time, e)
            return None

    def get_history(self) -> list[RunRecord]:
        """Return all history entries, newest first."""
        try:
            return self.history.get_all()
        except StorageError as e:
            logger.error("Failed to get test run history: %s", e)
            return []

    def summarize(self) -> HistorySummary:
        """Statistics over the run history."""
        try:
            return self.history.summarize()
        except StorageError as e:
            logger.error("Failed to generate summary: %s", e)
            return HistorySummary(total_runs=0, passed_runs=0, failed_runs=0, pass_rate=0.0)

    def cleanup(self, days_to_keep: int = DEFAULT_DAYS_TO_KEEP) -> list[str]:
        """
        Delete runs older than ``days_to_keep`` days.

        Returns:
            The removed run identifiers; empty if storage failed.
        """
        try:
            return self.history.cleanup(days_to_keep)
        except StorageError as e:
            logger.error("Failed to cleanup: %s", e)
            return []
