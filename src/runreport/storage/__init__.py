"""Storage layer for test run records and history."""

from .history import HistoryIndex, HistorySummary
from .record_store import RecordStore
from .run_logger import RunLogger

__all__ = [
    "RecordStore",
    "HistoryIndex",
    "HistorySummary",
    "RunLogger",
]
