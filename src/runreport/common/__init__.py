"""Shared models, configuration and exceptions for runreport."""

from .config import Settings, get_settings, reload_settings
from .exceptions import (
    ConfigurationError,
    ConsistencyWarning,
    DeserializationError,
    DispatchError,
    InvalidConfigError,
    InvalidRecordError,
    MissingConfigError,
    NotFoundWarning,
    RunReportError,
    StorageError,
)
from .models import RunRecord, RunStatus, generate_run_time, utc_timestamp

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "reload_settings",
    # Models
    "RunRecord",
    "RunStatus",
    "generate_run_time",
    "utc_timestamp",
    # Exceptions
    "RunReportError",
    "StorageError",
    "DeserializationError",
    "NotFoundWarning",
    "ConsistencyWarning",
    "InvalidRecordError",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "DispatchError",
]
