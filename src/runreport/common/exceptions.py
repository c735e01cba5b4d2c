"""
Custom exceptions for runreport.

This module defines all custom exceptions used throughout the package
for better error handling and debugging.
"""

from typing import Any, Optional


class RunReportError(Exception):
    """Base exception for all runreport errors."""

    def __init__(self, message: str,
                 details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# Storage Exceptions
class StorageError(RunReportError):
    """Raised when the results directory cannot be read or written."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize storage error.

        Args:
            message: Human-readable error message.
            path: The file or directory that failed.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message, details)
        self.path = path


class DeserializationError(StorageError):
    """Raised when a stored document is not valid JSON or not a run record."""


class NotFoundWarning(RunReportError):
    """Raised when an update targets a run that was never logged."""

    def __init__(
        self, run_time: str, details: Optional[dict[str, Any]] = None
    ) -> None:
        """
        Initialize not found warning.

        Args:
            run_time: The run identifier that was not found.
            details: Optional dictionary with additional error details.
        """
        super().__init__(f"Run info not found for: {run_time}", details)
        self.run_time = run_time


class ConsistencyWarning(RunReportError):
    """Raised when a run leaves a terminal status."""

    def __init__(
        self,
        run_time: str,
        old_status: Optional[str],
        new_status: Optional[str],
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            f"Run '{run_time}' moved from terminal status "
            f"'{old_status}' to '{new_status}'",
            details,
        )
        self.run_time = run_time
        self.old_status = old_status
        self.new_status = new_status


class InvalidRecordError(RunReportError):
    """Raised when updates would leave a run record with invalid fields."""

    def __init__(
        self, run_time: str, details: Optional[dict[str, Any]] = None
    ) -> None:
        """
        Initialize invalid record error.

        Args:
            run_time: The run identifier of the rejected record.
            details: Optional dictionary with additional error details.
        """
        super().__init__(f"Invalid field values for run: {run_time}", details)
        self.run_time = run_time


# Configuration Exceptions
class ConfigurationError(RunReportError):
    """Base exception for configuration-related errors."""


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration value is missing."""

    def __init__(
        self, config_key: str, details: Optional[dict[str, Any]] = None
    ) -> None:
        """
        Initialize missing config error.

        Args:
            config_key: The missing configuration key.
            details: Optional dictionary with additional error details.
        """
        super().__init__(
            f"Missing required configuration: '{config_key}'", details)
        self.config_key = config_key


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""

    def __init__(
        self,
        config_key: str,
        value: Any,
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize invalid config error.

        Args:
            config_key: The configuration key with invalid value.
            value: The invalid value.
            reason: Optional reason why the value is invalid.
            details: Optional dictionary with additional error details.
        """
        message = f"Invalid configuration value for '{config_key}': {value}"
        if reason:
            message += f" - {reason}"
        super().__init__(message, details)
        self.config_key = config_key
        self.value = value
        self.reason = reason


# Dispatch Exceptions
class DispatchError(RunReportError):
    """Raised when the report email cannot be delivered."""

    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.host = host
