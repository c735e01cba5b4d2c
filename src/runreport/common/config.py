"""
Application configuration management for runreport.

This module provides configuration loading from environment variables,
an optional ``.env`` file and TOML configuration files, with type-safe
settings classes.
"""

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import InvalidConfigError, MissingConfigError

ENV_FILE = ".env"


def invalid_settings(error: ValidationError) -> InvalidConfigError:
    """Convert a settings validation error into an InvalidConfigError."""
    first = error.errors(include_url=False)[0]
    field_path = ".".join(str(part) for part in first["loc"])
    return InvalidConfigError(
        config_key=f"{error.title}.{field_path}" if field_path else error.title,
        value=first.get("input"),
        reason=first["msg"],
        details={"error_count": error.error_count()},
    )


class StorageSettings(BaseSettings):
    """Run record and history storage settings."""

    model_config = SettingsConfigDict(
        env_prefix="RUNREPORT_",
        env_file=ENV_FILE,
        extra="ignore",
    )

    results_dir: str = Field(
        default="test-results", description="Root directory for run records"
    )
    history_file: str = Field(
        default="test-run-history.json",
        description="History file name, relative to results_dir",
    )
    history_limit: int = Field(
        default=100, ge=1, description="Maximum number of history entries"
    )
    retention_days: int = Field(
        default=30, ge=0, description="Default age threshold for cleanup"
    )


class ExecutionSettings(BaseSettings):
    """Settings describing the test execution being logged."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        extra="ignore",
        populate_by_name=True,
    )

    base_url: str = Field(
        default="",
        validation_alias=AliasChoices("BASE_URL", "base_url"),
        description="Base URL of the application under test",
    )
    headless: bool = Field(
        default=True,
        validation_alias=AliasChoices("HEADLESS", "headless"),
        description="Whether the browser runs headless",
    )
    browser: str = Field(
        default="chromium",
        validation_alias=AliasChoices("TEST_BROWSER", "browser"),
        description="Browser project name",
    )
    environment: str = Field(
        default="local",
        validation_alias=AliasChoices("TEST_ENV", "environment"),
        description="Environment tag recorded with each run",
    )
    test_suite: str = Field(
        default="all",
        validation_alias=AliasChoices("TEST_SUITE", "test_suite"),
        description="Suite tag recorded with each run",
    )
    workers: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("WORKERS", "workers"),
        description="Number of parallel workers",
    )


class ReportSettings(BaseSettings):
    """Report building and email settings."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        extra="ignore",
        populate_by_name=True,
    )

    report_url: str = Field(
        default="",
        validation_alias=AliasChoices("REPORT_URL", "report_url"),
        description="Link to the published HTML report",
    )
    run_info_path: str = Field(
        default="",
        validation_alias=AliasChoices("RUN_INFO_PATH", "run_info_path"),
        description="Path to the run-info.json of the run to report",
    )
    results_path: str = Field(
        default="",
        validation_alias=AliasChoices("RESULTS_PATH", "results_path"),
        description="Path to the results.json of the run to report",
    )
    recipients: str = Field(
        default="",
        validation_alias=AliasChoices(
            "EMAIL_RECIPIENTS", "EMAILS_RECEIVED_NOTIFICATION", "recipients"
        ),
        description="Semicolon separated recipient addresses",
    )
    scan_dir: str = Field(
        default="test-results-all",
        validation_alias=AliasChoices("RESULTS_SCAN_DIR", "scan_dir"),
        description="Directory scanned for results.json files",
    )
    subject_prefix: str = Field(
        default="Playwright Test Results",
        validation_alias=AliasChoices("REPORT_SUBJECT_PREFIX", "subject_prefix"),
        description="Fixed prefix of the email subject",
    )


class SMTPSettings(BaseSettings):
    """Outbound SMTP transport settings."""

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        env_file=ENV_FILE,
        extra="ignore",
        populate_by_name=True,
    )

    host: str = Field(default="localhost", description="SMTP server host")
    port: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    secure: bool = Field(
        default=False, description="Use implicit TLS instead of STARTTLS"
    )
    user: Optional[str] = Field(None, description="SMTP username")
    password: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("SMTP_PASS", "SMTP_PASSWORD", "password"),
        description="SMTP password",
    )
    from_address: str = Field(
        default="",
        validation_alias=AliasChoices("SMTP_FROM", "from_address"),
        description="Envelope and header From address",
    )
    timeout: int = Field(default=30, description="Connection timeout in seconds")
    verify_ssl: bool = Field(
        default=True, description="Verify the server certificate"
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=ENV_FILE,
        extra="ignore",
    )

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper


class Settings(BaseSettings):
    """Main settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RUNREPORT_",
        env_file=ENV_FILE,
        extra="ignore",
    )

    debug: bool = Field(default=False, description="Debug mode")

    # Sub-settings
    storage: StorageSettings = Field(default_factory=StorageSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)
    smtp: SMTPSettings = Field(default_factory=SMTPSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_toml(cls, path: str | Path) -> "Settings":
        """
        Load settings from a TOML configuration file.

        Args:
            path: Path to the TOML configuration file.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        path = Path(path)
        if not path.exists():
            raise MissingConfigError(str(path), {"reason": "file not found"})

        try:
            with open(path, "rb") as f:
                config_data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise InvalidConfigError(
                config_key="config_file",
                value=str(path),
                reason=f"Failed to parse TOML: {e}",
            )

        return cls._from_dict(config_data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Settings":
        """
        Create settings from a dictionary.

        Args:
            data: Configuration dictionary.

        Returns:
            Settings instance.

        Raises:
            InvalidConfigError: If a value fails validation.
        """
        try:
            return cls._build(data)
        except ValidationError as e:
            raise invalid_settings(e)

    @classmethod
    def _build(cls, data: dict[str, Any]) -> "Settings":
        # Map TOML sections to settings classes
        settings_kwargs: dict[str, Any] = {}

        if "app" in data:
            settings_kwargs.update(data["app"])

        if "storage" in data:
            settings_kwargs["storage"] = StorageSettings(**data["storage"])

        if "execution" in data:
            settings_kwargs["execution"] = ExecutionSettings(**data["execution"])

        if "report" in data:
            settings_kwargs["report"] = ReportSettings(**data["report"])

        if "smtp" in data:
            settings_kwargs["smtp"] = SMTPSettings(**data["smtp"])

        if "logging" in data:
            settings_kwargs["logging"] = LoggingSettings(**data["logging"])

        return cls(**settings_kwargs)

    @property
    def history_path(self) -> Path:
        """Full path of the history file."""
        return Path(self.storage.results_dir) / self.storage.history_file


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings.

    Settings are loaded from ``RUNREPORT_CONFIG_FILE`` when it points to an
    existing TOML file, otherwise from the environment.

    Returns:
        Settings instance.

    Raises:
        ConfigurationError: If the configuration is unreadable or invalid.
    """
    config_file = os.getenv("RUNREPORT_CONFIG_FILE")

    if config_file and Path(config_file).exists():
        settings = Settings.from_toml(config_file)
    else:
        try:
            settings = Settings()
        except ValidationError as e:
            raise invalid_settings(e)

    return settings


def reload_settings() -> Settings:
    """
    Reload settings, clearing the cache.

    Returns:
        Fresh Settings instance.
    """
    get_settings.cache_clear()
    return get_settings()
