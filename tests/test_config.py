"""
Tests for settings loading.
"""

import pytest

from runreport.common.config import (
    ExecutionSettings,
    LoggingSettings,
    ReportSettings,
    Settings,
    SMTPSettings,
    get_settings,
    reload_settings,
)
from runreport.common.exceptions import InvalidConfigError, MissingConfigError


class TestEnvironmentSettings:
    """Tests for settings read from environment variables."""

    def test_defaults(self):
        settings = Settings()

        assert settings.storage.results_dir == "test-results"
        assert settings.storage.history_limit == 100
        assert settings.storage.retention_days == 30
        assert settings.execution.browser == "chromium"
        assert settings.report.scan_dir == "test-results-all"
        assert settings.smtp.port == 587
        assert settings.smtp.secure is False

    def test_storage_prefix(self, monkeypatch):
        monkeypatch.setenv("RUNREPORT_RESULTS_DIR", "/tmp/out")
        monkeypatch.setenv("RUNREPORT_HISTORY_LIMIT", "20")

        settings = Settings()
        assert settings.storage.results_dir == "/tmp/out"
        assert settings.storage.history_limit == 20

    def test_smtp_variables(self, monkeypatch):
        monkeypatch.setenv("SMTP_HOST", "mail.example.com")
        monkeypatch.setenv("SMTP_PORT", "465")
        monkeypatch.setenv("SMTP_SECURE", "true")
        monkeypatch.setenv("SMTP_USER", "ci")
        monkeypatch.setenv("SMTP_PASS", "secret")
        monkeypatch.setenv("SMTP_FROM", "ci@example.com")

        smtp = SMTPSettings()
        assert smtp.host == "mail.example.com"
        assert smtp.port == 465
        assert smtp.secure is True
        assert smtp.user == "ci"
        assert smtp.password == "secret"
        assert smtp.from_address == "ci@example.com"

    def test_recipients_fallback_variable(self, monkeypatch):
        monkeypatch.setenv("EMAILS_RECEIVED_NOTIFICATION", "a@b.com")
        assert ReportSettings().recipients == "a@b.com"

    def test_recipients_primary_variable_wins(self, monkeypatch):
        monkeypatch.setenv("EMAIL_RECIPIENTS", "primary@b.com")
        monkeypatch.setenv("EMAILS_RECEIVED_NOTIFICATION", "fallback@b.com")
        assert ReportSettings().recipients == "primary@b.com"

    def test_log_level_normalized(self):
        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            LoggingSettings(level="chatty")

    def test_get_settings_is_cached(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("RUNREPORT_RESULTS_DIR", "elsewhere")

        assert get_settings() is first
        assert reload_settings().storage.results_dir == "elsewhere"

    def test_invalid_port_raises_config_error(self, monkeypatch):
        monkeypatch.setenv("SMTP_PORT", "abc")

        with pytest.raises(InvalidConfigError) as exc_info:
            get_settings()
        assert exc_info.value.config_key == "SMTPSettings.port"
        assert exc_info.value.value == "abc"

    def test_invalid_log_level_raises_config_error(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "verbose")

        with pytest.raises(InvalidConfigError) as exc_info:
            reload_settings()
        assert exc_info.value.config_key == "LoggingSettings.level"

    def test_execution_settings_fields(self):
        assert set(ExecutionSettings.model_fields) == {
            "base_url",
            "headless",
            "browser",
            "environment",
            "test_suite",
            "workers",
        }


class TestTomlSettings:
    """Tests for TOML configuration files."""

    def test_from_toml(self, tmp_path):
        config = tmp_path / "runreport.toml"
        config.write_text(
            """
[app]
debug = true

[storage]
results_dir = "out"
retention_days = 7

[report]
subject_prefix = "Nightly"

[smtp]
host = "mail.example.com"
port = 2525
""",
            encoding="utf-8",
        )

        settings = Settings.from_toml(config)

        assert settings.debug is True
        assert settings.storage.results_dir == "out"
        assert settings.storage.retention_days == 7
        assert settings.report.subject_prefix == "Nightly"
        assert settings.smtp.port == 2525
        assert settings.history_path.as_posix() == "out/test-run-history.json"

    def test_missing_file(self, tmp_path):
        with pytest.raises(MissingConfigError):
            Settings.from_toml(tmp_path / "missing.toml")

    def test_malformed_file(self, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text("[storage\nresults_dir =", encoding="utf-8")

        with pytest.raises(InvalidConfigError):
            Settings.from_toml(config)

    def test_config_file_variable(self, tmp_path, monkeypatch):
        config = tmp_path / "runreport.toml"
        config.write_text('[storage]\nresults_dir = "from-file"\n', encoding="utf-8")
        monkeypatch.setenv("RUNREPORT_CONFIG_FILE", str(config))

        assert reload_settings().storage.results_dir == "from-file"

    def test_invalid_value_in_file(self, tmp_path):
        config = tmp_path / "runreport.toml"
        config.write_text('[smtp]\nport = "abc"\n', encoding="utf-8")

        with pytest.raises(InvalidConfigError) as exc_info:
            Settings.from_toml(config)
        assert exc_info.value.config_key == "SMTPSettings.port"
