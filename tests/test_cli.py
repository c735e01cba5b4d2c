"""
Tests for the runreport command-line interface.
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from runreport import cli
from runreport.common.exceptions import DispatchError
from runreport.smtp.sender import DispatchResult
from runreport.storage import RunLogger


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    """Keep the root logger untouched while output is captured."""
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)


def run_cli(results_dir, *args) -> int:
    return cli.main(["--results-dir", str(results_dir), *args])


# =============================================================================
# Run logging commands
# =============================================================================

class TestLogAndUpdate:
    """Tests for the log and update commands."""

    def test_log_prints_run_time(self, results_dir, capsys):
        code = run_cli(results_dir, "log", "--run-time", "2024-01-05T08-09-00", "--suite", "smoke")

        assert code == 0
        assert capsys.readouterr().out.strip() == "2024-01-05T08-09-00"
        record = RunLogger(results_dir).get_run("2024-01-05T08-09-00")
        assert record.status == "running"
        assert record.test_suite == "smoke"
        assert record.environment == "local"

    def test_log_uses_environment(self, results_dir, monkeypatch):
        monkeypatch.setenv("RUN_TIME", "2024-01-05T08-09-00")
        monkeypatch.setenv("TEST_ENV", "staging")
        monkeypatch.setenv("GITHUB_SHA", "abc123")

        assert run_cli(results_dir, "log", "--headed") == 0

        record = RunLogger(results_dir).get_run("2024-01-05T08-09-00")
        assert record.environment == "staging"
        assert record.git_sha == "abc123"
        assert record.headless is False

    def test_update_derives_status_from_exit_code(self, results_dir):
        run_cli(results_dir, "log", "--run-time", "r1")

        code = run_cli(results_dir, "update", "r1", "--exit-code", "1", "--total", "5", "--failed", "2")

        assert code == 0
        record = RunLogger(results_dir).get_run("r1")
        assert record.status == "failed"
        assert record.exit_code == 1
        assert record.failed_tests == 2
        assert RunLogger(results_dir).get_history()[0].status == "failed"

    def test_update_explicit_status_wins(self, results_dir):
        run_cli(results_dir, "log", "--run-time", "r1")
        run_cli(results_dir, "update", "r1", "--exit-code", "1", "--status", "passed")
        assert RunLogger(results_dir).get_run("r1").status == "passed"

    def test_update_unknown_run(self, results_dir):
        assert run_cli(results_dir, "update", "missing", "--status", "passed") == 1


# =============================================================================
# Query commands
# =============================================================================

class TestQueries:
    """Tests for show, history, summary and cleanup."""

    def test_show(self, results_dir, capsys):
        run_cli(results_dir, "log", "--run-time", "r1")
        capsys.readouterr()

        assert run_cli(results_dir, "show", "r1") == 0
        assert json.loads(capsys.readouterr().out)["runTime"] == "r1"

    def test_show_missing(self, results_dir):
        assert run_cli(results_dir, "show", "r1") == 1

    def test_history_json(self, results_dir, capsys):
        run_cli(results_dir, "log", "--run-time", "r1")
        run_cli(results_dir, "log", "--run-time", "r2")
        capsys.readouterr()

        assert run_cli(results_dir, "history", "--json", "--limit", "1") == 0
        assert len(json.loads(capsys.readouterr().out)) == 1

    def test_history_empty(self, results_dir, capsys):
        assert run_cli(results_dir, "history") == 0
        assert "No test run history found." in capsys.readouterr().out

    def test_summary(self, results_dir, capsys):
        run_cli(results_dir, "log", "--run-time", "r1")
        run_cli(results_dir, "update", "r1", "--exit-code", "0")
        capsys.readouterr()

        assert run_cli(results_dir, "summary") == 0
        out = capsys.readouterr().out
        assert "Total Runs: 1" in out
        assert "Passed: 1 (100.00%)" in out

    def test_cleanup_nothing_old(self, results_dir, capsys):
        run_cli(results_dir, "log", "--run-time", "r1")
        capsys.readouterr()

        assert run_cli(results_dir, "cleanup", "--days", "30") == 0
        assert "Cleaned up 0 old test runs" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])
        assert exc_info.value.code == 0
        assert "runreport" in capsys.readouterr().out


# =============================================================================
# send-report
# =============================================================================

class TestSendReport:
    """Tests for the send-report command."""

    @pytest.fixture
    def run_info(self, results_dir):
        run_cli(results_dir, "log", "--run-time", "2024-01-05T08-09-00")
        return results_dir / "2024-01-05T08-09-00" / "run-info.json"

    @pytest.fixture
    def dispatcher(self):
        dispatcher = MagicMock()
        dispatcher.send_report = AsyncMock(
            return_value=DispatchResult(message_id="<id@example.com>", recipients=["a@b.com"])
        )
        with patch.object(cli, "create_report_dispatcher", return_value=dispatcher):
            yield dispatcher

    def test_sends_report(self, results_dir, run_info, dispatcher, tmp_path, monkeypatch):
        monkeypatch.setenv("EMAIL_RECIPIENTS", "a@b.com;not-an-email")
        monkeypatch.setenv("REPORT_URL", "https://example.com/report")

        code = run_cli(
            results_dir, "send-report", "--run-info", str(run_info), "--scan-dir", str(tmp_path / "none")
        )

        assert code == 0
        recipients, subject, body = dispatcher.send_report.await_args.args
        assert recipients == ["a@b.com"]
        assert subject == "Playwright Test Results - 2024-01-05:08:09"
        assert "https://example.com/report" in body

    def test_missing_run_info(self, results_dir, dispatcher, tmp_path):
        code = run_cli(
            results_dir,
            "send-report",
            "--run-info",
            str(tmp_path / "missing.json"),
            "--recipients",
            "a@b.com",
        )
        assert code == 1
        dispatcher.send_report.assert_not_awaited()

    def test_missing_recipients(self, results_dir, run_info, dispatcher):
        code = run_cli(results_dir, "send-report", "--run-info", str(run_info))
        assert code == 1
        dispatcher.send_report.assert_not_awaited()

    def test_dispatch_failure(self, results_dir, run_info, dispatcher, tmp_path):
        dispatcher.send_report.side_effect = DispatchError("boom", "smtp.example.com")
        code = run_cli(
            results_dir,
            "send-report",
            "--run-info",
            str(run_info),
            "--recipients",
            "a@b.com",
            "--scan-dir",
            str(tmp_path / "none"),
        )
        assert code == 1

    def test_wrapper_script_arguments(self, results_dir, run_info, dispatcher, tmp_path, monkeypatch):
        monkeypatch.setenv("RUNREPORT_RESULTS_DIR", str(results_dir))
        monkeypatch.setenv("RUN_INFO_PATH", str(run_info))
        monkeypatch.setenv("EMAIL_RECIPIENTS", "a@b.com")
        monkeypatch.setenv("RESULTS_SCAN_DIR", str(tmp_path / "none"))

        assert cli.main(["send-report"]) == 0


# =============================================================================
# Settings loading
# =============================================================================

class TestSettingsLoading:
    """Tests for how each invocation reads its configuration."""

    def test_each_invocation_reads_current_environment(self, results_dir, monkeypatch):
        monkeypatch.setenv("TEST_ENV", "staging")
        assert run_cli(results_dir, "log", "--run-time", "r1") == 0

        monkeypatch.setenv("TEST_ENV", "production")
        assert run_cli(results_dir, "log", "--run-time", "r2") == 0

        run_logger = RunLogger(results_dir)
        assert run_logger.get_run("r1").environment == "staging"
        assert run_logger.get_run("r2").environment == "production"

    @pytest.mark.parametrize(
        "name,value",
        [
            ("SMTP_PORT", "abc"),
            ("LOG_LEVEL", "verbose"),
            ("RUNREPORT_HISTORY_LIMIT", "0"),
        ],
    )
    def test_invalid_environment_value(self, results_dir, monkeypatch, caplog, name, value):
        monkeypatch.setenv(name, value)

        with caplog.at_level(logging.ERROR):
            assert run_cli(results_dir, "history") == 1
        assert "Configuration error: Invalid configuration value" in caplog.text

    def test_invalid_config_file_value(self, results_dir, tmp_path, caplog):
        config = tmp_path / "runreport.toml"
        config.write_text('[smtp]\nport = "abc"\n', encoding="utf-8")

        with caplog.at_level(logging.ERROR):
            assert run_cli(results_dir, "--config", str(config), "history") == 1
        assert "Configuration error" in caplog.text

    def test_missing_config_file(self, results_dir, tmp_path, caplog):
        with caplog.at_level(logging.ERROR):
            assert run_cli(results_dir, "--config", str(tmp_path / "missing.toml"), "history") == 1
        assert "Missing required configuration" in caplog.text
