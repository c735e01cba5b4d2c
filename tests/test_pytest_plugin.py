"""
Tests for the pytest session plugin.

The hooks are called directly with stand-in reports.
"""

import json
from types import SimpleNamespace

import pytest

from runreport.common.config import ExecutionSettings
from runreport.pytest_plugin import RunReportPlugin, split_nodeid

RUN_TIME = "2024-01-05T08-09-00"


def report(nodeid: str, when: str, outcome: str) -> SimpleNamespace:
    return SimpleNamespace(
        nodeid=nodeid,
        when=when,
        passed=outcome == "passed",
        failed=outcome == "failed",
        skipped=outcome == "skipped",
    )


@pytest.fixture
def plugin(run_logger):
    execution = ExecutionSettings(environment="ci", test_suite="unit")
    return RunReportPlugin(run_logger, execution, run_time=RUN_TIME, command="pytest tests")


class TestPluginSession:
    """Tests for a whole plugin session."""

    def test_session_start_logs_running_record(self, plugin, run_logger):
        plugin.pytest_sessionstart(session=None)

        record = run_logger.get_run(RUN_TIME)
        assert record.status == "running"
        assert record.environment == "ci"
        assert record.test_suite == "unit"
        assert record.command == "pytest tests"

    def test_session_finish_writes_results_and_updates(self, plugin, run_logger, results_dir):
        plugin.pytest_sessionstart(session=None)
        plugin.pytest_runtest_logreport(report("tests/test_a.py::test_ok", "setup", "passed"))
        plugin.pytest_runtest_logreport(report("tests/test_a.py::test_ok", "call", "passed"))
        plugin.pytest_runtest_logreport(report("tests/test_a.py::TestX::test_bad", "call", "failed"))
        plugin.pytest_runtest_logreport(report("tests/test_a.py::test_skip", "setup", "skipped"))
        plugin.pytest_sessionfinish(session=None, exitstatus=1)

        document = json.loads((results_dir / RUN_TIME / "results.json").read_text())
        assert document["stats"] == {"totalTests": 3, "passed": 1, "failed": 1, "skipped": 1}
        assert document["testCases"][1] == {
            "name": "test_bad",
            "suite": "tests/test_a.py::TestX",
            "status": "Failed",
        }

        record = run_logger.get_run(RUN_TIME)
        assert record.status == "failed"
        assert record.exit_code == 1
        assert record.total_tests == 3
        assert record.skipped_tests == 1
        assert record.duration is not None
        assert run_logger.get_history()[0].status == "failed"

    def test_passing_session(self, plugin, run_logger):
        plugin.pytest_sessionstart(session=None)
        plugin.pytest_runtest_logreport(report("t.py::test_ok", "call", "passed"))
        plugin.pytest_sessionfinish(session=None, exitstatus=0)

        assert run_logger.get_run(RUN_TIME).status == "passed"

    def test_teardown_failure_marks_test_failed(self, plugin):
        plugin.pytest_runtest_logreport(report("t.py::test_ok", "call", "passed"))
        plugin.pytest_runtest_logreport(report("t.py::test_ok", "teardown", "failed"))

        assert plugin.results_document()["stats"]["failed"] == 1


class TestNodeIds:
    """Tests for splitting node ids into suite and name."""

    @pytest.mark.parametrize(
        "nodeid, expected",
        [
            ("tests/test_a.py::test_ok", ("tests/test_a.py", "test_ok")),
            ("tests/test_a.py::TestX::test_ok", ("tests/test_a.py::TestX", "test_ok")),
            ("tests/test_a.py", ("", "tests/test_a.py")),
        ],
    )
    def test_split_nodeid(self, nodeid, expected):
        assert split_nodeid(nodeid) == expected


def test_plugin_registered_only_when_enabled(pytester):
    pytester.makepyfile("def test_one():\n    assert True\n")
    result = pytester.runpytest("-p", "runreport.pytest_plugin", "-p", "no:cacheprovider")
    result.assert_outcomes(passed=1)
    assert not (pytester.path / "test-results").exists()


def test_invalid_settings_are_a_usage_error(pytester, monkeypatch):
    monkeypatch.setenv("SMTP_PORT", "abc")
    pytester.makepyfile("def test_one():\n    assert True\n")

    result = pytester.runpytest(
        "-p", "runreport.pytest_plugin", "-p", "no:cacheprovider", "--runreport"
    )

    assert result.ret == pytest.ExitCode.USAGE_ERROR
    result.stderr.fnmatch_lines(["*runreport: Invalid configuration value*"])
