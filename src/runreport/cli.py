#!/usr/bin/env python3
"""
Command-line interface for runreport.

Usage:
    runreport [OPTIONS] COMMAND [ARGS]

Commands:
    log           Record the start of a test run
    update        Record the results of a test run
    show          Print the record of a run
    history       List logged runs, newest first
    summary       Print pass/fail statistics over the history
    cleanup       Delete runs older than a number of days
    send-report   Email the summary of a run

Options:
    --debug         Enable debug logging
    --config FILE   TOML configuration file
    --results-dir   Override the results directory
    --version       Show version and exit
    --help          Show this message and exit
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Optional

from runreport import __version__
from runreport.common.config import LoggingSettings, Settings, reload_settings
from runreport.common.exceptions import (
    ConfigurationError,
    DispatchError,
    RunReportError,
    StorageError,
)
from runreport.common.models import RunRecord, RunStatus, generate_run_time, utc_timestamp
from runreport.reporting import ReportRenderer, SummaryBuilder
from runreport.smtp import create_report_dispatcher, parse_recipients
from runreport.storage import RunLogger

logger = logging.getLogger("runreport.cli")


def setup_logging(settings: LoggingSettings, debug: bool = False) -> None:
    """
    Configure logging for the command-line tool.

    Args:
        settings: Logging settings.
        debug: Force debug logging.
    """
    log_level = logging.DEBUG if debug else getattr(logging, settings.level)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.file:
        handlers.append(logging.FileHandler(settings.file, encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format=settings.format,
        handlers=handlers,
        force=True,
    )

    if not debug:
        logging.getLogger("aiosmtplib").setLevel(logging.WARNING)


def get_git_info() -> dict[str, Optional[str]]:
    """Read the git ref, commit and actor exported by the CI server."""
    return {
        "git_ref": os.getenv("GITHUB_REF") or None,
        "git_sha": os.getenv("GITHUB_SHA") or None,
        "actor": os.getenv("GITHUB_ACTOR") or None,
    }


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="runreport",
        description="runreport - test run history and email reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Log a run before starting the suite:
        runreport log --environment staging --suite smoke

    Record its results:
        runreport update 2024-01-05T08-09-00 --exit-code 0 --total 10 --passed 10

    Email the report:
        runreport send-report --run-info test-results/2024-01-05T08-09-00/run-info.json

Environment Variables:
    RUNREPORT_RESULTS_DIR   Results directory (default: test-results)
    RUNREPORT_CONFIG_FILE   TOML configuration file
    RUN_TIME                Run identifier used by 'log'
    RUN_INFO_PATH           run-info.json used by 'send-report'
    RESULTS_PATH            results.json used by 'send-report'
    EMAIL_RECIPIENTS        Semicolon separated recipients
    REPORT_URL              Link to the full report
    SMTP_HOST, SMTP_PORT, SMTP_SECURE, SMTP_USER, SMTP_PASS, SMTP_FROM
        """,
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="Path to a TOML configuration file")
    parser.add_argument("--results-dir", help="Override the results directory")
    parser.add_argument(
        "--version",
        action="version",
        version=f"runreport {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # log
    p_log = subparsers.add_parser("log", help="Record the start of a test run")
    p_log.add_argument("--run-time", default=os.getenv("RUN_TIME"), help="Run identifier")
    p_log.add_argument("--environment", help="Environment tag")
    p_log.add_argument("--suite", dest="test_suite", help="Suite tag")
    p_log.add_argument("--base-url", help="Base URL under test")
    p_log.add_argument("--browser", help="Browser project")
    p_log.add_argument(
        "--headless", dest="headless", action="store_true", default=None,
        help="Browser runs headless",
    )
    p_log.add_argument(
        "--headed", dest="headless", action="store_false", default=None, help="Browser runs headed"
    )
    p_log.add_argument("--workers", type=int, help="Parallel workers")
    p_log.add_argument(
        "--run-command", dest="run_command", default="", help="Command that runs the suite"
    )

    # update
    p_update = subparsers.add_parser("update", help="Record the results of a test run")
    p_update.add_argument("run_time", help="Run identifier")
    p_update.add_argument("--status", choices=[s.value for s in RunStatus])
    p_update.add_argument("--exit-code", type=int)
    p_update.add_argument("--duration", type=int, help="Duration in milliseconds")
    p_update.add_argument("--total", type=int, dest="total_tests")
    p_update.add_argument("--passed", type=int, dest="passed_tests")
    p_update.add_argument("--failed", type=int, dest="failed_tests")
    p_update.add_argument("--skipped", type=int, dest="skipped_tests")

    # show
    p_show = subparsers.add_parser("show", help="Print the record of a run")
    p_show.add_argument("run_time", help="Run identifier")

    # history
    p_history = subparsers.add_parser("history", help="List logged runs")
    p_history.add_argument("--limit", type=int, default=None, help="Maximum runs to list")
    p_history.add_argument("--json", action="store_true", help="Print JSON")

    # summary
    subparsers.add_parser("summary", help="Print pass/fail statistics")

    # cleanup
    p_cleanup = subparsers.add_parser("cleanup", help="Delete old runs")
    p_cleanup.add_argument("--days", type=int, default=None, help="Days to keep")

    # send-report
    p_send = subparsers.add_parser("send-report", help="Email the summary of a run")
    p_send.add_argument("--run-info", help="Path to run-info.json")
    p_send.add_argument("--results", help="Path to results.json")
    p_send.add_argument("--recipients", help="Semicolon separated recipients")
    p_send.add_argument("--report-url", help="Link to the full report")
    p_send.add_argument("--scan-dir", help="Directory scanned for results.json files")

    return parser


def cmd_log(args: argparse.Namespace, settings: Settings, run_logger: RunLogger) -> int:
    execution = settings.execution
    record = RunRecord(
        run_time=args.run_time or generate_run_time(),
        environment=args.environment or execution.environment,
        test_suite=args.test_suite or execution.test_suite,
        base_url=args.base_url or execution.base_url,
        headless=execution.headless if args.headless is None else args.headless,
        browser=args.browser or execution.browser,
        workers=args.workers if args.workers is not None else execution.workers,
        command=args.run_command,
        timestamp=utc_timestamp(),
        status=RunStatus.RUNNING.value,
        **get_git_info(),
    )
    run_logger.log_run(record)
    print(record.run_time)
    return 0


def collect_updates(args: argparse.Namespace) -> dict[str, Any]:
    """Build the partial record for ``update`` from the given options."""
    updates: dict[str, Any] = {}
    for name in (
        "status",
        "exit_code",
        "duration",
        "total_tests",
        "passed_tests",
        "failed_tests",
        "skipped_tests",
    ):
        value = getattr(args, name)
        if value is not None:
            updates[name] = value

    if "status" not in updates and "exit_code" in updates:
        updates["status"] = (
            RunStatus.PASSED.value if updates["exit_code"] == 0 else RunStatus.FAILED.value
        )
    return updates


def cmd_update(args: argparse.Namespace, settings: Settings, run_logger: RunLogger) -> int:
    updated = run_logger.update_run(args.run_time, collect_updates(args))
    return 0 if updated is not None else 1


def cmd_show(args: argparse.Namespace, settings: Settings, run_logger: RunLogger) -> int:
    record = run_logger.get_run(args.run_time)
    if record is None:
        print(f"Run not found: {args.run_time}", file=sys.stderr)
        return 1
    print(json.dumps(record.to_document(), indent=2))
    return 0


def cmd_history(args: argparse.Namespace, settings: Settings, run_logger: RunLogger) -> int:
    history = run_logger.get_history()
    if args.limit is not None:
        history = history[: args.limit]

    if args.json:
        print(json.dumps([r.to_document() for r in history], indent=2))
        return 0

    if not history:
        print("No test run history found.")
        return 0

    for run in history:
        print(f"{run.run_time}  {run.status or '-':8}  {run.test_suite} ({run.environment})")
    return 0


def cmd_summary(args: argparse.Namespace, settings: Settings, run_logger: RunLogger) -> int:
    print(run_logger.summarize().format())
    return 0


def cmd_cleanup(args: argparse.Namespace, settings: Settings, run_logger: RunLogger) -> int:
    days = args.days if args.days is not None else settings.storage.retention_days
    removed = run_logger.cleanup(days)
    print(f"Cleaned up {len(removed)} old test runs")
    return 0


def cmd_send_report(args: argparse.Namespace, settings: Settings, run_logger: RunLogger) -> int:
    report = settings.report
    run_info_path = args.run_info or report.run_info_path
    results_path = args.results or report.results_path
    recipients_raw = args.recipients if args.recipients is not None else report.recipients
    report_url = args.report_url if args.report_url is not None else report.report_url
    scan_dir = args.scan_dir or report.scan_dir

    recipients = parse_recipients(recipients_raw)

    try:
        summary = SummaryBuilder(report_url).build_from_files(run_info_path, results_path)
    except StorageError as e:
        logger.error("Error parsing test summary: %s", e)
        return 1

    renderer = ReportRenderer(subject_prefix=report.subject_prefix, scan_dir=scan_dir)
    subject = renderer.render_subject(summary.execution_date)
    body = renderer.render_body(summary)

    dispatcher = create_report_dispatcher(settings.smtp)
    result = asyncio.run(dispatcher.send_report(recipients, subject, body))
    logger.info("Report %s sent to %s", result.message_id, ", ".join(result.recipients))
    return 0


COMMANDS = {
    "log": cmd_log,
    "update": cmd_update,
    "show": cmd_show,
    "history": cmd_history,
    "summary": cmd_summary,
    "cleanup": cmd_cleanup,
    "send-report": cmd_send_report,
}


def load_settings(config_file: Optional[str]) -> Settings:
    """
    Load settings from ``config_file`` or the environment.

    The cache is refreshed so every invocation sees the current environment.

    Raises:
        ConfigurationError: If the configuration is unreadable or invalid.
    """
    if config_file:
        return Settings.from_toml(config_file)
    return reload_settings()


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the runreport command.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1

    setup_logging(settings.logging, args.debug or settings.debug)

    run_logger = RunLogger(
        results_dir=args.results_dir or settings.storage.results_dir,
        history_file=settings.storage.history_file,
        history_limit=settings.storage.history_limit,
    )

    try:
        return COMMANDS[args.command](args, settings, run_logger)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1

    except DispatchError as e:
        logger.error("Failed to send test report email: %s", e)
        return 1

    except RunReportError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
