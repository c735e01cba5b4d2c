"""
HTML email rendering for test summaries.

The body is a single inline-styled table with a count table, a bar chart
rendered by QuickChart, the per-case results and a link to the full
report.
"""

import html
import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import quote

from ..common.exceptions import StorageError
from .results import CaseResult, scan_case_results
from .summary import TestSummary

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT_PREFIX = "Playwright Test Results"
INVALID_DATE = "[Invalid Date]"
CHART_BASE_URL = "https://quickchart.io/chart?c="

CHART_LABELS = ["Passed", "Failed", "Skipped", "In Progress", "Retest"]
CHART_COLORS = ["#4caf50", "#f44336", "#ff9800", "#2196f3", "#ffc107"]

CELL_STYLE = "padding:8px 16px; font-weight:bold;"


def percentage(part: int, total: int) -> float:
    """
    Share of ``part`` in ``total`` as a percentage with one decimal.

    Halves round up, so 1 of 3 is 33.3 and 1 of 8 is 12.5.
    """
    if total <= 0:
        return 0.0
    return math.floor(part / total * 1000 + 0.5) / 10


def coerce_date(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Turn a datetime or ISO string into a datetime, None if invalid."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


class ReportRenderer:
    """Renders the subject and HTML body of the test report email."""

    def __init__(
        self,
        subject_prefix: str = DEFAULT_SUBJECT_PREFIX,
        scan_dir: Optional[str | Path] = None,
    ):
        """
        Initialize the renderer.

        Args:
            subject_prefix: Fixed text at the start of every subject.
            scan_dir: Directory searched for results.json files when
                listing test cases. None disables scanning.
        """
        self.subject_prefix = subject_prefix
        self.scan_dir = Path(scan_dir) if scan_dir else None

    def render_subject(self, execution_date: Union[datetime, str, None]) -> str:
        """
        Build the subject line, e.g. ``Playwright Test Results - 2024-01-05:08:09``.

        Aware datetimes are shown in local time.
        """
        date = coerce_date(execution_date)
        if date is None:
            return f"{self.subject_prefix} - {INVALID_DATE}"

        if date.tzinfo is not None:
            date = date.astimezone()
        return f"{self.subject_prefix} - {date.strftime('%Y-%m-%d:%H:%M')}"

    def chart_url(self, summary: TestSummary) -> str:
        """URL of a bar chart image of the five result categories."""
        in_progress = 0
        retest = 0
        config: dict[str, Any] = {
            "type": "bar",
            "data": {
                "labels": CHART_LABELS,
                "datasets": [
                    {
                        "label": "Executions",
                        "data": [
                            summary.passed,
                            summary.failed,
                            summary.skipped,
                            in_progress,
                            retest,
                        ],
                        "backgroundColor": CHART_COLORS,
                    }
                ],
            },
            "options": {
                "legend": {"display": False},
                "scales": {
                    "xAxes": [{"stacked": True, "display": False}],
                    "yAxes": [{"stacked": True}],
                },
                "plugins": {
                    "datalabels": {
                        "display": True,
                        "color": "#222",
                        "anchor": "end",
                        "align": "end",
                    }
                },
            },
        }
        encoded = quote(json.dumps(config, separators=(",", ":")), safe="!~*'()")
        return CHART_BASE_URL + encoded

    def collect_case_results(self, summary: TestSummary) -> list[CaseResult]:
        """
        Gather the per-case results listed in the report.

        Results documents found under ``scan_dir`` take precedence; when
        none are found or they cannot be read, the summary's own test
        cases are used.
        """
        cases: list[CaseResult] = []
        if self.scan_dir is not None:
            try:
                cases = scan_case_results(self.scan_dir)
            except StorageError as e:
                logger.warning("Failed to scan results in %s: %s", self.scan_dir, e)
                cases = []

        if not cases and summary.test_cases:
            cases = [
                CaseResult(title=tc.name, ok=tc.status == "Passed")
                for tc in summary.test_cases
            ]
        return cases

    def _render_results(self, cases: list[CaseResult]) -> str:
        if not cases:
            return "<p>No test results found.</p>"

        blocks = "".join(
            html.escape(json.dumps(case.to_dict(), indent=2)) + "\n" for case in cases
        )
        return (
            "<h3 style='margin:24px 0 8px 0; font-size:18px;'>Results Summary</h3>"
            "<pre style='background:#222; color:#fff; padding:12px; border-radius:6px;'>"
            f"<code>{blocks}</code></pre>"
        )

    def _count_cell(self, label: str, value: int, color: str) -> str:
        return (
            f'<td style="{CELL_STYLE} color:{color};">{label}</td>\n'
            f'              <td style="{CELL_STYLE} color:{color};">{value}</td>'
        )

    def render_body(self, summary: TestSummary) -> str:
        """Build the HTML body of the report email."""
        pass_rate = percentage(summary.passed, summary.total)
        fail_rate = percentage(summary.failed, summary.total)
        skip_rate = percentage(summary.skipped, summary.total)

        cells = "\n              ".join(
            [
                self._count_cell("Tests with executions", summary.total, "#222"),
                self._count_cell("Pass", summary.passed, "#4caf50"),
                self._count_cell("Fail", summary.failed, "#f44336"),
                self._count_cell("In Progress", 0, "#2196f3"),
                self._count_cell("Retest", 0, "#ffc107"),
                self._count_cell("Skipped", summary.skipped, "#ff9800"),
            ]
        )
        rates = (
            f"Pass rate: {pass_rate}% &middot; Fail rate: {fail_rate}% "
            f"&middot; Skip rate: {skip_rate}%"
        )
        chart_url = html.escape(self.chart_url(summary), quote=True)
        report_url = html.escape(summary.report_url, quote=True)
        results_block = self._render_results(self.collect_case_results(summary))

        return f"""
    <table width="100%" cellpadding="0" cellspacing="0" style="background:#fff; max-width:700px; margin:auto; font-family:Arial,sans-serif; border-radius:8px; box-shadow:0 2px 8px #eee;">
      <tr>
        <td style="padding:32px 24px 16px 24px; text-align:left;">
          <h2 style="color:#222; margin:0 0 16px 0; font-size:22px;">Test Execution Report</h2>
          <table style="width:100%; margin-bottom:24px; border-collapse:collapse;">
            <tr>
              {cells}
            </tr>
          </table>
          <p style="margin:0 0 16px 0; color:#555;">{rates}</p>
          <img src="{chart_url}" alt="Test Execution Results" style="width:100%; max-width:600px; margin-bottom:24px;" />
          {results_block}
          <p style="margin-top:24px; font-size:16px;">Detailed report: <a href="{report_url}" style="color:#1a0dab;">View on GitHub Pages</a></p>
        </td>
      </tr>
    </table>
  """
