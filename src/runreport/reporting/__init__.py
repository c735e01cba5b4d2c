"""Summary building and report rendering."""

from .renderer import ReportRenderer, percentage
from .results import (
    CaseResult,
    discover_results,
    extract_case_results,
    load_results,
    scan_case_results,
)
from .summary import SummaryBuilder, TestCaseOutcome, TestSummary, resolve_execution_date

__all__ = [
    "SummaryBuilder",
    "TestSummary",
    "TestCaseOutcome",
    "resolve_execution_date",
    "ReportRenderer",
    "percentage",
    "CaseResult",
    "load_results",
    "discover_results",
    "extract_case_results",
    "scan_case_results",
]
