"""
SMTP dispatch of test reports.

This module validates recipient lists, composes the report email and
delivers it through the configured SMTP relay.
"""

from .composer import ComposedReport, ReportComposer, is_valid_email, parse_recipients
from .sender import DispatchResult, RelayConfig, ReportDispatcher, create_report_dispatcher

__all__ = [
    # Composer
    "ReportComposer",
    "ComposedReport",
    "parse_recipients",
    "is_valid_email",
    # Sender
    "ReportDispatcher",
    "RelayConfig",
    "DispatchResult",
    # Utility functions
    "create_report_dispatcher",
]
