"""
Email composition for test reports.

This module validates recipient lists and builds the MIME message that
carries the rendered HTML report.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import format_datetime, make_msgid
from typing import Optional

from ..common.exceptions import ConfigurationError, InvalidConfigError
from ..__version__ import __version__

logger = logging.getLogger(__name__)

RECIPIENT_SEPARATOR = ";"
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(address: str) -> bool:
    """Minimal ``local@domain.tld`` check."""
    return bool(EMAIL_PATTERN.match(address))


def parse_recipients(raw: Optional[str]) -> list[str]:
    """
    Parse a ``;`` separated recipient list.

    Entries are trimmed, empty entries dropped and invalid addresses
    skipped with a warning.

    Args:
        raw: Recipient list, e.g. ``"a@b.com;c@d.org"``.

    Returns:
        The valid addresses in input order.

    Raises:
        ConfigurationError: If no valid address remains.
    """
    entries = [r.strip() for r in (raw or "").split(RECIPIENT_SEPARATOR)]
    entries = [r for r in entries if r]
    if not entries:
        raise ConfigurationError("No email recipients specified in EMAIL_RECIPIENTS")

    valid = []
    for entry in entries:
        if is_valid_email(entry):
            valid.append(entry)
        else:
            logger.warning("Skipping invalid email recipient: %s", entry)

    if not valid:
        raise InvalidConfigError(
            config_key="EMAIL_RECIPIENTS",
            value=raw,
            reason="No valid email recipients found.",
        )
    return valid


@dataclass
class ComposedReport:
    """A report email ready for sending."""

    message_id: str
    mime_message: MIMEMultipart
    sender: str
    recipients: list[str]
    subject: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def raw_data(self) -> str:
        return self.mime_message.as_string()


class ReportComposer:
    """Builds MIME messages for HTML test reports."""

    def __init__(
        self,
        default_domain: str = "localhost",
        default_charset: str = "utf-8",
        x_mailer: Optional[str] = None,
    ) -> None:
        """
        Initialize the composer.

        Args:
            default_domain: Domain for Message-ID generation when the
                sender address has none.
            default_charset: Character set of the HTML part.
            x_mailer: Optional X-Mailer header value.
        """
        self.default_domain = default_domain
        self.default_charset = default_charset
        self.x_mailer = x_mailer or f"runreport/{__version__}"

    def compose(
        self,
        sender: str,
        recipients: list[str],
        subject: str,
        body_html: str,
        date: Optional[datetime] = None,
    ) -> ComposedReport:
        """
        Compose a report email.

        Args:
            sender: From address.
            recipients: Validated recipient addresses.
            subject: Subject line.
            body_html: Rendered HTML body.
            date: Optional Date header value, defaults to now.

        Returns:
            ComposedReport instance.

        Raises:
            ConfigurationError: If there are no recipients.
        """
        if not recipients:
            raise ConfigurationError("At least one recipient is required")

        domain = sender.split("@")[-1] if "@" in sender else self.default_domain
        message_id = make_msgid(domain=domain)

        msg = MIMEMultipart()
        msg.attach(MIMEText(body_html, "html", self.default_charset))

        if sender:
            msg["From"] = sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg["Date"] = format_datetime(date or datetime.now(timezone.utc))
        msg["Message-ID"] = message_id
        msg["X-Mailer"] = self.x_mailer

        logger.debug(
            "Composed report: message_id=%s, to=%d recipients",
            message_id,
            len(recipients),
        )

        return ComposedReport(
            message_id=message_id,
            mime_message=msg,
            sender=sender,
            recipients=list(recipients),
            subject=subject,
        )
