"""
SMTP delivery of test report emails.

Reports go out through a single submission server (the CI provider's or
the organisation's relay), using implicit TLS when ``secure`` is set and
opportunistic STARTTLS otherwise.
"""

import logging
import ssl
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import aiosmtplib

from ..common.config import SMTPSettings
from ..common.exceptions import DispatchError, MissingConfigError
from .composer import ComposedReport, ReportComposer

logger = logging.getLogger(__name__)


@dataclass
class RelayConfig:
    """Configuration for the outbound SMTP server."""

    host: str
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    secure: bool = False
    from_address: str = ""
    timeout: int = 30
    verify_ssl: bool = True

    @classmethod
    def from_settings(cls, settings: SMTPSettings) -> "RelayConfig":
        return cls(
            host=settings.host,
            port=settings.port,
            username=settings.user,
            password=settings.password,
            secure=settings.secure,
            from_address=settings.from_address,
            timeout=settings.timeout,
            verify_ssl=settings.verify_ssl,
        )


@dataclass
class DispatchResult:
    """Outcome of sending a report."""

    message_id: str
    recipients: list[str]
    response: str = ""
    refused: dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "message_id": self.message_id,
            "recipients": self.recipients,
            "response": self.response,
            "refused": self.refused,
            "timestamp": self.timestamp.isoformat(),
        }


class ReportDispatcher:
    """Sends composed reports through an SMTP relay."""

    def __init__(
        self,
        relay_config: RelayConfig,
        composer: Optional[ReportComposer] = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            relay_config: Outbound SMTP server configuration.
            composer: Composer used by ``send_report``.
        """
        self.relay_config = relay_config
        self.composer = composer or ReportComposer()

        logger.info(
            "ReportDispatcher initialized with relay=%s:%d, secure=%s",
            relay_config.host,
            relay_config.port,
            relay_config.secure,
        )

    def _tls_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.relay_config.verify_ssl:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    async def send(self, report: ComposedReport) -> DispatchResult:
        """
        Deliver a composed report.

        Args:
            report: The composed report email.

        Returns:
            DispatchResult for the delivery.

        Raises:
            DispatchError: If the server cannot be reached, rejects the
                login or refuses the message.
        """
        relay = self.relay_config
        logger.info(
            "Sending report %s via %s:%d to %d recipients",
            report.message_id,
            relay.host,
            relay.port,
            len(report.recipients),
        )

        smtp = aiosmtplib.SMTP(
            hostname=relay.host,
            port=relay.port,
            timeout=relay.timeout,
            use_tls=relay.secure,
            tls_context=self._tls_context(),
        )

        try:
            await smtp.connect()

            if relay.username and relay.password:
                await smtp.login(relay.username, relay.password)

            refused, response = await smtp.send_message(
                report.mime_message,
                sender=report.sender,
                recipients=report.recipients,
            )
            await smtp.quit()

        except aiosmtplib.SMTPAuthenticationError as e:
            logger.error("Relay authentication failed: %s", e)
            raise DispatchError(
                f"Authentication failed for relay {relay.host}",
                relay.host,
                {"error": str(e)},
            )

        except aiosmtplib.SMTPConnectError as e:
            logger.error("Failed to connect to relay %s: %s", relay.host, e)
            raise DispatchError(
                f"Failed to connect to relay {relay.host}",
                relay.host,
                {"error": str(e)},
            )

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("SMTP error with relay %s: %s", relay.host, e)
            raise DispatchError(
                f"SMTP error with relay {relay.host}",
                relay.host,
                {"error": str(e)},
            )

        finally:
            if smtp.is_connected:
                smtp.close()

        refused_recipients = {
            recipient: str(reply) for recipient, reply in (refused or {}).items()
        }
        for recipient, reply in refused_recipients.items():
            logger.warning("Recipient %s refused: %s", recipient, reply)

        logger.info("Test report email sent successfully: %s", report.message_id)
        return DispatchResult(
            message_id=report.message_id,
            recipients=list(report.recipients),
            response=str(response),
            refused=refused_recipients,
        )

    async def send_report(
        self,
        recipients: list[str],
        subject: str,
        body_html: str,
    ) -> DispatchResult:
        """
        Compose and deliver a report.

        Raises:
            MissingConfigError: If no From address is configured.
            DispatchError: If delivery fails.
        """
        if not self.relay_config.from_address:
            raise MissingConfigError("SMTP_FROM")

        report = self.composer.compose(
            sender=self.relay_config.from_address,
            recipients=recipients,
            subject=subject,
            body_html=body_html,
        )
        return await self.send(report)


def create_report_dispatcher(settings: SMTPSettings) -> ReportDispatcher:
    """
    Factory function to create a dispatcher from SMTP settings.

    Args:
        settings: SMTP settings.

    Returns:
        Configured ReportDispatcher instance.
    """
    return ReportDispatcher(RelayConfig.from_settings(settings))
