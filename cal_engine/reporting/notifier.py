"""
Email delivery for lifecycle pass reports.

Sends the rendered HTML report over SMTP. Delivery problems never undo
directory changes; they come back as warnings on the pass result.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from ..config import NotificationConfig
from ..exceptions import NotificationError
from ..models import PassResult
from .html_report import render_html

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Sends pass reports by email."""

    def __init__(self, config: NotificationConfig):
        self.config = config

    def build_message(self, result: PassResult) -> EmailMessage:
        totals = result.counts()["total"]
        message = EmailMessage()
        message["Subject"] = (
            f"{self.config.subject}: {totals['moved']} moved, "
            f"{totals['disabled']} disabled, {totals['deleted']} deleted"
        )
        message["From"] = self.config.sender
        message["To"] = ", ".join(self.config.recipients)
        message.set_content("This report requires an HTML-capable mail client.")
        message.add_alternative(render_html(result, title=self.config.subject), subtype="html")
        return message

    def send(self, result: PassResult) -> None:
        """
        Send the report for a pass.

        Raises:
            NotificationError: If no recipients are configured or SMTP fails
        """
        if not self.config.recipients:
            raise NotificationError("No report recipients configured")

        message = self.build_message(result)
        try:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port,
                              timeout=self.config.timeout) as smtp:
                if self.config.use_tls:
                    smtp.starttls()
                if self.config.username:
                    smtp.login(self.config.username, self.config.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send report via {self.config.smtp_host}: {e}") from e

        logger.info(f"Sent pass report to {len(self.config.recipients)} recipient(s)")


def deliver_report(result: PassResult, notifier: Optional[EmailNotifier]) -> PassResult:
    """
    Deliver a pass report and fold any failure into the result.

    Args:
        result: Completed pass result
        notifier: Notifier to use, or None to skip delivery

    Returns:
        The same result, or a copy carrying a delivery warning
    """
    if notifier is None:
        return result

    try:
        notifier.send(result)
    except NotificationError as e:
        logger.warning(f"Report delivery failed: {e}")
        return result.model_copy(update={"warnings": result.warnings + [str(e)]})

    return result
