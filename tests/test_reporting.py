"""
Tests for report rendering and delivery.
"""

import smtplib
from unittest.mock import Mock, patch

import pytest

from cal_engine.config import NotificationConfig
from cal_engine.exceptions import NotificationError
from cal_engine.reporting import EmailNotifier, deliver_report, render_html, write_report
from cal_engine.workflows import LifecycleOrchestrator

from conftest import HOLDING, NOW


@pytest.fixture
def pass_result(make_account, make_config, make_directory):
    directory = make_directory([
        make_account("WS01", days=100, managed_by="CN=Jane Doe,OU=Staff,DC=example,DC=com"),
        make_account("OLD-OFF", days=100, enabled=False, container=HOLDING),
        make_account("vmaster", days=300, description="<script>alert(1)</script>"),
    ])
    orchestrator = LifecycleOrchestrator(directory, make_config(name_patterns=["vmaster"]), clock=lambda: NOW)
    return orchestrator.run_pass()


class TestRenderHtml:
    """Test cases for the HTML report."""

    def test_contains_accounts_and_sections(self, pass_result):
        html = render_html(pass_result)

        assert "WS01" in html
        assert "OLD-OFF" in html
        assert "Moved to holding location" in html
        assert "Exempt" in html
        assert "CN=Jane Doe" in html
        assert "report-only" in html

    def test_escapes_directory_values(self, pass_result):
        html = render_html(pass_result)

        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_lists_errors_and_warnings(self, pass_result):
        result = pass_result.model_copy(update={
            "errors": ["MOVE WS01: insufficient access rights"],
            "warnings": ["SMTP unreachable"],
        })

        html = render_html(result)

        assert "insufficient access rights" in html
        assert "SMTP unreachable" in html

    def test_write_report(self, pass_result, tmp_path):
        path = write_report(pass_result, tmp_path / "reports")

        assert path.exists()
        assert path.suffix == ".html"
        assert "WS01" in path.read_text(encoding="utf-8")


class TestEmailNotifier:
    """Test cases for EmailNotifier and deliver_report."""

    @pytest.fixture
    def notification_config(self):
        return NotificationConfig(
            enabled=True,
            smtp_host="smtp.example.com",
            sender="cal@example.com",
            recipients=["ops@example.com", "audit@example.com"],
        )

    def test_builds_html_message(self, notification_config, pass_result):
        message = EmailNotifier(notification_config).build_message(pass_result)

        assert message["To"] == "ops@example.com, audit@example.com"
        assert "1 moved" in message["Subject"]
        assert "1 deleted" in message["Subject"]

    @patch("cal_engine.reporting.notifier.smtplib.SMTP")
    def test_send(self, mock_smtp, notification_config, pass_result):
        EmailNotifier(notification_config).send(pass_result)

        mock_smtp.assert_called_once_with("smtp.example.com", 25, timeout=30)
        mock_smtp.return_value.__enter__.return_value.send_message.assert_called_once()

    @patch("cal_engine.reporting.notifier.smtplib.SMTP")
    def test_smtp_failure_raises_notification_error(self, mock_smtp, notification_config, pass_result):
        mock_smtp.side_effect = smtplib.SMTPConnectError(421, "unavailable")

        with pytest.raises(NotificationError):
            EmailNotifier(notification_config).send(pass_result)

    def test_no_recipients(self, pass_result):
        with pytest.raises(NotificationError):
            EmailNotifier(NotificationConfig()).send(pass_result)

    def test_delivery_failure_becomes_warning(self, pass_result):
        notifier = Mock()
        notifier.send.side_effect = NotificationError("SMTP unreachable")

        delivered = deliver_report(pass_result, notifier)

        assert delivered.warnings == ["SMTP unreachable"]
        assert delivered.success is True
        assert pass_result.warnings == []

    def test_successful_delivery_returns_result_unchanged(self, pass_result):
        notifier = Mock()

        assert deliver_report(pass_result, notifier) is pass_result
        notifier.send.assert_called_once_with(pass_result)

    def test_no_notifier(self, pass_result):
        assert deliver_report(pass_result, None) is pass_result
