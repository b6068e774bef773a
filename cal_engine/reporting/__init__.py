"""
Reporting Package.

Renders pass results as HTML and delivers them by email.
"""

from .html_report import render_html, write_report
from .notifier import EmailNotifier, deliver_report

__all__ = ["render_html", "write_report", "EmailNotifier", "deliver_report"]
