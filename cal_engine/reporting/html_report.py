"""HTML report renderer for lifecycle passes."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from jinja2 import Environment

from ..models import PassResult, ReportEntry, TransitionOutcome

logger = logging.getLogger(__name__)

REPORT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
</head>
<body>
<h1>{{ title }}</h1>
<p>Pass {{ result.pass_id }} started {{ result.started_at | ts }}, completed {{ result.completed_at | ts }}.</p>
<p>Holding location: {{ result.holding_location }}</p>
<p>Mode:
{% for kind, flag in dry_run.items() %}{{ kind }}={{ "report-only" if flag else "applied" }}{% if not loop.last %}, {% endif %}{% endfor %}
</p>

<h2>Summary</h2>
<table border="1">
<tr><th>Platform</th>{% for category in categories %}<th>{{ category }}</th>{% endfor %}</tr>
{% for platform, row in counts.items() %}
<tr><td>{{ platform }}</td>{% for category in categories %}<td>{{ row[category] }}</td>{% endfor %}</tr>
{% endfor %}
</table>

{% for section in sections %}
<h2>{{ section.platform }}: {{ section.title }} ({{ section.rows | length }})</h2>
{% if section.rows %}
<table border="1">
<tr><th>Name</th><th>Days inactive</th><th>Owner</th><th>Description</th><th>Password last set</th><th>Modified</th><th>Created</th><th>Operating system</th><th>Container</th>{% if section.outcomes %}<th>Executed</th>{% endif %}</tr>
{% for row in section.rows %}
<tr><td>{{ row.entry.name }}</td><td>{{ row.entry.days_inactive }}</td><td>{{ row.entry.owner }}</td><td>{{ row.entry.description }}</td><td>{{ row.entry.credential_changed_at | ts }}</td><td>{{ row.entry.modified_at | ts }}</td><td>{{ row.entry.created_at | ts }}</td><td>{{ row.entry.operating_system }}</td><td>{{ row.entry.container }}</td>{% if section.outcomes %}<td>{{ "yes" if row.executed else "no" }}</td>{% endif %}</tr>
{% endfor %}
</table>
{% endif %}
{% endfor %}

{% for heading, messages in notes %}
{% if messages %}
<h2>{{ heading }}</h2>
<ul>
{% for message in messages %}<li>{{ message }}</li>
{% endfor %}
</ul>
{% endif %}
{% endfor %}
</body>
</html>
"""

SECTIONS = (
    ("deleted", "Deleted"),
    ("disabled", "Disabled"),
    ("moved", "Moved to holding location"),
    ("in_holding", "In holding location"),
    ("reviewed", "Reviewed"),
    ("ignored", "Exempt"),
)


def _format_timestamp(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def _build_environment() -> Environment:
    env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
    env.filters["ts"] = _format_timestamp
    return env


def render_html(result: PassResult, title: str = "Stale computer account report") -> str:
    """Render a pass result as an HTML document."""
    now = result.completed_at or result.started_at
    sections = []
    for platform_result in result.platforms:
        for attribute, heading in SECTIONS:
            items = getattr(platform_result, attribute)
            is_outcome = bool(items) and isinstance(items[0], TransitionOutcome)
            rows = [
                {"entry": ReportEntry.from_account(item.account, now), "executed": item.executed}
                if isinstance(item, TransitionOutcome) else {"entry": item, "executed": None}
                for item in items
            ]
            sections.append({
                "platform": platform_result.platform.value,
                "title": heading,
                "rows": rows,
                "outcomes": is_outcome,
            })

    categories = [attribute for attribute, _ in SECTIONS]
    template = _build_environment().from_string(REPORT_TEMPLATE)
    return template.render(
        title=title,
        result=result,
        dry_run=result.dry_run.model_dump(),
        counts=result.counts(),
        categories=categories,
        sections=sections,
        notes=[
            ("Errors", result.errors),
            ("Diagnostics", result.diagnostics),
            ("Warnings", result.warnings),
        ],
    )


def write_report(result: PassResult, report_dir: Union[str, Path]) -> Path:
    """
    Write the HTML report for a pass.

    Args:
        result: Completed pass result
        report_dir: Directory receiving the report

    Returns:
        Path of the written file
    """
    output_dir = Path(report_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    path = output_dir / f"lifecycle_{result.started_at:%Y%m%d_%H%M%S}_{result.pass_id[:8]}.html"
    path.write_text(render_html(result), encoding="utf-8")
    logger.info(f"Wrote pass report to {path}")
    return path
