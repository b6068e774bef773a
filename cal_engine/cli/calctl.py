#!/usr/bin/env python3
"""
CAL Control CLI - Command Line Interface for the CAL Engine.

Provides commands for running lifecycle passes, inspecting the effective
configuration, reviewing the audit trail, and serving the API.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ..audit import AuditLogger
from ..config import LifecycleConfig, load_config
from ..connectors import create_connector
from ..exceptions import ConfigurationError, DirectoryError
from ..models import DryRunFlags, PassResult, REPORT_CATEGORIES
from ..reporting import EmailNotifier, deliver_report, write_report
from ..workflows import LifecycleOrchestrator

logger = logging.getLogger(__name__)

# Rich console for pretty output
console = Console()

DEFAULT_CONFIG = "cal_config.yaml"


class CALController:
    """Main controller for CAL Engine operations."""

    def __init__(self, config_path: str = DEFAULT_CONFIG, mock_mode: Optional[bool] = None):
        """Initialize the controller. Configuration is loaded on first use."""
        self.config_path = Path(config_path)
        self.mock_mode = mock_mode
        self._config: Optional[LifecycleConfig] = None

    @property
    def config(self) -> LifecycleConfig:
        if self._config is None:
            self._config = load_config(self.config_path)
            if self.mock_mode is not None:
                self._config.directory.mock_mode = self.mock_mode
            console.print(f"[blue]Loaded configuration from {self.config_path}[/blue]")
        return self._config

    def run_pass(self, dry_run: DryRunFlags) -> PassResult:
        """Run one pass with the given dry-run switches."""
        config = self.config.model_copy(update={"dry_run": dry_run})
        connector = create_connector(config.connector_settings(), mock=config.directory.mock_mode)
        try:
            orchestrator = LifecycleOrchestrator(connector, config, audit_logger=AuditLogger(config.audit_dir))
            return orchestrator.run_pass()
        finally:
            connector.close()


@click.group()
@click.option('--config', '-c', default=DEFAULT_CONFIG, show_default=True, help='Path to configuration file')
@click.option('--mock/--real', default=None, help='Force the in-memory directory or the real one')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config, mock, verbose):
    """CAL Engine Control CLI - Stale Computer Account Lifecycle"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    ctx.ensure_object(dict)
    ctx.obj['controller'] = CALController(config, mock)


@cli.command()
@click.option('--apply-move', is_flag=True, help='Actually move accounts to the holding location')
@click.option('--apply-disable', is_flag=True, help='Actually disable accounts in the holding location')
@click.option('--apply-delete', is_flag=True, help='Actually delete accounts in the holding location')
@click.option('--report-dir', help='Directory for the HTML report (defaults to config report_dir)')
@click.option('--email/--no-email', default=None, help='Override whether the report is emailed')
@click.pass_context
def run(ctx, apply_move, apply_delete, apply_disable, report_dir, email):
    """Run one lifecycle pass."""
    controller = ctx.obj['controller']

    try:
        config = controller.config
        configured = config.dry_run
        dry_run = DryRunFlags(
            move=configured.move and not apply_move,
            disable=configured.disable and not apply_disable,
            delete=configured.delete and not apply_delete,
        )
        result = controller.run_pass(dry_run)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        ctx.exit(2)
    except DirectoryError as e:
        console.print(f"[red]Directory error: {e}[/red]")
        ctx.exit(1)

    report_path = write_report(result, report_dir or config.report_dir)

    send_email = config.notification.enabled if email is None else email
    if send_email:
        result = deliver_report(result, EmailNotifier(config.notification))

    display_pass_results(result)
    console.print(f"[blue]Report written to {report_path}[/blue]")


@cli.command()
@click.pass_context
def show_config(ctx):
    """Show the effective thresholds, holding location and exemptions."""
    controller = ctx.obj['controller']

    try:
        config = controller.config
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        ctx.exit(2)

    table = Table(title="Lifecycle Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")

    thresholds = config.thresholds
    table.add_row("Report after (days)", str(thresholds.report_days))
    table.add_row("Move after (days)", str(thresholds.move_days))
    table.add_row("Disable after (days)", str(thresholds.disable_days))
    table.add_row("Remove after (days)", str(thresholds.remove_days))
    table.add_row("Holding location", config.holding_location)
    table.add_row("Name exemptions", ", ".join(config.exemptions.name_patterns) or "-")
    table.add_row("Description exemptions", ", ".join(config.exemptions.description_patterns) or "-")
    for kind, flag in config.dry_run.model_dump().items():
        table.add_row(f"{kind} mode", "report-only" if flag else "apply")
    table.add_row("Directory", "mock" if config.directory.mock_mode else (config.directory.server_uri or "-"))

    console.print(table)

    if not thresholds.is_ordered():
        console.print("[yellow]Warning: thresholds are not ordered report <= move <= disable <= remove[/yellow]")


@cli.command()
@click.option('--account', help='Filter by account name')
@click.option('--days', default=30, help='Number of days to look back')
@click.option('--limit', default=100, help='Maximum number of records to show')
@click.option('--audit-dir', help='Audit directory (defaults to config audit_dir)')
@click.pass_context
def audit_trail(ctx, account, days, limit, audit_dir):
    """Show recorded directory mutations."""
    controller = ctx.obj['controller']

    try:
        directory = audit_dir or controller.config.audit_dir
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        ctx.exit(2)

    audit_logger = AuditLogger(directory)
    start_date = datetime.now(timezone.utc) - timedelta(days=days)
    records = audit_logger.get_events(account_name=account, start_date=start_date, limit=limit)

    if not records:
        console.print("[yellow]No audit records found[/yellow]")
        return

    table = Table(title="Audit Trail")
    table.add_column("Timestamp", style="cyan")
    table.add_column("Account", style="green")
    table.add_column("Action", style="yellow")
    table.add_column("Target", style="blue")
    table.add_column("Success", style="red")
    table.add_column("Error", style="magenta")

    for record in records:
        table.add_row(
            record.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            record.account_name,
            record.action,
            record.target or "",
            "✓" if record.success else "✗",
            record.error_message or "",
        )

    console.print(table)


@cli.command()
@click.option('--port', default=8000, help='Port to run the API server on')
@click.option('--host', default='127.0.0.1', help='Host to bind the API server to')
def serve(port, host):
    """Start the CAL Engine API server."""
    from ..api.server import start_server

    console.print(f"[green]Starting CAL Engine API server on {host}:{port}[/green]")
    console.print("[blue]Press Ctrl+C to stop[/blue]")

    try:
        start_server(host=host, port=port, reload=False)
    except KeyboardInterrupt:
        console.print("[yellow]Server stopped[/yellow]")


def display_pass_results(result: PassResult):
    """Display pass results."""
    if result.errors:
        console.print(f"[yellow]Pass completed with {len(result.errors)} failed mutation(s)[/yellow]")
    else:
        console.print("[green]✓ Pass completed successfully[/green]")

    table = Table(title=f"Lifecycle Pass {result.pass_id}")
    table.add_column("Platform", style="cyan")
    for category in REPORT_CATEGORIES:
        table.add_column(category.replace("_", " ").title(), style="magenta", justify="right")

    for platform, row in result.counts().items():
        table.add_row(platform, *(str(row[category]) for category in REPORT_CATEGORIES))

    console.print(table)

    modes = ", ".join(
        f"{kind}={'report-only' if flag else 'applied'}" for kind, flag in result.dry_run.model_dump().items()
    )
    console.print(f"Mode: {modes}")

    for heading, messages, style in (
        ("Errors", result.errors, "red"),
        ("Diagnostics", result.diagnostics, "yellow"),
        ("Warnings", result.warnings, "yellow"),
    ):
        if messages:
            console.print(f"[{style}]{heading}:[/{style}]")
            for message in messages:
                console.print(f"  - {message}")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
