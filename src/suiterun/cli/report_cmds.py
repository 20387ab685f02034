# src/suiterun/cli/report_cmds.py

"""
Read-only commands over recorded runs and their report bundles.
"""

from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from suiterun.cli.utils import (
    config_option,
    load_config_or_exit,
    logging_options,
    setup_command_logging,
)
from suiterun.exceptions import RunNotFoundError, StoreWriteError
from suiterun.runtime.store import JsonRunRecordStore
from suiterun.state import RunStatus, TestRunRecord
from suiterun.telemetry import StructLogger
from suiterun.testing import ReportLocator

log: StructLogger = structlog.get_logger("cli.report")

STATUS_STYLES = {
    RunStatus.COMPLETED: "green",
    RunStatus.FAILED: "red",
    RunStatus.IN_PROGRESS: "yellow",
    RunStatus.PENDING: "dim",
    RunStatus.CANCELLED: "dim",
}


def _console() -> Console:
    # Created per call so output follows whatever sys.stdout is at that moment.
    return Console(highlight=False)


def render_record(record: TestRunRecord) -> None:
    """Prints a single run as a two-column table."""
    table = Table(title=f"{record.display_status_emoji} {record.run_name}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")

    style = STATUS_STYLES.get(record.status, "")
    table.add_row("Run ID", record.run_id)
    table.add_row("Project", record.project_id)
    table.add_row("Run #", str(record.run_number))
    table.add_row("Status", f"[{style}]{record.status.value}[/]" if style else record.status.value)
    for key, value in record.counts.as_dict().items():
        table.add_row(key.capitalize(), str(value))
    table.add_row("Browser", record.browser)
    table.add_row("Environment", record.environment)
    if record.duration_ms is not None:
        table.add_row("Duration", f"{record.duration_ms / 1000:.1f}s")
    if record.exit_code is not None:
        table.add_row("Exit code", str(record.exit_code))
    if record.timed_out:
        table.add_row("Timed out", "yes")
    if record.truncated:
        table.add_row("Output truncated", "yes")
    if record.report_path:
        table.add_row("Report", record.report_path)
    if record.error_message:
        table.add_row("Error", f"[red]{record.error_message}[/]")

    _console().print(table)


def render_run_list(records: list[TestRunRecord]) -> None:
    table = Table(title="Test Runs")
    table.add_column("", width=2)
    table.add_column("Run ID", no_wrap=True)
    table.add_column("Project")
    table.add_column("#", justify="right")
    table.add_column("Status")
    table.add_column("Passed", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Started")

    for record in records:
        table.add_row(
            record.display_status_emoji,
            record.run_id[:12],
            record.project_id,
            str(record.run_number),
            record.status.value,
            str(record.counts.passed),
            str(record.counts.failed),
            record.start_time.strftime("%Y-%m-%d %H:%M:%S"),
        )

    _console().print(table)


def _open_store(ctx: click.Context, state_file: Path) -> JsonRunRecordStore:
    try:
        return JsonRunRecordStore(state_file)
    except StoreWriteError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)


@click.command(name="report")
@click.argument("run_id")
@config_option
@logging_options
@click.pass_context
def report_cli(ctx: click.Context, run_id: str, config_path: Path, **kwargs):
    """Print the location of the HTML report for RUN_ID."""
    setup_command_logging(ctx, kwargs)
    config = load_config_or_exit(ctx, config_path)
    locator = ReportLocator(config.reports_root, config.report_url_prefix)

    report = locator.resolve(run_id)
    if report is None:
        click.echo(f"No report found for run '{run_id}'.", err=True)
        ctx.exit(1)

    click.echo(str(report))
    click.echo(locator.url_for(run_id))


@click.group(name="runs")
def runs_cli():
    """Inspect recorded test runs."""
    pass


@runs_cli.command(name="list")
@click.option("-p", "--project", "project_id", default=None, help="Only show runs for this project id.")
@click.option("-n", "--limit", type=click.IntRange(min=1), default=20, show_default=True)
@config_option
@logging_options
@click.pass_context
def list_runs(ctx: click.Context, project_id: str | None, limit: int, config_path: Path, **kwargs):
    """List recent runs, newest first."""
    setup_command_logging(ctx, kwargs)
    config = load_config_or_exit(ctx, config_path)
    store = _open_store(ctx, config.state_file)

    records = store.list_runs(project_id=project_id, limit=limit)
    if not records:
        click.echo("No runs recorded.")
        return
    render_run_list(records)


@runs_cli.command(name="show")
@click.argument("run_id")
@config_option
@logging_options
@click.pass_context
def show_run(ctx: click.Context, run_id: str, config_path: Path, **kwargs):
    """Show the full record for RUN_ID."""
    setup_command_logging(ctx, kwargs)
    config = load_config_or_exit(ctx, config_path)
    store = _open_store(ctx, config.state_file)

    try:
        record = store.get(run_id)
    except RunNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    render_record(record)

# 🧪⚙️
