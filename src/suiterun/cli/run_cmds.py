# src/suiterun/cli/run_cmds.py

"""
Commands that touch sandboxes: running suites and acquiring repositories.
"""

import asyncio
from pathlib import Path

import click
import structlog

from suiterun.cli.report_cmds import render_record
from suiterun.cli.utils import (
    config_option,
    load_config_or_exit,
    logging_options,
    setup_command_logging,
)
from suiterun.engines.git.base import GitEngine
from suiterun.engines.git.exceptions import AcquisitionError
from suiterun.engines.git.sandbox import slugify
from suiterun.exceptions import ConfigurationError, StoreWriteError
from suiterun.runtime.orchestrator import RunOrchestrator
from suiterun.runtime.store import JsonRunRecordStore
from suiterun.state import RunStatus
from suiterun.telemetry import StructLogger
from suiterun.testing import ExecutionRequest, ProjectRef
from suiterun.testing.protocols import BROWSERS

log: StructLogger = structlog.get_logger("cli.run")


def _project_options(f):
    f = click.option("-b", "--branch", default="main", show_default=True, help="Branch to test.")(f)
    f = click.option("-u", "--repo-url", required=True, help="Git remote URL of the project.")(f)
    f = click.option("-n", "--name", "project_name", required=True, help="Project name; determines the sandbox.")(f)
    return f


@click.command(name="run")
@_project_options
@click.option("--project-id", default=None, help="Stable project id for run records (default: slug of --name).")
@click.option("--suite", "suite_id", default=None, help="Suite id to record with the run.")
@click.option("-g", "--grep", default=None, help="Only run tests whose title matches this pattern.")
@click.option(
    "--browser",
    type=click.Choice(BROWSERS, case_sensitive=False),
    default="chromium",
    show_default=True,
)
@click.option("--headed", is_flag=True, default=False, help="Run browsers with a visible window.")
@click.option("-w", "--workers", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("-e", "--environment", default="test", show_default=True, help="Environment label for the run.")
@click.argument("selectors", nargs=-1)
@config_option
@logging_options
@click.pass_context
def run_cli(
    ctx: click.Context,
    project_name: str,
    repo_url: str,
    branch: str,
    project_id: str | None,
    suite_id: str | None,
    grep: str | None,
    browser: str,
    headed: bool,
    workers: int,
    environment: str,
    selectors: tuple[str, ...],
    config_path: Path,
    **kwargs,
):
    """
    Acquire, provision and execute a project's test suite.

    SELECTORS are passed to the runner as test file or directory filters.
    Exits with code 1 when the run is recorded as failed.
    """
    setup_command_logging(ctx, kwargs)
    config = load_config_or_exit(ctx, config_path)

    try:
        project = ProjectRef(
            project_id=project_id or slugify(project_name),
            name=project_name,
            repo_url=repo_url,
            branch=branch,
        )
        request = ExecutionRequest(
            project=project,
            suite_id=suite_id,
            selectors=selectors,
            grep=grep,
            browser=browser.lower(),
            headless=not headed,
            workers=workers,
            environment=environment,
        )
        orchestrator = RunOrchestrator(config, JsonRunRecordStore(config.state_file))
    except AcquisitionError as e:
        click.echo(f"Error: {e.message}", err=True)
        ctx.exit(1)
    except (ConfigurationError, StoreWriteError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)

    log.info("Starting test run", project=project.name, browser=request.browser)
    try:
        record = asyncio.run(orchestrator.execute(request))
    except StoreWriteError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)

    render_record(record)
    if record.status == RunStatus.FAILED:
        ctx.exit(1)


@click.command(name="acquire")
@_project_options
@config_option
@logging_options
@click.pass_context
def acquire_cli(
    ctx: click.Context,
    project_name: str,
    repo_url: str,
    branch: str,
    config_path: Path,
    **kwargs,
):
    """Clone or update a project's sandbox and print its path."""
    setup_command_logging(ctx, kwargs)
    config = load_config_or_exit(ctx, config_path)
    engine = GitEngine(config.sandbox_root, config.timeouts)

    try:
        sandbox_path = asyncio.run(engine.acquire(repo_url, project_name, branch))
    except AcquisitionError as e:
        log.error("Acquisition failed", kind=e.kind.value, error=e.message)
        click.echo(f"Error ({e.kind.value}): {e.message}", err=True)
        ctx.exit(1)

    click.echo(str(sandbox_path))


@click.command(name="sandboxes")
@config_option
@logging_options
@click.pass_context
def sandboxes_cli(ctx: click.Context, config_path: Path, **kwargs):
    """List the sandbox slugs present under the sandbox root."""
    setup_command_logging(ctx, kwargs)
    config = load_config_or_exit(ctx, config_path)

    slugs = GitEngine(config.sandbox_root, config.timeouts).list_sandboxes()
    if not slugs:
        click.echo("No sandboxes found.")
        return
    for slug in slugs:
        click.echo(slug)

# 🧪⚙️
