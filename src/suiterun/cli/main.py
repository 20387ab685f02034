# src/suiterun/cli/main.py

"""
Main CLI entry point for suiterun using Click.
Handles global options like logging level.
"""

from importlib.metadata import PackageNotFoundError, version

import click
import structlog

from suiterun.cli.config_cmds import config_cli
from suiterun.cli.report_cmds import report_cli, runs_cli
from suiterun.cli.run_cmds import acquire_cli, run_cli, sandboxes_cli
from suiterun.cli.utils import logging_options, setup_logging_from_context
from suiterun.telemetry import StructLogger

try:
    __version__ = version("suiterun")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

log: StructLogger = structlog.get_logger("cli.main")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", package_name="suiterun")
@logging_options
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str | None,
    log_file: str | None,
    json_logs: bool | None,
):
    """
    Suiterun: run a project's end-to-end test suite from its git remote.

    Clones or updates the repository into a sandbox, installs what the runner
    needs, executes the suite and records the outcome.
    Configuration precedence: CLI options > Environment Variables > Config File > Defaults.
    """
    ctx.ensure_object(dict)

    ctx.obj["LOG_LEVEL"] = log_level
    ctx.obj["LOG_FILE"] = log_file
    ctx.obj["JSON_LOGS"] = json_logs if json_logs is not None else False

    setup_logging_from_context(ctx, default_log_level="WARNING")
    log.debug(
        "Main CLI group initialized",
        log_level=log_level,
        log_file=log_file,
        json_logs=json_logs,
    )


cli.add_command(acquire_cli)
cli.add_command(config_cli)
cli.add_command(report_cli)
cli.add_command(run_cli)
cli.add_command(runs_cli)
cli.add_command(sandboxes_cli)

if __name__ == "__main__":
    cli()

# 🧪⚙️
