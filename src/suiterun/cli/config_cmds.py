# src/suiterun/cli/config_cmds.py

from pathlib import Path

import click
import structlog
from rich.pretty import pretty_repr

from suiterun.cli.utils import (
    config_option,
    load_config_or_exit,
    logging_options,
    setup_command_logging,
)
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.config")


@click.group(name="config")
def config_cli():
    """Commands for inspecting and validating configuration."""
    pass


@config_cli.command(name="show")
@config_option
@logging_options
@click.pass_context
def show_config(ctx: click.Context, config_path: Path, **kwargs):
    """Load, validate, and display the effective configuration."""
    setup_command_logging(ctx, kwargs)
    log.info("Executing 'config show' command", config_path=str(config_path))

    config = load_config_or_exit(ctx, config_path)
    if not config_path.exists():
        log.info("Configuration file not found, showing defaults", config_path=str(config_path))

    # Echo a rich-formatted string rather than printing so CliRunner captures it.
    click.echo(pretty_repr(config, expand_all=True))

# 🧪⚙️
