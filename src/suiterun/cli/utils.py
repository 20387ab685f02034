# src/suiterun/cli/utils.py

import logging
from pathlib import Path

import click
import structlog

from suiterun.config import OrchestratorConfig, load_config
from suiterun.exceptions import ConfigurationError
from suiterun.telemetry.logger import setup_logging as core_setup_logging

log = structlog.get_logger("cli.utils")

LOG_LEVEL_CHOICES = click.Choice(list(logging._nameToLevel.keys()), case_sensitive=False)


def logging_options(f):
    """Decorator to add logging options to any command."""
    f = click.option(
        "-l",
        "--log-level",
        type=LOG_LEVEL_CHOICES,
        default=None,
        envvar="SUITERUN_LOG_LEVEL",
        help="Set the logging level (overrides config file).",
    )(f)
    f = click.option(
        "--log-file",
        type=click.Path(dir_okay=False, writable=True, resolve_path=True),
        default=None,
        envvar="SUITERUN_LOG_FILE",
        help="Path to write logs to a file (JSON format).",
    )(f)
    f = click.option(
        "--json-logs",
        is_flag=True,
        default=None,
        envvar="SUITERUN_JSON_LOGS",
        help="Output console logs as JSON.",
    )(f)
    return f


def config_option(f):
    """Decorator adding the shared ``--config-path`` option. A missing file means defaults."""
    return click.option(
        "-c",
        "--config-path",
        type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
        default=Path("suiterun.toml"),
        show_default=True,
        envvar="SUITERUN_CONF",
        help="Path to the suiterun configuration file (env var SUITERUN_CONF).",
        show_envvar=True,
    )(f)


def setup_logging_from_context(
    ctx: click.Context,
    local_log_level: str | None = None,
    local_log_file: str | None = None,
    local_json_logs: bool | None = None,
    default_log_level: str = "INFO",
) -> None:
    """
    Setup logging using context values, allowing local overrides.
    """
    ctx.ensure_object(dict)
    log_level_str = local_log_level or ctx.obj.get("LOG_LEVEL") or default_log_level
    log_file_path = local_log_file or ctx.obj.get("LOG_FILE")
    use_json_logs = local_json_logs if local_json_logs is not None else ctx.obj.get("JSON_LOGS", False)

    numeric_level = logging.getLevelName(log_level_str.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level_str = "INFO"

    core_setup_logging(
        level=numeric_level,
        json_logs=use_json_logs,
        log_file=log_file_path,
    )

    log.debug(
        "CLI logging initialized via utils",
        level=log_level_str,
        file=log_file_path or "console",
        json=use_json_logs,
    )


def setup_command_logging(ctx: click.Context, options: dict) -> None:
    """Applies a subcommand's own logging options on top of the group's."""
    ctx.ensure_object(dict)
    ctx.obj["COMMAND_LOGGING"] = {
        key: options.get(key) for key in ("log_level", "log_file", "json_logs")
    }
    setup_logging_from_context(
        ctx,
        local_log_level=options.get("log_level"),
        local_log_file=options.get("log_file"),
        local_json_logs=options.get("json_logs"),
        default_log_level="WARNING",
    )


def apply_config_log_level(ctx: click.Context, config: OrchestratorConfig) -> None:
    """Re-applies logging at ``config.log_level`` unless a level came from the command line or env."""
    ctx.ensure_object(dict)
    command_logging = ctx.obj.get("COMMAND_LOGGING", {})
    if command_logging.get("log_level") or ctx.obj.get("LOG_LEVEL"):
        return
    setup_logging_from_context(
        ctx,
        local_log_level=config.log_level,
        local_log_file=command_logging.get("log_file"),
        local_json_logs=command_logging.get("json_logs"),
    )


def load_config_or_exit(ctx: click.Context, config_path: Path) -> OrchestratorConfig:
    """Loads configuration, turning a ConfigurationError into exit code 2."""
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        log.error("Failed to load or validate configuration", error=str(e))
        click.echo(f"Error: Configuration problem in '{config_path}':\n{e}", err=True)
        ctx.exit(2)
    apply_config_log_level(ctx, config)
    return config

# 🧪⚙️
