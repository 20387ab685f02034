#
# config/loader.py
#
"""
Loads and validates suiterun configuration from a TOML file.
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from suiterun.exceptions import ConfigurationError

from .models import OrchestratorConfig, RunnerConfig, TimeoutConfig

log = structlog.get_logger("config.loader")

DEFAULT_HOME = Path.home() / ".suiterun"

ENV_OVERRIDES = {
    "SUITERUN_SANDBOX_ROOT": "sandbox_root",
    "SUITERUN_REPORTS_ROOT": "reports_root",
    "SUITERUN_STATE_FILE": "state_file",
    "SUITERUN_LOG_LEVEL": "log_level",
}


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Section [{name}] must be a table, got {type(value).__name__}")
    return dict(value)


def _resolve_path(value: str | Path, base_dir: Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else (base_dir / path).resolve()


def build_config(data: Mapping[str, Any], base_dir: Path | None = None) -> OrchestratorConfig:
    """
    Builds an OrchestratorConfig from parsed TOML data, applying environment
    overrides. Relative paths are resolved against ``base_dir``.
    """
    base_dir = base_dir or Path.cwd()
    global_section = _section(data, "global")

    for env_var, key in ENV_OVERRIDES.items():
        env_value = os.environ.get(env_var)
        if env_value:
            log.debug("Applying environment override", env_var=env_var, key=key)
            global_section[key] = env_value

    global_section.setdefault("sandbox_root", DEFAULT_HOME / "sandboxes")
    global_section.setdefault("reports_root", DEFAULT_HOME / "reports")
    for key in ("sandbox_root", "reports_root", "state_file"):
        if key in global_section:
            global_section[key] = _resolve_path(global_section[key], base_dir)

    try:
        runner = RunnerConfig(**_section(data, "runner"))
        timeouts = TimeoutConfig(**_section(data, "timeouts"))
        return OrchestratorConfig(runner=runner, timeouts=timeouts, **global_section)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_config(config_path: Path | None) -> OrchestratorConfig:
    """
    Loads configuration from ``config_path``. A missing path yields defaults
    (still subject to environment overrides).
    """
    if config_path is None or not config_path.exists():
        log.debug("No configuration file found, using defaults", config_path=str(config_path))
        return build_config({})

    log.debug("Loading configuration", config_path=str(config_path))
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Could not parse '{config_path}': {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read '{config_path}': {e}") from e

    config = build_config(data, base_dir=config_path.parent.resolve())
    log.info("Configuration loaded", config_path=str(config_path), runner=config.runner.name)
    return config


# 🧪⚙️
