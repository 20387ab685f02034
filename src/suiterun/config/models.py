#
# config/models.py
#
"""
Attrs-based data models for suiterun configuration structure.
"""

import logging
from pathlib import Path
from typing import Any

from attrs import define, field

DEFAULT_MAX_OUTPUT_BYTES = 50 * 1024 * 1024


# --- Validators ---
def _validate_log_level(inst: Any, attr: Any, value: str) -> None:
    """Validator for standard logging level names."""
    valid = logging._nameToLevel.keys()
    if value.upper() not in valid:
        raise ValueError(f"Invalid log_level '{value}'. Must be one of {list(valid)}.")


def _validate_positive_int(inst: Any, attr: Any, value: int) -> None:
    """Validator ensures integer is positive."""
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be positive integer, got {value}")


def _validate_positive_number(inst: Any, attr: Any, value: float) -> None:
    if not isinstance(value, int | float) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be a positive number, got {value}")


@define(frozen=True, slots=True)
class TimeoutConfig:
    """Per-phase time budgets, in seconds."""
    clone: float = field(default=120.0, validator=_validate_positive_number)
    fetch: float = field(default=120.0, validator=_validate_positive_number)
    install: float = field(default=600.0, validator=_validate_positive_number)
    browser_install: float = field(default=600.0, validator=_validate_positive_number)
    execution: float = field(default=600.0, validator=_validate_positive_number)


@define(frozen=True, slots=True)
class RunnerConfig:
    """Settings for the external test runner."""
    name: str = field(default="playwright")
    reporters: tuple[str, ...] = field(default=("list", "html"), converter=tuple)
    install_browsers: bool = field(default=True)
    install_dependencies: bool = field(default=True)


@define(frozen=True, slots=True)
class OrchestratorConfig:
    """
    Root configuration object, constructed once and passed into each component.
    """
    sandbox_root: Path = field(converter=Path)
    reports_root: Path = field(converter=Path)
    state_file: Path = field(converter=Path)
    report_url_prefix: str = field(default="/reports")
    max_output_bytes: int = field(default=DEFAULT_MAX_OUTPUT_BYTES, validator=_validate_positive_int)
    log_level: str = field(default="WARNING", validator=_validate_log_level)
    runner: RunnerConfig = field(factory=RunnerConfig)
    timeouts: TimeoutConfig = field(factory=TimeoutConfig)

    @state_file.default
    def _default_state_file(self) -> Path:
        return self.sandbox_root.parent / "runs.json"


# 🧪⚙️
