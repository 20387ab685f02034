# src/suiterun/state.py
#
"""
Defines the lifecycle model for test runs tracked by suiterun.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from attrs import field, mutable

from suiterun.exceptions import RunStateError
from suiterun.testing.protocols import ParsedCounts

# Logger specific to state management
log: structlog.stdlib.BoundLogger = structlog.get_logger("state")


class RunStatus(Enum):
    """Enumeration of lifecycle states for a test run."""

    PENDING = "pending"  # Record created, pipeline not started yet.
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"  # Reserved for external cancellation.

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED})

ALLOWED_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.PENDING: frozenset({RunStatus.IN_PROGRESS, RunStatus.FAILED, RunStatus.CANCELLED}),
    RunStatus.IN_PROGRESS: frozenset({RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED}),
    RunStatus.COMPLETED: frozenset(),
    RunStatus.FAILED: frozenset(),
    RunStatus.CANCELLED: frozenset(),
}

# Mapping of RunStatus to display emojis for the CLI
STATUS_EMOJI_MAP = {
    RunStatus.PENDING: "⏳",
    RunStatus.IN_PROGRESS: "🔄",
    RunStatus.COMPLETED: "✅",
    RunStatus.FAILED: "❌",
    RunStatus.CANCELLED: "⏹️",
}


@mutable(slots=True)
class TestRunRecord:
    """
    The persisted lifecycle object for a single test run.

    Mutable because the record moves through its lifecycle, but once a
    terminal status is written no further transition is accepted.
    """

    __test__ = False  # not a pytest test class

    run_id: str = field()
    project_id: str = field()
    suite_id: str | None = field(default=None)
    run_name: str | None = field(default=None)
    run_number: int | None = field(default=None)
    status: RunStatus = field(default=RunStatus.PENDING)
    counts: ParsedCounts = field(factory=ParsedCounts)
    start_time: datetime = field(factory=lambda: datetime.now(UTC))
    end_time: datetime | None = field(default=None)
    duration_ms: int | None = field(default=None)
    browser: str = field(default="chromium")
    environment: str = field(default="test")
    report_path: str | None = field(default=None)
    exit_code: int | None = field(default=None)
    error_message: str | None = field(default=None)
    timed_out: bool = field(default=False)
    truncated: bool = field(default=False)

    def __attrs_post_init__(self):
        if self.run_name is None:
            self.run_name = f"Run {self.start_time.isoformat()}"

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def display_status_emoji(self) -> str:
        return STATUS_EMOJI_MAP.get(self.status, "❓")

    def transition_to(self, new_status: RunStatus, error_msg: str | None = None) -> None:
        """Moves the record to ``new_status``, rejecting illegal transitions."""
        old_status = self.status
        if new_status not in ALLOWED_TRANSITIONS[old_status]:
            raise RunStateError(
                f"Illegal run transition {old_status.name} -> {new_status.name} for run '{self.run_id}'"
            )

        self.status = new_status
        log_func = log.debug

        if new_status == RunStatus.FAILED:
            self.error_message = error_msg or self.error_message
            log_func = log.warning
        elif new_status.is_terminal and error_msg:
            self.error_message = error_msg

        if new_status.is_terminal:
            self.end_time = datetime.now(UTC)

        log_func(
            "Run status changed",
            run_id=self.run_id,
            old_status=old_status.name,
            new_status=new_status.name,
            **({"error": self.error_message} if new_status == RunStatus.FAILED else {}),
        )

# 🧪⚙️
