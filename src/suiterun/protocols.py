#
# src/suiterun/protocols.py
#
"""
Runtime protocols for the collaborators the run orchestrator depends on.
"""
from pathlib import Path
from typing import Protocol, runtime_checkable

from attrs import define

from suiterun.state import RunStatus, TestRunRecord
from suiterun.testing.protocols import ParsedCounts


@define(frozen=True, slots=True)
class RunEvent:
    """Emitted once a run reaches a terminal state."""
    run_id: str
    status: RunStatus


@runtime_checkable
class RepositoryAcquirer(Protocol):
    """Obtains or refreshes a local working copy of a remote repository."""

    async def acquire(self, remote_url: str, project_identity: str, branch: str) -> Path:
        ...


@runtime_checkable
class RunRecordStore(Protocol):
    """
    Persistence contract for test run records.

    ``finalize`` must be called exactly once per run with a terminal status.
    """

    def create_pending(
        self,
        project_id: str,
        suite_id: str | None,
        browser: str,
        environment: str,
    ) -> str:
        ...

    def mark_in_progress(self, run_id: str) -> None:
        ...

    def finalize(
        self,
        run_id: str,
        status: RunStatus,
        counts: ParsedCounts,
        duration_ms: int,
        report_path: str | None = None,
        *,
        exit_code: int | None = None,
        error_message: str | None = None,
        timed_out: bool = False,
        truncated: bool = False,
    ) -> TestRunRecord:
        ...

    def get(self, run_id: str) -> TestRunRecord:
        ...

    def list_runs(self, project_id: str | None = None, limit: int = 20) -> list[TestRunRecord]:
        ...

# 🧪⚙️
