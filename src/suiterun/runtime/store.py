# src/suiterun/runtime/store.py

"""
Run record store implementations: in-memory, and a JSON file for the CLI.
"""

import fcntl
import json
import os
import tempfile
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import attrs
import structlog

from suiterun.exceptions import RunNotFoundError, RunStateError, StoreWriteError
from suiterun.state import RunStatus, TestRunRecord
from suiterun.telemetry import StructLogger
from suiterun.testing.protocols import ParsedCounts

log: StructLogger = structlog.get_logger("runtime.store")


class InMemoryRunRecordStore:
    """Keeps run records in a dict; lifecycle rules are enforced by TestRunRecord."""

    def __init__(self) -> None:
        self._records: dict[str, TestRunRecord] = {}

    def create_pending(
        self,
        project_id: str,
        suite_id: str | None,
        browser: str,
        environment: str,
    ) -> str:
        run_id = uuid.uuid4().hex
        run_number = 1 + sum(1 for r in self._records.values() if r.project_id == project_id)
        self._records[run_id] = TestRunRecord(
            run_id=run_id,
            project_id=project_id,
            suite_id=suite_id,
            run_number=run_number,
            browser=browser,
            environment=environment,
        )
        log.info("Created pending run", run_id=run_id, project_id=project_id, run_number=run_number)
        self._persist()
        return run_id

    def mark_in_progress(self, run_id: str) -> None:
        self._lookup(run_id).transition_to(RunStatus.IN_PROGRESS)
        self._persist()

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
        if not status.is_terminal:
            raise RunStateError(f"finalize requires a terminal status, got {status.name}")

        record = self._lookup(run_id)
        record.transition_to(status, error_message)
        record.counts = counts
        record.duration_ms = duration_ms
        record.report_path = report_path
        record.exit_code = exit_code
        record.timed_out = timed_out
        record.truncated = truncated
        self._persist()

        log.info(
            "Run finalized",
            run_id=run_id,
            status=status.name,
            duration_ms=duration_ms,
            **counts.as_dict(),
        )
        return record

    def get(self, run_id: str) -> TestRunRecord:
        return self._lookup(run_id)

    def _lookup(self, run_id: str) -> TestRunRecord:
        try:
            return self._records[run_id]
        except KeyError:
            raise RunNotFoundError(f"Test run '{run_id}' not found") from None

    def list_runs(self, project_id: str | None = None, limit: int = 20) -> list[TestRunRecord]:
        records = [r for r in self._records.values() if project_id is None or r.project_id == project_id]
        records.sort(key=lambda r: r.start_time, reverse=True)
        return records[:limit]

    def _persist(self) -> None:
        """Hook for durable subclasses."""


def _serialize_value(inst: Any, field: attrs.Attribute | None, value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, RunStatus):
        return value.value
    return value


def record_to_dict(record: TestRunRecord) -> dict[str, Any]:
    return attrs.asdict(record, value_serializer=_serialize_value)


def record_from_dict(data: dict[str, Any]) -> TestRunRecord:
    data = dict(data)
    data["status"] = RunStatus(data["status"])
    data["counts"] = ParsedCounts(**data.get("counts") or {})
    data["start_time"] = datetime.fromisoformat(data["start_time"])
    if data.get("end_time"):
        data["end_time"] = datetime.fromisoformat(data["end_time"])
    return TestRunRecord(**data)


class JsonRunRecordStore(InMemoryRunRecordStore):
    """
    Persists every record to a single JSON file so runs can be inspected
    later from another process.

    Several processes may share one file. Each write takes an exclusive
    ``flock`` on ``<path>.lock``, re-reads the file, applies the change and
    replaces the file; reads take a shared lock and re-read. Records created
    by other processes are therefore never overwritten.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self.lock_path = path.with_name(path.name + ".lock")
        with self._file_lock(fcntl.LOCK_SH):
            self._load()

    @contextmanager
    def _file_lock(self, operation: int) -> Iterator[None]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_file:
            fcntl.flock(lock_file, operation)
            try:
                yield
            finally:
                fcntl.flock(lock_file, fcntl.LOCK_UN)

    def _load(self) -> None:
        """Replaces the in-memory records with the file's contents."""
        if not self.path.exists():
            return
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            records = [record_from_dict(item) for item in payload.get("runs", [])]
        except (OSError, ValueError, TypeError, KeyError) as e:
            raise StoreWriteError(f"Run store '{self.path}' is unreadable: {e}") from e
        self._records = {record.run_id: record for record in records}
        log.debug("Loaded run records", path=str(self.path), count=len(self._records))

    def create_pending(
        self,
        project_id: str,
        suite_id: str | None,
        browser: str,
        environment: str,
    ) -> str:
        with self._file_lock(fcntl.LOCK_EX):
            self._load()
            return super().create_pending(project_id, suite_id, browser, environment)

    def mark_in_progress(self, run_id: str) -> None:
        with self._file_lock(fcntl.LOCK_EX):
            self._load()
            super().mark_in_progress(run_id)

    def finalize(self, run_id: str, *args: Any, **kwargs: Any) -> TestRunRecord:
        with self._file_lock(fcntl.LOCK_EX):
            self._load()
            return super().finalize(run_id, *args, **kwargs)

    def get(self, run_id: str) -> TestRunRecord:
        with self._file_lock(fcntl.LOCK_SH):
            self._load()
        return super().get(run_id)

    def list_runs(self, project_id: str | None = None, limit: int = 20) -> list[TestRunRecord]:
        with self._file_lock(fcntl.LOCK_SH):
            self._load()
        return super().list_runs(project_id, limit)

    def _persist(self) -> None:
        payload = {
            "saved_at": datetime.now(UTC).isoformat(),
            "runs": [record_to_dict(r) for r in self._records.values()],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".runs-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

# 🧪⚙️
