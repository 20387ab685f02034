#
# tests/unit/test_store.py
#
"""
Tests for the run lifecycle and the run record stores.
"""

import json
from pathlib import Path

import pytest

from suiterun.exceptions import RunNotFoundError, RunStateError, StoreWriteError
from suiterun.runtime.store import InMemoryRunRecordStore, JsonRunRecordStore
from suiterun.state import RunStatus, TestRunRecord
from suiterun.testing.protocols import ParsedCounts


class TestRunLifecycle:
    def test_happy_path(self) -> None:
        record = TestRunRecord(run_id="r1", project_id="p1")

        record.transition_to(RunStatus.IN_PROGRESS)
        record.transition_to(RunStatus.COMPLETED)

        assert record.status is RunStatus.COMPLETED
        assert record.end_time is not None
        assert record.run_name.startswith("Run ")

    def test_failure_records_message(self) -> None:
        record = TestRunRecord(run_id="r1", project_id="p1")

        record.transition_to(RunStatus.FAILED, "clone failed")

        assert record.error_message == "clone failed"

    @pytest.mark.parametrize("terminal", [RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED])
    def test_terminal_states_are_final(self, terminal: RunStatus) -> None:
        record = TestRunRecord(run_id="r1", project_id="p1")
        record.transition_to(RunStatus.IN_PROGRESS)
        record.transition_to(terminal)

        for target in RunStatus:
            with pytest.raises(RunStateError):
                record.transition_to(target)

    def test_pending_cannot_complete_directly(self) -> None:
        record = TestRunRecord(run_id="r1", project_id="p1")

        with pytest.raises(RunStateError):
            record.transition_to(RunStatus.COMPLETED)


class TestInMemoryRunRecordStore:
    def test_create_pending_assigns_run_numbers(self) -> None:
        store = InMemoryRunRecordStore()

        first = store.create_pending("p1", None, "chromium", "test")
        second = store.create_pending("p1", "suite-a", "firefox", "staging")
        other = store.create_pending("p2", None, "chromium", "test")

        assert first != second
        assert store.get(first).run_number == 1
        assert store.get(second).run_number == 2
        assert store.get(other).run_number == 1
        assert store.get(second).status is RunStatus.PENDING
        assert store.get(second).suite_id == "suite-a"

    def test_finalize_stores_outcome(self) -> None:
        store = InMemoryRunRecordStore()
        run_id = store.create_pending("p1", None, "chromium", "test")
        store.mark_in_progress(run_id)
        counts = ParsedCounts.from_categories(passed=9, failed=1, skipped=0)

        record = store.finalize(
            run_id,
            RunStatus.FAILED,
            counts,
            1234,
            "/reports/report-x/index.html",
            exit_code=1,
            truncated=True,
        )

        assert record.status is RunStatus.FAILED
        assert record.counts.as_dict() == {"total": 10, "passed": 9, "failed": 1, "skipped": 0, "flaky": 0}
        assert record.duration_ms == 1234
        assert record.exit_code == 1
        assert record.truncated
        assert record.report_path == "/reports/report-x/index.html"

    def test_finalize_twice_rejected(self) -> None:
        store = InMemoryRunRecordStore()
        run_id = store.create_pending("p1", None, "chromium", "test")
        store.mark_in_progress(run_id)
        store.finalize(run_id, RunStatus.COMPLETED, ParsedCounts(), 1)

        with pytest.raises(RunStateError):
            store.finalize(run_id, RunStatus.FAILED, ParsedCounts(), 1)

    def test_finalize_requires_terminal_status(self) -> None:
        store = InMemoryRunRecordStore()
        run_id = store.create_pending("p1", None, "chromium", "test")

        with pytest.raises(RunStateError):
            store.finalize(run_id, RunStatus.IN_PROGRESS, ParsedCounts(), 1)

    def test_unknown_run(self) -> None:
        with pytest.raises(RunNotFoundError):
            InMemoryRunRecordStore().get("nope")

    def test_list_runs_filters_and_limits(self) -> None:
        store = InMemoryRunRecordStore()
        ids = [store.create_pending("p1", None, "chromium", "test") for _ in range(3)]
        store.create_pending("p2", None, "chromium", "test")

        runs = store.list_runs(project_id="p1", limit=2)

        assert len(runs) == 2
        assert all(r.project_id == "p1" for r in runs)
        assert {r.run_id for r in runs} <= set(ids)
        assert len(store.list_runs()) == 4


class TestJsonRunRecordStore:
    def test_records_survive_reload(self, tmp_path: Path) -> None:
        path = tmp_path / "state" / "runs.json"
        store = JsonRunRecordStore(path)
        run_id = store.create_pending("p1", None, "webkit", "test")
        store.mark_in_progress(run_id)
        store.finalize(
            run_id,
            RunStatus.COMPLETED,
            ParsedCounts.from_categories(passed=3, failed=0, skipped=1, scheduled=4),
            50,
            exit_code=0,
        )

        reloaded = JsonRunRecordStore(path).get(run_id)

        assert reloaded.status is RunStatus.COMPLETED
        assert reloaded.counts.total == 4
        assert reloaded.counts.scheduled == 4
        assert reloaded.browser == "webkit"
        assert reloaded.end_time is not None
        assert json.loads(path.read_text())["runs"][0]["status"] == "completed"

    def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        store = JsonRunRecordStore(tmp_path / "runs.json")
        store.create_pending("p1", None, "chromium", "test")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["runs.json", "runs.json.lock"]

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "runs.json"
        path.write_text("{not json")

        with pytest.raises(StoreWriteError):
            JsonRunRecordStore(path)

    def test_stores_sharing_a_file_keep_each_others_runs(self, tmp_path: Path) -> None:
        path = tmp_path / "runs.json"
        first = JsonRunRecordStore(path)
        second = JsonRunRecordStore(path)

        run_a = first.create_pending("p1", None, "chromium", "test")
        run_b = second.create_pending("p1", None, "firefox", "test")
        first.mark_in_progress(run_a)
        first.finalize(run_a, RunStatus.COMPLETED, ParsedCounts.from_categories(passed=1, failed=0, skipped=0), 5)

        on_disk = {item["run_id"] for item in json.loads(path.read_text())["runs"]}
        assert on_disk == {run_a, run_b}
        assert second.get(run_a).status is RunStatus.COMPLETED
        assert {r.run_number for r in JsonRunRecordStore(path).list_runs("p1")} == {1, 2}
