# src/suiterun/runtime/orchestrator.py

"""
High-level coordinator for a single test run.
Drives acquire -> provision -> execute -> extract -> finalize, and guarantees
that every run it creates reaches exactly one terminal state.
"""

import time
from pathlib import Path

import structlog
from attrs import define, field

from suiterun.config import OrchestratorConfig
from suiterun.engines.git.base import GitEngine
from suiterun.engines.git.exceptions import AcquisitionError
from suiterun.engines.git.sandbox import slugify
from suiterun.exceptions import ExecutionLaunchError, StoreWriteError
from suiterun.protocols import RepositoryAcquirer, RunEvent, RunRecordStore
from suiterun.state import RunStatus, TestRunRecord
from suiterun.telemetry import StructLogger
from suiterun.testing import (
    EnvironmentProvisioner,
    ExecutionEngine,
    ExecutionRequest,
    ParsedCounts,
    ProcessExecutionResult,
    ProcessRunner,
    ReportLocator,
    ResultExtractor,
    get_runner_profile,
)

from .locks import SandboxLockTable
from .notifier import RunEventCallback, RunNotifier

log: StructLogger = structlog.get_logger("runtime.orchestrator")


@define(slots=True)
class RunOutcome:
    """Everything needed to finalize a run, accumulated as the pipeline advances."""
    status: RunStatus = field(default=RunStatus.FAILED)
    counts: ParsedCounts = field(factory=ParsedCounts)
    error_message: str | None = field(default=None)
    exit_code: int | None = field(default=None)
    timed_out: bool = field(default=False)
    truncated: bool = field(default=False)


def decide_outcome(result: ProcessExecutionResult, counts: ParsedCounts) -> RunOutcome:
    """
    Chooses the terminal status for a run whose runner produced output.

    The exit code is recorded but not consulted; runners exit non-zero on any
    test failure even when the summary is complete.
    """
    outcome = RunOutcome(
        counts=counts,
        exit_code=result.exit_code,
        timed_out=result.timed_out,
        truncated=result.truncated,
    )

    if not counts.has_signal:
        outcome.status = RunStatus.FAILED
        if result.timed_out:
            outcome.error_message = "Test run timed out before reporting any results."
        elif result.truncated:
            outcome.error_message = "Test output exceeded the capture limit before any results were reported."
        else:
            outcome.error_message = "No test results could be extracted from the runner output."
        return outcome

    outcome.status = RunStatus.FAILED if counts.failed > 0 else RunStatus.COMPLETED
    if result.timed_out:
        outcome.error_message = "Test run timed out; counts are partial."
    elif result.truncated:
        outcome.error_message = "Test output was truncated; counts are partial."
    return outcome


class RunOrchestrator:
    """Instantiates and coordinates all pipeline components for test runs."""

    def __init__(
        self,
        config: OrchestratorConfig,
        store: RunRecordStore,
        acquirer: RepositoryAcquirer | None = None,
        provisioner: EnvironmentProvisioner | None = None,
        engine: ExecutionEngine | None = None,
        extractor: ResultExtractor | None = None,
        reports: ReportLocator | None = None,
        locks: SandboxLockTable | None = None,
        on_terminal: RunEventCallback | None = None,
    ):
        self.config = config
        self.store = store

        process_runner = ProcessRunner(config.max_output_bytes)
        profile = get_runner_profile(config.runner)

        self.acquirer = acquirer or GitEngine(config.sandbox_root, config.timeouts)
        self.provisioner = provisioner or EnvironmentProvisioner(
            process_runner, profile, config.timeouts, config.runner
        )
        self.engine = engine or ExecutionEngine(process_runner, profile, config.timeouts.execution)
        self.extractor = extractor or ResultExtractor()
        self.reports = reports or ReportLocator(config.reports_root, config.report_url_prefix)
        self.locks = locks or SandboxLockTable()
        self.notifier = RunNotifier(on_terminal)

    def sandbox_path_for(self, request: ExecutionRequest) -> Path:
        if isinstance(self.acquirer, GitEngine):
            return self.acquirer.sandbox_for(
                request.project.name, request.project.repo_url, request.project.branch
            ).root
        return self.config.sandbox_root / slugify(request.project.name)

    async def execute(self, request: ExecutionRequest) -> TestRunRecord:
        """
        Runs the full pipeline for ``request`` and returns the finalized record.

        Raises:
            StoreWriteError: the terminal state could not be persisted.
        """
        run_id = self.store.create_pending(
            request.project.project_id,
            request.suite_id,
            request.browser,
            request.environment,
        )
        run_log = log.bind(run_id=run_id, project=request.project.name)
        run_log.info("Run created", browser=request.browser, environment=request.environment)

        started = time.monotonic()
        outcome = RunOutcome(error_message="Run aborted before completion.")

        try:
            sandbox_path = self.sandbox_path_for(request)
        except AcquisitionError as e:
            run_log.error("Project identity has no usable sandbox name", error=e.message)
            await self._finalize(run_id, RunOutcome(error_message=e.message), started, run_log)
            return self.store.get(run_id)

        async with self.locks.hold(sandbox_path):
            try:
                outcome = await self._run_pipeline(run_id, request, run_log)
            finally:
                await self._finalize(run_id, outcome, started, run_log)

        return self.store.get(run_id)

    async def _run_pipeline(
        self,
        run_id: str,
        request: ExecutionRequest,
        run_log: StructLogger,
    ) -> RunOutcome:
        """Returns the outcome; only unexpected programming errors propagate."""
        self.store.mark_in_progress(run_id)
        project = request.project

        # 1. Acquire
        try:
            sandbox_path = await self.acquirer.acquire(project.repo_url, project.name, project.branch)
        except AcquisitionError as e:
            run_log.error("Repository acquisition failed", kind=e.kind.value, error=e.message)
            return RunOutcome(error_message=e.message)

        # 2. Provision (best effort)
        report = await self.provisioner.ensure(sandbox_path, request.browser)
        if report.warnings:
            run_log.warning("Provisioning finished with warnings", count=len(report.warnings))

        # 3. Execute
        try:
            result = await self.engine.run(sandbox_path, request, self.reports.report_dir(run_id))
        except ExecutionLaunchError as e:
            run_log.error("Test runner could not be started", error=str(e))
            return RunOutcome(error_message=str(e))
        except Exception as e:
            run_log.exception("Unexpected error while executing tests")
            return RunOutcome(error_message=f"Test execution failed: {e}")

        # 4. Extract
        counts = self.extractor.extract(result.stdout, result.stderr)
        outcome = decide_outcome(result, counts)
        run_log.info(
            "Run outcome decided",
            status=outcome.status.name,
            exit_code=result.exit_code,
            timed_out=result.timed_out,
            truncated=result.truncated,
            **counts.as_dict(),
        )
        return outcome

    async def _finalize(
        self,
        run_id: str,
        outcome: RunOutcome,
        started: float,
        run_log: StructLogger,
    ) -> None:
        duration_ms = int((time.monotonic() - started) * 1000)
        report_path = self.reports.resolve(run_id)
        try:
            self.store.finalize(
                run_id,
                outcome.status,
                outcome.counts,
                duration_ms,
                str(report_path) if report_path else None,
                exit_code=outcome.exit_code,
                error_message=outcome.error_message,
                timed_out=outcome.timed_out,
                truncated=outcome.truncated,
            )
        except Exception as e:
            run_log.critical(
                "Failed to persist terminal run state; the run will not appear finished",
                status=outcome.status.name,
                error=str(e),
                exc_info=True,
            )
            raise StoreWriteError(f"Could not finalize run: {e}", run_id=run_id) from e

        await self.notifier.notify(RunEvent(run_id=run_id, status=outcome.status))

# 🧪⚙️
