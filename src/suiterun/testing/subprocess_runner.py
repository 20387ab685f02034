#
# src/suiterun/testing/subprocess_runner.py
#
"""
A generic, source-agnostic process runner using asyncio.subprocess.

Enforces a wall-clock timeout and a cap on captured output. Exceeding either
kills the whole process group, flags the result, and still hands back every
byte captured up to that point.
"""
import asyncio
import os
import signal
import time
from collections.abc import Mapping
from pathlib import Path

import structlog

from suiterun.exceptions import ExecutionLaunchError
from suiterun.testing.protocols import ProcessExecutionResult

log = structlog.get_logger("testing.runner")

READ_CHUNK_SIZE = 64 * 1024


class _OutputBudget:
    """Shared byte budget for both output streams of one process."""

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0
        self.exhausted = asyncio.Event()

    def take(self, chunk: bytes) -> bytes:
        remaining = self.limit - self.used
        if len(chunk) > remaining:
            self.used = self.limit
            self.exhausted.set()
            return chunk[:remaining]
        self.used += len(chunk)
        return chunk


def _kill_process_tree(process: asyncio.subprocess.Process) -> None:
    """Kills the process and, where supported, every process in its group."""
    if process.returncode is not None:
        return
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


class ProcessRunner:
    """
    Runs a command without a shell and captures its output under limits.
    """

    def __init__(self, max_output_bytes: int):
        self.max_output_bytes = max_output_bytes

    async def run(
        self,
        command: list[str],
        working_dir: Path,
        timeout: float,
        env: Mapping[str, str] | None = None,
    ) -> ProcessExecutionResult:
        """
        Executes ``command`` in ``working_dir``.

        Raises:
            ExecutionLaunchError: the executable is missing or could not be spawned.
        """
        runner_log = log.bind(
            command=" ".join(command),
            working_dir=str(working_dir),
            timeout=timeout,
        )
        runner_log.info("Executing command")

        process_env = {**os.environ, **env} if env else None
        started = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                cwd=working_dir,
                env=process_env,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            runner_log.error("Command not found", command_executable=command[0])
            raise ExecutionLaunchError(
                f"Command not found: '{command[0]}'. Is it installed and in the system's PATH?",
                command=command,
            ) from e
        except OSError as e:
            runner_log.error("Failed to start command", error=str(e))
            raise ExecutionLaunchError(f"Failed to start '{command[0]}': {e}", command=command) from e

        budget = _OutputBudget(self.max_output_bytes)
        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []

        async def _drain(stream: asyncio.StreamReader, buf: list[bytes]) -> None:
            while not budget.exhausted.is_set():
                chunk = await stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    return
                buf.append(budget.take(chunk))

        readers = asyncio.gather(
            _drain(process.stdout, stdout_chunks),  # type: ignore[arg-type]
            _drain(process.stderr, stderr_chunks),  # type: ignore[arg-type]
        )
        over_budget = asyncio.create_task(budget.exhausted.wait())

        timed_out = False
        truncated = False
        try:
            done, _ = await asyncio.wait(
                {readers, over_budget},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            # Both may be done at once when the last chunk overflows the limit.
            if budget.exhausted.is_set():
                truncated = True
                runner_log.warning("Output limit reached, killing process", max_output_bytes=self.max_output_bytes)
            elif readers not in done:
                timed_out = True
                runner_log.warning("Command timed out, killing process")
            elif process.returncode is None:
                # Both streams closed; the process may still be running.
                remaining = max(0.0, timeout - (time.monotonic() - started))
                try:
                    await asyncio.wait_for(process.wait(), timeout=remaining)
                except TimeoutError:
                    timed_out = True
                    runner_log.warning("Command outlived its output streams, killing process")

            if timed_out or truncated:
                _kill_process_tree(process)
                readers.cancel()
            await process.wait()
        finally:
            _kill_process_tree(process)
            over_budget.cancel()
            if not readers.done():
                readers.cancel()
            try:
                await readers
            except asyncio.CancelledError:
                pass

        duration_ms = int((time.monotonic() - started) * 1000)
        exit_code = None if (timed_out or truncated) else process.returncode
        stdout = b"".join(stdout_chunks).decode("utf-8", errors="replace")
        stderr = b"".join(stderr_chunks).decode("utf-8", errors="replace")

        runner_log.info(
            "Command finished",
            exit_code=exit_code,
            duration_ms=duration_ms,
            timed_out=timed_out,
            truncated=truncated,
        )
        runner_log.debug("Command output", stdout_len=len(stdout), stderr_len=len(stderr))

        return ProcessExecutionResult(
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            duration_ms=duration_ms,
            timed_out=timed_out,
            truncated=truncated,
        )

# 🧪⚙️
