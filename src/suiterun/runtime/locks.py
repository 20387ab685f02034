# src/suiterun/runtime/locks.py

"""
Per-sandbox mutual exclusion for the run pipeline.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog

from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.locks")


class SandboxLockTable:
    """
    One asyncio.Lock per resolved sandbox path. A run holds its sandbox's
    lock from acquisition until its record is finalized.

    The table lives in one process. Separate `suiterun run` processes on the
    same project are not serialized against each other; only their shared
    run store is.
    """

    def __init__(self) -> None:
        self._locks: dict[Path, asyncio.Lock] = {}

    def _key(self, sandbox_path: Path) -> Path:
        return sandbox_path.expanduser().resolve()

    def lock_for(self, sandbox_path: Path) -> asyncio.Lock:
        key = self._key(sandbox_path)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def is_locked(self, sandbox_path: Path) -> bool:
        lock = self._locks.get(self._key(sandbox_path))
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def hold(self, sandbox_path: Path) -> AsyncIterator[None]:
        lock = self.lock_for(sandbox_path)
        if lock.locked():
            log.info("Sandbox busy, waiting for the previous run to finish", sandbox=str(sandbox_path))
        async with lock:
            log.debug("Sandbox lock acquired", sandbox=str(sandbox_path))
            yield
        log.debug("Sandbox lock released", sandbox=str(sandbox_path))

# 🧪⚙️
