# src/suiterun/runtime/notifier.py

"""
Provides a bridge for emitting terminal run events to an external channel.
"""

import inspect
from collections.abc import Awaitable, Callable

import structlog

from suiterun.protocols import RunEvent
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.notifier")

RunEventCallback = Callable[[RunEvent], Awaitable[None] | None]


class RunNotifier:
    """
    Delivers ``RunEvent``s to an optional callback. Delivery failures are
    logged and never affect the run itself, which is already persisted.
    """

    def __init__(self, callback: RunEventCallback | None = None):
        self.callback = callback
        self.is_active = callback is not None
        if self.is_active:
            log.debug("Run notifier initialized and active.")

    async def notify(self, event: RunEvent) -> None:
        if not self.is_active or self.callback is None:
            return

        try:
            outcome = self.callback(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            log.warning(
                "Failed to deliver run event",
                run_id=event.run_id,
                status=event.status.name,
                error=str(e),
            )

# 🧪⚙️
