#
# src/suiterun/exceptions.py
#
"""
Base exception hierarchy for suiterun.
"""


class SuiterunError(Exception):
    """Base class for all suiterun errors."""

    pass


class ConfigurationError(SuiterunError):
    """Raised when configuration is missing, malformed, or fails validation."""

    pass


class ExecutionLaunchError(SuiterunError):
    """Raised when the test runner process could not be started at all."""

    def __init__(self, message: str, command: list[str] | None = None):
        self.command = command
        super().__init__(message)


class RunStateError(SuiterunError):
    """Raised on an illegal test run lifecycle transition."""

    pass


class RunNotFoundError(SuiterunError):
    """Raised when a run id is unknown to the record store."""

    pass


class StoreWriteError(SuiterunError):
    """Raised when a run record could not be persisted."""

    def __init__(self, message: str, run_id: str | None = None):
        self.run_id = run_id
        full_message = message if run_id is None else f"{message} (Run: '{run_id}')"
        super().__init__(full_message)


# 🧪⚙️
