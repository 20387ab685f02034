# src/suiterun/engines/git/exceptions.py

"""
Typed acquisition errors raised when a working copy cannot be obtained.
"""

from enum import Enum

from suiterun.exceptions import SuiterunError


class AcquisitionErrorKind(Enum):
    """Classification of a failed clone."""

    AUTH_FAILURE = "auth_failure"
    BRANCH_NOT_FOUND = "branch_not_found"
    REPO_NOT_FOUND = "repo_not_found"
    TIMEOUT = "timeout"
    GENERIC = "generic"


class AcquisitionError(SuiterunError):
    """Base class for repository acquisition errors."""

    kind: AcquisitionErrorKind = AcquisitionErrorKind.GENERIC

    def __init__(
        self,
        message: str,
        repo_url: str | None = None,
        details: Exception | None = None,
    ):
        self.message = message
        self.repo_url = repo_url
        self.details = details
        full_message = f"[Acquire] {message}"
        if repo_url:
            full_message += f" (Repo: '{repo_url}')"
        super().__init__(full_message)
        if details is not None:
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class AuthFailureError(AcquisitionError):
    """The remote rejected our credentials or none were available."""

    kind = AcquisitionErrorKind.AUTH_FAILURE


class BranchNotFoundError(AcquisitionError):
    """The requested branch does not exist on the remote."""

    kind = AcquisitionErrorKind.BRANCH_NOT_FOUND


class RepoNotFoundError(AcquisitionError):
    """The remote repository does not exist or is not accessible."""

    kind = AcquisitionErrorKind.REPO_NOT_FOUND


class AcquisitionTimeoutError(AcquisitionError):
    """Cloning did not finish within the configured time budget."""

    kind = AcquisitionErrorKind.TIMEOUT


class GenericAcquisitionError(AcquisitionError):
    """Any clone failure that could not be classified more precisely."""

    pass


class InvalidProjectIdentityError(AcquisitionError):
    """The project identity produces an empty sandbox name."""

    pass


# 🧪⚙️
