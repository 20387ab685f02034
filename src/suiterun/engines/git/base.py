# src/suiterun/engines/git/base.py

"""
Implementation of the RepositoryAcquirer protocol using pygit2.
"""

import asyncio
import getpass  # For SSH agent username fallback
import os
import shutil
import time
from pathlib import Path

import pygit2
import structlog
from pygit2.enums import CredentialType, MergeAnalysis

from suiterun.config.models import TimeoutConfig
from suiterun.engines.git.exceptions import (
    AcquisitionError,
    AcquisitionErrorKind,
    AcquisitionTimeoutError,
    AuthFailureError,
    BranchNotFoundError,
    GenericAcquisitionError,
    RepoNotFoundError,
)
from suiterun.engines.git.sandbox import RepositorySandbox, redact_url, slugify
from suiterun.protocols import RepositoryAcquirer

log = structlog.get_logger("engines.git.base")

REMOTE_NAME = "origin"
USERNAME_ENV_VAR = "SUITERUN_GIT_USERNAME"
TOKEN_ENV_VAR = "SUITERUN_GIT_TOKEN"
# Extra seconds granted to the worker thread beyond the transfer deadline.
THREAD_GRACE_SECONDS = 5.0

# --- Clone error classification, checked in order ---
AUTH_FAILURE_PATTERNS = (
    "authentication",
    "permission denied (publickey",
    "credentials",
    "status code: 401",
    "status code: 403",
)
REPO_NOT_FOUND_PATTERNS = (
    "repository not found",
    "could not find repository",
    "could not read",
    "failed to resolve path",
    "status code: 404",
    "does not appear to be a git repository",
    "unsupported url protocol",
)
BRANCH_NOT_FOUND_PATTERNS = (
    "couldn't find remote ref",
    "not found",
    "does not exist",
    "no such reference",
)
TIMEOUT_PATTERNS = (
    "timed out",
    "timeout",
)


class _DeadlineExceeded(Exception):
    """Raised from transfer callbacks to abort a clone or fetch past its deadline."""


class _UpdateRejected(Exception):
    """The existing checkout cannot be fast-forwarded to the remote branch."""


def classify_clone_error(error_text: str) -> AcquisitionErrorKind:
    """Maps the text of a failed clone onto an AcquisitionErrorKind."""
    text = error_text.lower()
    if any(p in text for p in AUTH_FAILURE_PATTERNS):
        return AcquisitionErrorKind.AUTH_FAILURE
    if any(p in text for p in REPO_NOT_FOUND_PATTERNS):
        return AcquisitionErrorKind.REPO_NOT_FOUND
    if any(p in text for p in BRANCH_NOT_FOUND_PATTERNS):
        return AcquisitionErrorKind.BRANCH_NOT_FOUND
    if any(p in text for p in TIMEOUT_PATTERNS):
        return AcquisitionErrorKind.TIMEOUT
    return AcquisitionErrorKind.GENERIC


def build_acquisition_error(
    kind: AcquisitionErrorKind,
    remote_url: str,
    branch: str,
    details: Exception | None = None,
) -> AcquisitionError:
    """Creates the typed error, with an actionable message, for ``kind``."""
    safe_url = redact_url(remote_url)
    if kind is AcquisitionErrorKind.AUTH_FAILURE:
        return AuthFailureError(
            "Authentication failed. Include a personal access token in the repository URL "
            f"or set {USERNAME_ENV_VAR}/{TOKEN_ENV_VAR}, then retry.",
            safe_url,
            details,
        )
    if kind is AcquisitionErrorKind.BRANCH_NOT_FOUND:
        return BranchNotFoundError(
            f"Branch '{branch}' not found. Verify the branch name exists in the repository.",
            safe_url,
            details,
        )
    if kind is AcquisitionErrorKind.REPO_NOT_FOUND:
        return RepoNotFoundError(
            "Repository not found. Check the repository URL and that you have access to it.",
            safe_url,
            details,
        )
    if kind is AcquisitionErrorKind.TIMEOUT:
        return AcquisitionTimeoutError(
            "Repository cloning timed out. The repository may be too large or the network too slow.",
            safe_url,
            details,
        )
    return GenericAcquisitionError(f"Failed to clone repository: {details}", safe_url, details)


class _AcquisitionCallbacks(pygit2.RemoteCallbacks):
    """Remote callbacks enforcing a transfer deadline and supplying credentials."""

    def __init__(self, deadline: float, bound_log):
        super().__init__()
        self._deadline = deadline
        self._log = bound_log
        self._tried: set[CredentialType] = set()

    def _check_deadline(self) -> None:
        if time.monotonic() > self._deadline:
            raise _DeadlineExceeded("transfer deadline exceeded")

    def transfer_progress(self, stats) -> None:
        self._check_deadline()

    def sideband_progress(self, string: str) -> None:
        self._check_deadline()

    def credentials(self, url: str, username_from_url: str | None, allowed_types: CredentialType):
        """Provides credentials to pygit2, attempting SSH agent first."""
        cred_log = self._log.bind(username_from_url=username_from_url, allowed_types=int(allowed_types))
        cred_log.debug("Credentials callback invoked")

        # 1. SSH agent, once.
        if allowed_types & CredentialType.SSH_KEY and CredentialType.SSH_KEY not in self._tried:
            self._tried.add(CredentialType.SSH_KEY)
            ssh_user = username_from_url or getpass.getuser()
            cred_log.debug("Attempting SSH agent authentication", ssh_user=ssh_user)
            return pygit2.KeypairFromAgent(ssh_user)

        # 2. HTTPS token from the environment, once.
        if (
            allowed_types & CredentialType.USERPASS_PLAINTEXT
            and CredentialType.USERPASS_PLAINTEXT not in self._tried
        ):
            self._tried.add(CredentialType.USERPASS_PLAINTEXT)
            token = os.environ.get(TOKEN_ENV_VAR)
            if token:
                git_user = os.environ.get(USERNAME_ENV_VAR) or username_from_url or "git"
                cred_log.info("Using token credentials from environment variables.")
                return pygit2.UserPass(git_user, token)

        cred_log.warning("No suitable credentials found or configured via callbacks.")
        raise pygit2.Passthrough


class GitEngine(RepositoryAcquirer):
    """Implements RepositoryAcquirer using pygit2."""

    def __init__(self, sandbox_root: Path, timeouts: TimeoutConfig | None = None) -> None:
        self.sandbox_root = sandbox_root
        self.timeouts = timeouts or TimeoutConfig()
        self._log = log.bind(engine_id=id(self), sandbox_root=str(sandbox_root))
        self._log.debug("GitEngine initialized")

    def sandbox_for(self, project_identity: str, remote_url: str, branch: str) -> RepositorySandbox:
        slug = slugify(project_identity)
        return RepositorySandbox(
            root=self.sandbox_root / slug,
            slug=slug,
            remote_url=remote_url,
            branch=branch,
        )

    def list_sandboxes(self) -> list[str]:
        """Returns the slugs of every sandbox currently on disk."""
        if not self.sandbox_root.is_dir():
            return []
        return sorted(entry.name for entry in self.sandbox_root.iterdir() if entry.is_dir())

    async def acquire(self, remote_url: str, project_identity: str, branch: str = "main") -> Path:
        """
        Clones ``branch`` of ``remote_url`` into the project's sandbox, or
        fast-forwards the existing sandbox.

        Raises:
            AcquisitionError: the initial clone failed (a failed update of an
                existing sandbox is only logged).
        """
        if not remote_url or not remote_url.strip():
            raise RepoNotFoundError("Repository URL is required.")

        sandbox = self.sandbox_for(project_identity, remote_url.strip(), branch)
        acquire_log = self._log.bind(sandbox=sandbox.slug, repo_url=redact_url(sandbox.remote_url), branch=branch)

        if sandbox.exists:
            acquire_log.info("Sandbox exists, updating")
            await self._update(sandbox, acquire_log)
        else:
            acquire_log.info("Cloning repository")
            await self._clone(sandbox, acquire_log)
        return sandbox.root

    async def _clone(self, sandbox: RepositorySandbox, clone_log) -> None:
        budget = self.timeouts.clone
        deadline = time.monotonic() + budget
        branch = sandbox.branch

        def _single_branch_remote(repo, name: str, url: str):
            return repo.remotes.create(name, url, f"+refs/heads/{branch}:refs/remotes/{name}/{branch}")

        def _blocking_clone() -> None:
            sandbox.root.parent.mkdir(parents=True, exist_ok=True)
            pygit2.clone_repository(
                sandbox.remote_url,
                str(sandbox.root),
                checkout_branch=branch,
                remote=_single_branch_remote,
                callbacks=_AcquisitionCallbacks(deadline, clone_log),
            )

        worker = asyncio.ensure_future(asyncio.to_thread(_blocking_clone))
        try:
            await asyncio.wait_for(asyncio.shield(worker), timeout=budget + THREAD_GRACE_SECONDS)
        except (TimeoutError, _DeadlineExceeded) as e:
            clone_log.error("Clone timed out", timeout=budget)
            if not worker.done():
                # The thread cannot be cancelled; the deadline callback aborts it.
                clone_log.debug("Waiting for the clone worker to stop")
                await asyncio.gather(worker, return_exceptions=True)
            await asyncio.to_thread(self._discard_partial_clone, sandbox)
            raise build_acquisition_error(AcquisitionErrorKind.TIMEOUT, sandbox.remote_url, branch, e) from e
        except (pygit2.GitError, KeyError, ValueError, OSError) as e:
            kind = classify_clone_error(str(e))
            clone_log.error("Clone failed", error=str(e), classified_as=kind.value)
            await asyncio.to_thread(self._discard_partial_clone, sandbox)
            raise build_acquisition_error(kind, sandbox.remote_url, branch, e) from e

        clone_log.info("Repository cloned")

    def _discard_partial_clone(self, sandbox: RepositorySandbox) -> None:
        """Removes what a failed first clone left behind; it never became a sandbox."""
        if sandbox.root.exists():
            shutil.rmtree(sandbox.root, ignore_errors=True)

    async def _update(self, sandbox: RepositorySandbox, update_log) -> None:
        budget = self.timeouts.fetch
        deadline = time.monotonic() + budget
        branch = sandbox.branch

        def _blocking_update() -> str:
            repo = pygit2.Repository(str(sandbox.root))
            remote = repo.remotes[REMOTE_NAME]
            remote.fetch(
                [f"+refs/heads/{branch}:refs/remotes/{REMOTE_NAME}/{branch}"],
                callbacks=_AcquisitionCallbacks(deadline, update_log),
            )
            target = repo.lookup_reference(f"refs/remotes/{REMOTE_NAME}/{branch}").target
            local_name = f"refs/heads/{branch}"

            if local_name not in repo.references:
                repo.create_branch(branch, repo.get(target))
                repo.checkout(local_name)
                return "branch_created"
            if repo.head_is_unborn or repo.head.name != local_name:
                repo.checkout(local_name)

            analysis, _ = repo.merge_analysis(target)
            if analysis & MergeAnalysis.UP_TO_DATE:
                return "up_to_date"
            if analysis & MergeAnalysis.FASTFORWARD:
                repo.checkout_tree(repo.get(target))
                repo.lookup_reference(local_name).set_target(target)
                return "fast_forwarded"
            raise _UpdateRejected(f"Local branch '{branch}' has diverged from {REMOTE_NAME}; cannot fast-forward.")

        try:
            outcome = await asyncio.wait_for(
                asyncio.to_thread(_blocking_update), timeout=budget + THREAD_GRACE_SECONDS
            )
        except (TimeoutError, _DeadlineExceeded):
            update_log.warning("Update timed out, using existing checkout", timeout=budget)
            return
        except (pygit2.GitError, _UpdateRejected, KeyError, ValueError, OSError) as e:
            update_log.warning("Update failed, using existing checkout", error=str(e))
            return

        update_log.info("Sandbox updated", outcome=outcome)

# 🧪⚙️
