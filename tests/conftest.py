import subprocess
from pathlib import Path

import pytest

from suiterun.config import OrchestratorConfig, TimeoutConfig
from suiterun.testing import ExecutionRequest, ProjectRef


def _git(*args: str, cwd: Path) -> str:
    result = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)
    return result.stdout.strip()


@pytest.fixture
def git_available() -> None:
    try:
        subprocess.run(["git", "--version"], check=True, capture_output=True, text=True)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        pytest.skip(f"Git is not available or `git --version` failed: {e}")


@pytest.fixture
def remote_repo(tmp_path: Path, git_available: None) -> tuple[Path, Path]:
    """
    A bare repository acting as the remote, plus a working clone used to push
    new commits to it. Returns (bare_path, work_path).
    """
    bare_path = tmp_path / "remote.git"
    work_path = tmp_path / "upstream_work"
    work_path.mkdir()

    _git("init", "--bare", str(bare_path), cwd=tmp_path)
    _git("symbolic-ref", "HEAD", "refs/heads/main", cwd=bare_path)

    _git("init", cwd=work_path)
    _git("symbolic-ref", "HEAD", "refs/heads/main", cwd=work_path)
    _git("config", "user.name", "Test User", cwd=work_path)
    _git("config", "user.email", "test@example.com", cwd=work_path)
    (work_path / "README.md").write_text("initial commit")
    _git("add", "README.md", cwd=work_path)
    _git("commit", "-m", "Initial commit", cwd=work_path)
    _git("remote", "add", "origin", str(bare_path), cwd=work_path)
    _git("push", "origin", "main", cwd=work_path)
    return bare_path, work_path


@pytest.fixture
def push_commit():
    """Returns a helper that commits a file in a work tree and pushes it."""

    def _push(work_path: Path, filename: str, content: str, branch: str = "main") -> str:
        (work_path / filename).write_text(content)
        _git("add", filename, cwd=work_path)
        _git("commit", "-m", f"Add {filename}", cwd=work_path)
        _git("push", "origin", branch, cwd=work_path)
        return _git("rev-parse", "HEAD", cwd=work_path)

    return _push


@pytest.fixture
def orchestrator_config(tmp_path: Path) -> OrchestratorConfig:
    return OrchestratorConfig(
        sandbox_root=tmp_path / "sandboxes",
        reports_root=tmp_path / "reports",
        state_file=tmp_path / "runs.json",
        timeouts=TimeoutConfig(clone=30, fetch=30, install=30, browser_install=30, execution=30),
    )


@pytest.fixture
def project() -> ProjectRef:
    return ProjectRef(
        project_id="proj-1",
        name="My Cool Project!!",
        repo_url="https://example.com/acme/cool.git",
        branch="main",
    )


@pytest.fixture
def execution_request(project: ProjectRef) -> ExecutionRequest:
    return ExecutionRequest(project=project, browser="chromium", workers=2)
