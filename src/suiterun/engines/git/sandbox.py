# src/suiterun/engines/git/sandbox.py

"""
Sandbox naming and the RepositorySandbox model.
"""

import re
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from attrs import define

from suiterun.engines.git.exceptions import InvalidProjectIdentityError

_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_-]")
_HYPHEN_RUN_RE = re.compile(r"-{2,}")


def slugify(project_identity: str) -> str:
    """
    Derives the filesystem-safe sandbox directory name for a project.

    >>> slugify("My Cool Project!!")
    'my-cool-project'
    >>> slugify("  a---b  ")
    'a-b'
    """
    slug = _WHITESPACE_RE.sub("-", project_identity.strip())
    slug = _UNSAFE_RE.sub("", slug)
    slug = _HYPHEN_RUN_RE.sub("-", slug).strip("-")
    slug = slug.lower()
    if not slug:
        raise InvalidProjectIdentityError(
            f"Project identity {project_identity!r} does not contain any usable characters."
        )
    return slug


def redact_url(url: str) -> str:
    """Hides any credentials embedded in a remote URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.password and not (parts.username and parts.scheme in ("http", "https")):
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, parts.query, parts.fragment))


@define(frozen=True, slots=True)
class RepositorySandbox:
    """A local working copy bound to one project."""
    root: Path
    slug: str
    remote_url: str
    branch: str

    @property
    def exists(self) -> bool:
        return self.root.is_dir()

# 🧪⚙️
