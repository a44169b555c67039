"""Read-only git introspection of the package repository."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Optional

import pygit2

from models.repository import RepositoryContext

logger = logging.getLogger(__name__)

# Single-letter hosts are Windows drive letters, not scp-style remotes
_SCP_REMOTE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]{2,}):(?!//)(?P<path>.+)$")
_SSH_REMOTE = re.compile(r"^ssh://(?:[\w.-]+@)?(?P<host>[\w.-]+)(?::\d+)?/(?P<path>.+)$")


def normalize_remote_url(url: str) -> str:
    """Convert an SSH-style remote URL to its HTTPS form.

    ``git@github.com:Owner/Repo.git`` and ``ssh://git@github.com/Owner/Repo``
    both become ``https://github.com/Owner/Repo.git``. Anything else is
    returned unchanged.

    Args:
        url: Remote URL as configured in git

    Returns:
        The HTTPS URL, or the input when it is not SSH-style
    """
    url = url.strip()
    if "://" in url and not url.startswith("ssh://"):
        return url

    match = _SSH_REMOTE.match(url) or _SCP_REMOTE.match(url)
    if not match:
        return url

    path = match.group("path").strip("/")
    if not path.endswith(".git"):
        path += ".git"
    return f"https://{match.group('host')}/{path}"


class RepositoryIntrospector:
    """Derives the repository root, branch and origin URL using pygit2."""

    def __init__(self, cwd: str | Path, ceiling_dirs: Optional[str | Path] = None) -> None:
        """Initialize the introspector.

        Args:
            cwd: Directory the switch was invoked from
            ceiling_dirs: Optional directory above which repository discovery stops
        """
        self.cwd = Path(cwd)
        self.ceiling_dirs = str(ceiling_dirs) if ceiling_dirs else None

    def open_repository(self) -> pygit2.Repository:
        """Open the repository containing the working directory.

        Raises:
            ValueError: If the directory is not inside a git repository
        """
        if self.ceiling_dirs:
            git_dir = pygit2.discover_repository(str(self.cwd), False, self.ceiling_dirs)
        else:
            git_dir = pygit2.discover_repository(str(self.cwd))
        if not git_dir:
            raise ValueError(f"{self.cwd} is not inside a git repository")

        try:
            return pygit2.Repository(git_dir)
        except pygit2.GitError as e:
            raise ValueError(f"Failed to open repository: {e}") from e

    @staticmethod
    def current_branch(repo: pygit2.Repository) -> str:
        """Return the branch HEAD points at.

        Raises:
            ValueError: If HEAD is detached
        """
        if repo.head_is_detached:
            raise ValueError("detached HEAD has no branch name")

        if repo.head_is_unborn:
            # No commits yet, HEAD still names the branch it will create
            target = repo.lookup_reference("HEAD").target
            return str(target).removeprefix("refs/heads/")

        return repo.head.shorthand

    @staticmethod
    def origin_url(repo: pygit2.Repository) -> str:
        """Return the origin remote URL in HTTPS form.

        Raises:
            ValueError: If no origin remote is configured
        """
        try:
            remote = repo.remotes["origin"]
        except (KeyError, ValueError) as e:
            raise ValueError("no remote named 'origin' configured") from e

        if not remote.url:
            raise ValueError("remote 'origin' has no URL")
        return normalize_remote_url(remote.url)

    def introspect(self) -> RepositoryContext:
        """Resolve every field, recording failures instead of raising.

        Returns:
            A RepositoryContext where unresolved fields are None and
            ``errors`` says why
        """
        errors: Dict[str, str] = {}

        try:
            repo = self.open_repository()
        except ValueError as e:
            logger.warning(f"Repository introspection failed: {e}")
            not_a_repo = str(e)
            return RepositoryContext(
                errors={"root": not_a_repo, "branch": not_a_repo, "remote": not_a_repo}
            )

        root: Optional[Path] = None
        if repo.workdir:
            root = Path(repo.workdir).resolve()
        else:
            errors["root"] = "repository has no working tree"

        branch: Optional[str] = None
        try:
            branch = self.current_branch(repo)
        except (ValueError, pygit2.GitError) as e:
            errors["branch"] = str(e)

        remote_url: Optional[str] = None
        try:
            remote_url = self.origin_url(repo)
        except ValueError as e:
            errors["remote"] = str(e)

        logger.info(
            "Introspected repository",
            extra={"root": str(root), "branch": branch, "remote_url": remote_url},
        )
        for step, error_msg in errors.items():
            logger.warning(f"Could not resolve {step}: {error_msg}")

        return RepositoryContext(
            root=root, branch=branch, remote_url=remote_url, errors=errors
        )
