"""Tests for the git introspection helper."""
from __future__ import annotations

from pathlib import Path
from typing import Generator

import pygit2
import pytest

from engine.git_ops import RepositoryIntrospector, normalize_remote_url


@pytest.fixture
def temp_git_repo(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary Git repository for testing.

    Args:
        tmp_path: Pytest temporary directory fixture

    Yields:
        Path to the temporary repository, checked out on ``feature-x``
    """
    repo_path = tmp_path / "unity-mcp"
    repo_path.mkdir()

    # Initialize repository
    repo = pygit2.init_repository(str(repo_path))

    # Create initial commit
    test_file = repo_path / "README.md"
    test_file.write_text("unity-mcp")
    index = repo.index
    index.add("README.md")
    index.write()
    tree_id = index.write_tree()
    author = pygit2.Signature("Test User", "test@example.com")
    commit_id = repo.create_commit("HEAD", author, author, "Initial commit", tree_id, [])

    # Work on a feature branch
    branch = repo.branches.local.create("feature-x", repo.get(commit_id))
    repo.checkout(branch)

    # Add remote
    repo.remotes.create("origin", "git@github.com:Owner/Repo.git")

    yield repo_path


@pytest.mark.parametrize(
    ("remote", "expected"),
    [
        ("git@github.com:Owner/Repo.git", "https://github.com/Owner/Repo.git"),
        ("git@github.com:Owner/Repo", "https://github.com/Owner/Repo.git"),
        ("ssh://git@github.com/Owner/Repo.git", "https://github.com/Owner/Repo.git"),
        ("ssh://git@gitlab.example.com:2222/group/Repo", "https://gitlab.example.com/group/Repo.git"),
        ("https://github.com/Owner/Repo.git", "https://github.com/Owner/Repo.git"),
        ("https://github.com/Owner/Repo", "https://github.com/Owner/Repo"),
        ("C:/src/unity-mcp", "C:/src/unity-mcp"),
        ("D:\\src\\unity-mcp.git", "D:\\src\\unity-mcp.git"),
        ("/srv/git/unity-mcp.git", "/srv/git/unity-mcp.git"),
    ],
)
def test_normalize_remote_url(remote: str, expected: str) -> None:
    """Test SSH remotes are rewritten and HTTPS remotes pass through."""
    assert normalize_remote_url(remote) == expected


def test_introspect_feature_branch(temp_git_repo: Path) -> None:
    """Test root, branch and remote are all resolved."""
    subdir = temp_git_repo / "MCPForUnity"
    subdir.mkdir()

    context = RepositoryIntrospector(subdir).introspect()

    assert context.root == temp_git_repo.resolve()
    assert context.branch == "feature-x"
    assert context.remote_url == "https://github.com/Owner/Repo.git"
    assert context.errors == {}


def test_introspect_detached_head(temp_git_repo: Path) -> None:
    """Test a detached HEAD only fails the branch field."""
    repo = pygit2.Repository(str(temp_git_repo))
    repo.set_head(repo.head.target)

    context = RepositoryIntrospector(temp_git_repo).introspect()

    assert context.branch is None
    assert "detached" in context.errors["branch"]
    assert context.root == temp_git_repo.resolve()
    assert context.remote_url == "https://github.com/Owner/Repo.git"


def test_introspect_without_origin(temp_git_repo: Path) -> None:
    """Test a missing origin only fails the remote field."""
    repo = pygit2.Repository(str(temp_git_repo))
    repo.remotes.delete("origin")

    context = RepositoryIntrospector(temp_git_repo).introspect()

    assert context.remote_url is None
    assert "origin" in context.errors["remote"]
    assert context.branch == "feature-x"


def test_introspect_unborn_branch(tmp_path: Path) -> None:
    """Test a repository without commits still reports its branch."""
    repo_path = tmp_path / "fresh"
    pygit2.init_repository(str(repo_path), initial_head="develop")

    context = RepositoryIntrospector(repo_path).introspect()

    assert context.branch == "develop"
    assert context.root == repo_path.resolve()


def test_introspect_not_a_repository(tmp_path: Path) -> None:
    """Test every field fails outside a repository."""
    plain_dir = tmp_path / "plain"
    plain_dir.mkdir()

    context = RepositoryIntrospector(plain_dir, ceiling_dirs=tmp_path).introspect()

    assert context.root is None
    assert context.branch is None
    assert context.remote_url is None
    assert set(context.errors) == {"root", "branch", "remote"}
    assert "not inside a git repository" in context.errors["root"]
