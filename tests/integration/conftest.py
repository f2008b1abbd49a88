"""Fixtures for integration tests."""

import subprocess
from pathlib import Path

import pytest

from policy_audit.testing.profiles import CommitFn, CreateProfileFn, os_control, write_profile


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create an initialized git repository."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "--initial-branch", "main")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test")
    return repo


@pytest.fixture
def git_commit(git_repo: Path) -> CommitFn:
    """Return a function to create (optionally tagged) commits in the test repo."""

    def _commit(message: str, *, tag: str | None = None) -> str:
        git(git_repo, "add", "-A")
        git(git_repo, "commit", "--allow-empty", "-m", message)
        if tag:
            git(git_repo, "tag", tag)
        return git(git_repo, "rev-parse", "HEAD")

    return _commit


@pytest.fixture
def create_profile(git_repo: Path) -> CreateProfileFn:
    """Return a function writing a profile at the repository root."""

    def _create(version: str) -> Path:
        return write_profile(
            git_repo.parent,
            git_repo.name,
            version=version,
            controls=[os_control("ssh-01")],
        )

    return _create
