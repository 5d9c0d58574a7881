"""Shared test fixtures for webcode."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from webcode.db import Database
from webcode.history import SessionHistoryManager
from webcode.server import create_app
from webcode.stores import create_stores

GIT_ENV = {
    **os.environ,
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", *args], cwd=str(cwd), env=GIT_ENV, capture_output=True, text=True, check=True
    )
    return proc.stdout.strip()


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "webcode.db")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def stores(db):
    return create_stores(db)


@pytest.fixture
def manager(stores):
    """A history manager with a short debounce window."""
    mgr = SessionHistoryManager(stores.sessions, save_delay=0.05)
    yield mgr
    mgr.shutdown(timeout=2)


@pytest.fixture
def app(tmp_path):
    application = create_app(
        db_path=tmp_path / "api.db",
        projects_path=tmp_path / "projects",
        save_delay=0.05,
    )
    yield application
    application.state.container.close(timeout=2)


@pytest.fixture
def git_repo(tmp_path):
    """A repository on branch main with two commits touching hello.txt.

    Returns (path, [first_sha, second_sha]).
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "origin"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")

    (repo / "hello.txt").write_text("line1\nline2\nline3\n", encoding="utf-8")
    git(repo, "add", "hello.txt")
    git(repo, "commit", "-q", "-m", "Initial commit")
    first = git(repo, "rev-parse", "HEAD")

    (repo / "hello.txt").write_text("line1\nline two\nline3\nline4\n", encoding="utf-8")
    git(repo, "commit", "-q", "-am", "Rename second line")
    second = git(repo, "rev-parse", "HEAD")

    return repo, [first, second]
