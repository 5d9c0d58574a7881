"""Tests for the git service and the line diff."""

import base64
import logging
import subprocess
from unittest.mock import patch

import pytest

from conftest import git
from webcode.git import CloneProgress, GitCredentials, GitService, _parse_log, diff_lines


class TestDiffLines:
    def test_identical_texts(self):
        result = diff_lines("a\nb\n", "a\nb\n")

        assert [line.type for line in result.lines] == ["unchanged", "unchanged"]
        assert (result.added_lines, result.deleted_lines) == (0, 0)

    def test_modified_line_counts_both_ways(self):
        result = diff_lines("a\nb\nc", "a\nB\nc")

        assert [line.type for line in result.lines] == ["unchanged", "modified", "unchanged"]
        modified = result.lines[1]
        assert modified.content == "B"
        assert modified.old_content == "b"
        assert (modified.old_line_number, modified.new_line_number) == (2, 2)
        assert (result.added_lines, result.deleted_lines) == (1, 1)

    def test_pure_insertion(self):
        result = diff_lines("a\nc", "a\nb\nc")

        assert [line.type for line in result.lines] == ["unchanged", "added", "unchanged"]
        added = result.lines[1]
        assert (added.old_line_number, added.new_line_number) == (None, 2)
        assert (result.lines[2].old_line_number, result.lines[2].new_line_number) == (2, 3)
        assert (result.added_lines, result.deleted_lines) == (1, 0)

    def test_pure_deletion(self):
        result = diff_lines("a\nb\nc", "a\nc")

        assert [line.type for line in result.lines] == ["unchanged", "deleted", "unchanged"]
        assert result.lines[1].old_line_number == 2
        assert result.lines[1].new_line_number is None
        assert (result.added_lines, result.deleted_lines) == (0, 1)

    def test_uneven_replacement(self):
        result = diff_lines("x\ny", "z")

        assert [(line.type, line.content) for line in result.lines] == [("modified", "z"), ("deleted", "y")]
        assert (result.added_lines, result.deleted_lines) == (1, 2)

    def test_from_empty(self):
        result = diff_lines("", "one\ntwo\n")

        assert [line.type for line in result.lines] == ["added", "added"]
        assert [line.new_line_number for line in result.lines] == [1, 2]
        assert result.old_content == ""


def test_parse_log_fields():
    line = "\x1f".join(
        ["a" * 40, "Ada", "ada@example.com", "2024-05-01T12:00:00+00:00", "Subject line", "b" * 40 + " " + "c" * 40]
    )
    (commit,) = _parse_log(line + "\n")

    assert commit.short_hash == "a" * 7
    assert commit.author == "Ada"
    assert commit.message == "Subject line"
    assert commit.commit_date.year == 2024
    assert commit.parent_hashes == ["b" * 40, "c" * 40]


class TestEnvironment:
    def test_https_token_becomes_basic_header(self):
        env = GitService()._env(GitCredentials("https", https_token="secret"))

        expected = base64.b64encode(b"git:secret").decode("ascii")
        assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
        assert env["GIT_CONFIG_VALUE_0"] == f"Authorization: Basic {expected}"
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_https_username_is_used(self):
        env = GitService()._env(GitCredentials("https", https_username="me", https_token="t"))

        expected = base64.b64encode(b"me:t").decode("ascii")
        assert env["GIT_CONFIG_VALUE_0"].endswith(expected)

    def test_ssh_without_agent_warns(self, monkeypatch, caplog):
        monkeypatch.delenv("SSH_AUTH_SOCK", raising=False)
        with caplog.at_level(logging.WARNING, logger="webcode.git"):
            env = GitService()._env(GitCredentials("ssh", ssh_private_key="KEY"))

        assert "ssh-agent" in caplog.text
        assert "GIT_CONFIG_COUNT" not in env


class TestRepositoryInspection:
    def test_is_repository(self, git_repo, tmp_path):
        repo, _ = git_repo
        service = GitService()

        assert service.is_repository(repo)
        assert not service.is_repository(tmp_path / "missing")
        assert not service.is_repository("")

    def test_current_branch(self, git_repo):
        repo, _ = git_repo
        assert GitService().current_branch(repo) == "main"

    @pytest.mark.asyncio
    async def test_file_history_newest_first(self, git_repo):
        repo, (first, second) = git_repo
        commits = await GitService().file_history_async(str(repo), "hello.txt")

        assert [c.hash for c in commits] == [second, first]
        assert commits[0].message == "Rename second line"
        assert commits[0].parent_hashes == [first]
        assert commits[1].parent_hashes == []
        assert commits[0].author_email == "test@example.com"

    @pytest.mark.asyncio
    async def test_all_commits_respects_max_count(self, git_repo):
        repo, (_, second) = git_repo
        commits = await GitService().all_commits_async(str(repo), 1)

        assert [c.hash for c in commits] == [second]

    def test_file_content_at_commit(self, git_repo):
        repo, (first, _) = git_repo
        service = GitService()

        assert service.file_content_at_commit(str(repo), "hello.txt", first) == "line1\nline2\nline3\n"
        assert service.file_content_at_commit(str(repo), "/hello.txt", first) == "line1\nline2\nline3\n"
        assert service.file_content_at_commit(str(repo), "missing.txt", first) == ""

    @pytest.mark.asyncio
    async def test_file_diff_between_commits(self, git_repo):
        repo, (first, second) = git_repo
        result = await GitService().file_diff_async(str(repo), "hello.txt", first, second)

        assert [line.type for line in result.lines] == ["unchanged", "modified", "unchanged", "added"]
        assert (result.added_lines, result.deleted_lines) == (2, 1)

    def test_workspace_status(self, git_repo):
        repo, _ = git_repo
        (repo / "hello.txt").write_text("changed\n", encoding="utf-8")
        (repo / "notes.txt").write_text("new\n", encoding="utf-8")
        (repo / "staged.txt").write_text("staged\n", encoding="utf-8")
        git(repo, "add", "staged.txt")

        status = GitService().workspace_status(str(repo))

        assert status.modified_files == ["hello.txt"]
        assert sorted(status.untracked_files) == ["notes.txt", "staged.txt"]
        assert status.staged_files == ["staged.txt"]
        assert status.deleted_files == []

    def test_non_repository_yields_empty_results(self, tmp_path):
        service = GitService()

        assert service.all_commits(str(tmp_path)) == []
        assert service.workspace_status(str(tmp_path)).modified_files == []
        assert service.file_diff(str(tmp_path), "a.txt", "HEAD~1", "HEAD").lines == []


class TestRemoteOperations:
    @pytest.mark.asyncio
    async def test_clone_replaces_existing_directory(self, git_repo, tmp_path):
        repo, _ = git_repo
        target = tmp_path / "clones" / "demo"
        target.mkdir(parents=True)
        (target / "stale.txt").write_text("old", encoding="utf-8")
        reports = []

        ok, error = await GitService().clone_async(str(repo), str(target), "main", None, reports.append)

        assert ok, error
        assert error is None
        assert not (target / "stale.txt").exists()
        assert (target / "hello.txt").read_text(encoding="utf-8") == "line1\nline two\nline3\nline4\n"
        assert all(isinstance(r, CloneProgress) for r in reports)

    @pytest.mark.asyncio
    async def test_clone_failure_cleans_up(self, git_repo, tmp_path):
        target = tmp_path / "clones" / "broken"

        ok, error = await GitService().clone_async(str(tmp_path / "nowhere"), str(target))

        assert not ok
        assert error.startswith("Git operation failed")
        assert not target.exists()

    @pytest.mark.asyncio
    async def test_clone_progress_error_stops_git_and_cleans_up(self, git_repo, tmp_path):
        repo, _ = git_repo
        target = tmp_path / "clones" / "demo"
        popen = []
        real_popen = subprocess.Popen

        def track(*args, **kwargs):
            popen.append(real_popen(*args, **kwargs))
            return popen[-1]

        with patch("webcode.git.subprocess.Popen", side_effect=track), patch.object(
            GitService, "_pump_progress", side_effect=RuntimeError("progress listener went away")
        ):
            ok, error = await GitService().clone_async(str(repo), str(target))

        assert not ok
        assert error == "Clone failed: progress listener went away"
        assert not target.exists()
        assert popen[0].poll() is not None

    @pytest.mark.asyncio
    async def test_pull_fetches_new_commits(self, git_repo, tmp_path):
        repo, _ = git_repo
        target = tmp_path / "clone"
        service = GitService()
        ok, _ = await service.clone_async(str(repo), str(target))
        assert ok

        (repo / "extra.txt").write_text("more\n", encoding="utf-8")
        git(repo, "add", "extra.txt")
        git(repo, "commit", "-q", "-m", "Add extra")

        ok, error = await service.pull_async(str(target))
        assert ok, error
        assert (target / "extra.txt").exists()

    @pytest.mark.asyncio
    async def test_pull_outside_repository(self, tmp_path):
        ok, error = await GitService().pull_async(str(tmp_path))

        assert not ok
        assert "Not a git repository" in error

    @pytest.mark.asyncio
    async def test_list_remote_branches(self, git_repo):
        repo, _ = git_repo
        git(repo, "branch", "feature")

        branches, error = await GitService().list_remote_branches_async(str(repo))

        assert error is None
        assert sorted(branches) == ["feature", "main"]

    @pytest.mark.asyncio
    async def test_list_remote_branches_failure(self, tmp_path):
        branches, error = await GitService().list_remote_branches_async(str(tmp_path / "nowhere"))

        assert branches == []
        assert error.startswith("Failed to list branches")
