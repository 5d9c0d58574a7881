"""Git mirror and inspection service.

Drives the ``git`` executable through ``subprocess``. Every public
``*_async`` method runs its blocking work with ``asyncio.to_thread``.
Expected failures are reported as ``(success, error_message)`` pairs or
empty results; nothing raised by ``git`` escapes this module.
"""

import asyncio
import base64
import difflib
import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 120
PULL_IDENTITY = ("WebCode", "webcode@local")

_FIELD_SEP = "\x1f"
_LOG_FORMAT = _FIELD_SEP.join(["%H", "%an", "%ae", "%aI", "%s", "%P"])
_PROGRESS_RE = re.compile(r"^(?:remote: )?(?P<stage>[A-Za-z ]+):\s+(?P<pct>\d{1,3})%")


@dataclass
class GitCredentials:
    auth_type: str = "none"  # "none" | "https" | "ssh"
    https_username: Optional[str] = None
    https_token: Optional[str] = None
    ssh_private_key: Optional[str] = None
    ssh_passphrase: Optional[str] = None


@dataclass
class GitCommit:
    hash: str
    short_hash: str
    author: str
    author_email: str
    commit_date: Optional[datetime]
    message: str
    parent_hashes: list[str] = field(default_factory=list)


@dataclass
class DiffLine:
    type: str  # "unchanged" | "added" | "deleted" | "modified"
    content: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None
    old_content: Optional[str] = None


@dataclass
class GitDiffResult:
    old_content: str = ""
    new_content: str = ""
    lines: list[DiffLine] = field(default_factory=list)
    added_lines: int = 0
    deleted_lines: int = 0


@dataclass
class GitStatus:
    modified_files: list[str] = field(default_factory=list)
    untracked_files: list[str] = field(default_factory=list)
    deleted_files: list[str] = field(default_factory=list)
    staged_files: list[str] = field(default_factory=list)


@dataclass
class CloneProgress:
    percentage: int
    stage: str
    details: str = ""


ProgressFn = Callable[[CloneProgress], None]


def diff_lines(old: str, new: str) -> GitDiffResult:
    """Line-level diff of two texts.

    A replaced block is paired line by line into ``modified`` entries; any
    surplus on either side becomes plain deletions or additions. A modified
    line advances both line counters and counts as one addition and one
    deletion.
    """
    result = GitDiffResult(old_content=old, new_content=new)
    a = old.splitlines()
    b = new.splitlines()
    old_no = new_no = 1

    def add(kind: str, content: str, old_line=None, new_line=None, old_content=None):
        result.lines.append(DiffLine(kind, content, old_line, new_line, old_content))

    for tag, i1, i2, j1, j2 in difflib.SequenceMatcher(None, a, b, autojunk=False).get_opcodes():
        if tag == "equal":
            for line in a[i1:i2]:
                add("unchanged", line, old_no, new_no)
                old_no += 1
                new_no += 1
            continue

        paired = min(i2 - i1, j2 - j1) if tag == "replace" else 0
        for k in range(paired):
            add("modified", b[j1 + k], old_no, new_no, a[i1 + k])
            old_no += 1
            new_no += 1
            result.added_lines += 1
            result.deleted_lines += 1
        for line in a[i1 + paired:i2]:
            add("deleted", line, old_line=old_no)
            old_no += 1
            result.deleted_lines += 1
        for line in b[j1 + paired:j2]:
            add("added", line, new_line=new_no)
            new_no += 1
            result.added_lines += 1

    return result


def _parse_log(output: str) -> list[GitCommit]:
    commits = []
    for line in output.splitlines():
        parts = line.split(_FIELD_SEP)
        if len(parts) != 6:
            continue
        sha, author, email, date, subject, parents = parts
        try:
            when = datetime.fromisoformat(date) if date else None
        except ValueError:
            when = None
        commits.append(
            GitCommit(
                hash=sha,
                short_hash=sha[:7],
                author=author,
                author_email=email,
                commit_date=when,
                message=subject,
                parent_hashes=parents.split(),
            )
        )
    return commits


def _strip_error(proc: subprocess.CompletedProcess) -> str:
    text = (proc.stderr or proc.stdout or "").strip()
    return text.splitlines()[-1] if text else f"git exited with status {proc.returncode}"


class GitService:
    def __init__(self, executable: str = "git", timeout: float = GIT_TIMEOUT_SECONDS):
        self.executable = executable
        self.timeout = timeout

    # ── Environment ──────────────────────────────────────────────────

    def _env(self, credentials: GitCredentials | None = None) -> dict[str, str]:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        if credentials is None or credentials.auth_type == "none":
            return env

        if credentials.auth_type == "https" and credentials.https_token:
            user = credentials.https_username or "git"
            token = base64.b64encode(f"{user}:{credentials.https_token}".encode()).decode("ascii")
            env["GIT_CONFIG_COUNT"] = "1"
            env["GIT_CONFIG_KEY_0"] = "http.extraHeader"
            env["GIT_CONFIG_VALUE_0"] = f"Authorization: Basic {token}"
        elif credentials.auth_type == "ssh" and not env.get("SSH_AUTH_SOCK"):
            logger.warning("SSH authentication needs a running ssh-agent; continuing anonymously")
        return env

    def _git(
        self,
        *args: str,
        cwd: str | Path | None = None,
        credentials: GitCredentials | None = None,
    ) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self.executable, *args],
            cwd=str(cwd) if cwd is not None else None,
            env=self._env(credentials),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=self.timeout,
            check=False,
        )

    # ── Local inspection ─────────────────────────────────────────────

    def is_repository(self, path: str | Path) -> bool:
        if not path or not Path(path).is_dir():
            return False
        try:
            proc = self._git("rev-parse", "--git-dir", cwd=path)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Failed to inspect %s: %s", path, e)
            return False
        return proc.returncode == 0

    def current_branch(self, path: str | Path) -> str | None:
        if not self.is_repository(path):
            return None
        try:
            proc = self._git("symbolic-ref", "--short", "-q", "HEAD", cwd=path)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Failed to read current branch of %s: %s", path, e)
            return None
        if proc.returncode != 0:
            # Detached HEAD has no symbolic name.
            return None
        return proc.stdout.strip() or None

    def file_history(self, workspace: str, file_path: str, max_count: int = 50) -> list[GitCommit]:
        return self._log(workspace, max_count, "--", file_path.replace("\\", "/"))

    def all_commits(self, workspace: str, max_count: int = 100) -> list[GitCommit]:
        return self._log(workspace, max_count)

    def _log(self, workspace: str, max_count: int, *extra: str) -> list[GitCommit]:
        if not self.is_repository(workspace):
            return []
        try:
            proc = self._git(
                "log", f"--max-count={max_count}", f"--format={_LOG_FORMAT}", *extra, cwd=workspace
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("git log failed in %s: %s", workspace, e)
            return []
        if proc.returncode != 0:
            # An empty repository has no HEAD to walk.
            logger.debug("git log in %s: %s", workspace, _strip_error(proc))
            return []
        return _parse_log(proc.stdout)

    def file_content_at_commit(self, workspace: str, file_path: str, commit: str) -> str:
        """Return the file's text at ``commit``, or "" if it does not exist there."""
        if not commit or not self.is_repository(workspace):
            return ""
        path = file_path.replace("\\", "/").lstrip("/")
        try:
            proc = self._git("show", f"{commit}:{path}", cwd=workspace)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("git show failed in %s: %s", workspace, e)
            return ""
        return proc.stdout if proc.returncode == 0 else ""

    def file_diff(self, workspace: str, file_path: str, from_commit: str, to_commit: str) -> GitDiffResult:
        if not self.is_repository(workspace):
            return GitDiffResult()
        old = self.file_content_at_commit(workspace, file_path, from_commit)
        new = self.file_content_at_commit(workspace, file_path, to_commit)
        return diff_lines(old, new)

    def workspace_status(self, workspace: str) -> GitStatus:
        status = GitStatus()
        if not self.is_repository(workspace):
            return status
        try:
            proc = self._git("status", "--porcelain", "--untracked-files=all", cwd=workspace)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("git status failed in %s: %s", workspace, e)
            return status
        if proc.returncode != 0:
            return status

        for line in proc.stdout.splitlines():
            if len(line) < 4:
                continue
            index, worktree, path = line[0], line[1], line[3:]
            if " -> " in path:
                path = path.split(" -> ", 1)[1]
            path = path.strip().strip('"')

            if index == "?" and worktree == "?":
                status.untracked_files.append(path)
                continue
            if "M" in (index, worktree):
                status.modified_files.append(path)
            if index == "A":
                status.untracked_files.append(path)
            if "D" in (index, worktree):
                status.deleted_files.append(path)
            if index in ("A", "M", "D", "R"):
                status.staged_files.append(path)
        return status

    # ── Remote operations ────────────────────────────────────────────

    def clone(
        self,
        url: str,
        local_path: str,
        branch: str = "main",
        credentials: GitCredentials | None = None,
        progress: ProgressFn | None = None,
    ) -> tuple[bool, str | None]:
        """Clone ``url`` into ``local_path``, replacing whatever is there."""
        target = Path(local_path)
        logger.info("Cloning %s -> %s (branch %s)", url, target, branch)
        proc = None
        try:
            if target.exists():
                shutil.rmtree(target)
            target.parent.mkdir(parents=True, exist_ok=True)

            args = [self.executable, "clone", "--progress"]
            if branch:
                args += ["--branch", branch]
            args += [url, str(target)]
            proc = subprocess.Popen(
                args,
                env=self._env(credentials),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
            last_line = self._pump_progress(proc, progress)
            returncode = proc.wait(timeout=self.timeout)
        except Exception as e:
            logger.error("Clone of %s failed: %s", url, e)
            if proc is not None and proc.poll() is None:
                proc.kill()
                proc.wait()
            shutil.rmtree(target, ignore_errors=True)
            return False, f"Clone failed: {e}"

        if returncode != 0:
            logger.error("Clone of %s failed: %s", url, last_line)
            shutil.rmtree(target, ignore_errors=True)
            return False, f"Git operation failed: {last_line or f'exit status {returncode}'}"

        logger.info("Cloned %s", target)
        return True, None

    @staticmethod
    def _pump_progress(proc: subprocess.Popen, progress: ProgressFn | None) -> str:
        """Read clone stderr, reporting percentages. Returns the last line seen."""
        last = ""
        buffer = ""
        while True:
            chunk = proc.stderr.read1(4096)
            if not chunk:
                break
            buffer += chunk.decode("utf-8", errors="replace")
            *lines, buffer = re.split(r"[\r\n]", buffer)
            for line in lines:
                line = line.strip()
                if not line:
                    continue
                last = line
                match = _PROGRESS_RE.match(line)
                if match and progress is not None:
                    progress(CloneProgress(int(match["pct"]), match["stage"].strip(), line))
        return buffer.strip() or last

    def pull(self, local_path: str, credentials: GitCredentials | None = None) -> tuple[bool, str | None]:
        if not self.is_repository(local_path):
            return False, f"Not a git repository: {local_path}"
        name, email = PULL_IDENTITY
        logger.info("Pulling %s", local_path)
        try:
            proc = self._git(
                "-c", f"user.name={name}", "-c", f"user.email={email}",
                "pull", "--no-rebase", "--no-edit",
                cwd=local_path,
                credentials=credentials,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Pull of %s failed: %s", local_path, e)
            return False, f"Pull failed: {e}"
        if proc.returncode != 0:
            message = _strip_error(proc)
            logger.error("Pull of %s failed: %s", local_path, message)
            return False, f"Git operation failed: {message}"
        return True, None

    def list_remote_branches(
        self, url: str, credentials: GitCredentials | None = None
    ) -> tuple[list[str], str | None]:
        try:
            proc = self._git("ls-remote", "--heads", url, credentials=credentials)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Listing branches of %s failed: %s", url, e)
            return [], f"Failed to list branches: {e}"
        if proc.returncode != 0:
            message = _strip_error(proc)
            logger.error("Listing branches of %s failed: %s", url, message)
            return [], f"Failed to list branches: {message}"

        branches = []
        for line in proc.stdout.splitlines():
            _, _, ref = line.partition("\t")
            if ref.startswith("refs/heads/"):
                branches.append(ref[len("refs/heads/"):])
        logger.info("Found %d branches on %s", len(branches), url)
        return branches, None

    # ── Async wrappers ───────────────────────────────────────────────

    async def clone_async(self, url, local_path, branch="main", credentials=None, progress=None):
        return await asyncio.to_thread(self.clone, url, local_path, branch, credentials, progress)

    async def pull_async(self, local_path, credentials=None):
        return await asyncio.to_thread(self.pull, local_path, credentials)

    async def list_remote_branches_async(self, url, credentials=None):
        return await asyncio.to_thread(self.list_remote_branches, url, credentials)

    async def file_history_async(self, workspace, file_path, max_count=50):
        return await asyncio.to_thread(self.file_history, workspace, file_path, max_count)

    async def all_commits_async(self, workspace, max_count=100):
        return await asyncio.to_thread(self.all_commits, workspace, max_count)

    async def file_content_at_commit_async(self, workspace, file_path, commit):
        return await asyncio.to_thread(self.file_content_at_commit, workspace, file_path, commit)

    async def file_diff_async(self, workspace, file_path, from_commit, to_commit):
        return await asyncio.to_thread(self.file_diff, workspace, file_path, from_commit, to_commit)

    async def workspace_status_async(self, workspace):
        return await asyncio.to_thread(self.workspace_status, workspace)
