"""Owner-scoped Git projects and their local clones."""

import asyncio
import logging
import sqlite3
import uuid
from dataclasses import replace
from pathlib import Path

from .core import AUTH_TYPES, Project, utcnow
from .errors import DuplicateEntityError, EntityNotFoundError, OperationFailedError, ValidationError
from .git import GitCredentials, GitService, ProgressFn
from .stores import ProjectStore

logger = logging.getLogger(__name__)


def credentials_for(project: Project) -> GitCredentials:
    return GitCredentials(
        auth_type=project.auth_type,
        https_username=project.https_username,
        https_token=project.https_token,
        ssh_private_key=project.ssh_private_key,
        ssh_passphrase=project.ssh_passphrase,
    )


class ProjectService:
    def __init__(self, store: ProjectStore, git: GitService, projects_root: Path | str):
        self.store = store
        self.git = git
        self.projects_root = Path(projects_root)

    def list_projects(self, owner: str) -> list[Project]:
        return self.store.list_projects(owner)

    def get(self, owner: str, project_id: str) -> Project:
        project = self.store.get(owner, project_id) if project_id else None
        if project is None:
            raise EntityNotFoundError("Project", project_id)
        return project

    def create(self, owner: str, project: Project) -> Project:
        project = replace(project, project_id=project.project_id or uuid.uuid4().hex)
        self._validate(owner, project, exclude_id=None)
        if not project.local_path:
            project.local_path = str(self.projects_root / owner / project.project_id)
        self._check_local_path(project)
        now = utcnow()
        project.created_at = now
        project.updated_at = now
        project.status = "pending"
        self._save(owner, project)
        logger.info("Created project %s (%s) for %s", project.project_id, project.name, owner)
        return project

    def update(self, owner: str, project_id: str, changes: Project) -> Project:
        """Apply edits. Secrets left as None keep their stored values."""
        current = self.get(owner, project_id)
        updated = replace(
            current,
            name=changes.name,
            git_url=changes.git_url,
            auth_type=changes.auth_type,
            branch=changes.branch or current.branch,
            local_path=changes.local_path or current.local_path,
            updated_at=utcnow(),
        )
        for secret in ("https_username", "https_token", "ssh_private_key", "ssh_passphrase"):
            value = getattr(changes, secret)
            if value is not None:
                setattr(updated, secret, value)
        self._validate(owner, updated, exclude_id=project_id)
        self._check_local_path(updated)
        self._save(owner, updated)
        return updated

    def delete(self, owner: str, project_id: str) -> bool:
        try:
            deleted = self.store.delete(owner, project_id)
        except sqlite3.Error as e:
            raise OperationFailedError(f"Failed to delete project {project_id}") from e
        if deleted:
            logger.info("Deleted project %s", project_id)
        return deleted

    async def clone(
        self, owner: str, project_id: str, progress: ProgressFn | None = None
    ) -> tuple[Project, str | None]:
        """Clone the project's remote into its local path and record the outcome."""
        project = await asyncio.to_thread(self._start_clone, owner, project_id)

        ok, error = await self.git.clone_async(
            project.git_url, project.local_path, project.branch, credentials_for(project), progress
        )
        now = utcnow()
        if ok:
            project.status = "ready"
            project.last_sync_at = now
        else:
            project.status = "error"
            project.error_message = error
        project.updated_at = now
        await asyncio.to_thread(self._save, owner, project)
        return project, error

    async def pull(self, owner: str, project_id: str) -> tuple[Project, str | None]:
        project = await asyncio.to_thread(self.get, owner, project_id)
        ok, error = await self.git.pull_async(project.local_path, credentials_for(project))
        now = utcnow()
        if ok:
            project.last_sync_at = now
            project.error_message = None
        else:
            project.error_message = error
        project.updated_at = now
        await asyncio.to_thread(self._save, owner, project)
        return project, error

    async def branches(self, owner: str, project_id: str) -> tuple[list[str], str | None]:
        project = await asyncio.to_thread(self.get, owner, project_id)
        return await self.git.list_remote_branches_async(project.git_url, credentials_for(project))

    async def branches_for_url(
        self, url: str, credentials: GitCredentials | None = None
    ) -> tuple[list[str], str | None]:
        if not url or not url.strip():
            raise ValidationError("Git URL is required")
        return await self.git.list_remote_branches_async(url.strip(), credentials)

    def current_branch(self, owner: str, project_id: str) -> str | None:
        project = self.get(owner, project_id)
        return self.git.current_branch(project.local_path) if project.local_path else None

    # ── Private helpers ──────────────────────────────────────────────

    def _validate(self, owner: str, project: Project, exclude_id: str | None) -> None:
        project.name = (project.name or "").strip()
        project.git_url = (project.git_url or "").strip()
        if not project.name:
            raise ValidationError("Project name is required")
        if not project.git_url:
            raise ValidationError("Git URL is required")
        if project.auth_type not in AUTH_TYPES:
            raise ValidationError(f"Unsupported auth type: {project.auth_type}")
        if self.store.exists_by_name(owner, project.name, exclude_id):
            raise DuplicateEntityError(f"A project named {project.name!r} already exists")

    def _check_local_path(self, project: Project) -> None:
        """Resolve the clone target and keep it inside the projects directory."""
        root = self.projects_root.resolve()
        path = Path(project.local_path).expanduser()
        if not path.is_absolute():
            path = root / path
        path = path.resolve()
        if path == root or root not in path.parents:
            raise ValidationError("Local path must be inside the projects directory")
        project.local_path = str(path)

    def _start_clone(self, owner: str, project_id: str) -> Project:
        project = self.get(owner, project_id)
        # Stored rows may predate the path check.
        self._check_local_path(project)
        project.status = "cloning"
        project.error_message = None
        project.updated_at = utcnow()
        self._save(owner, project)
        return project

    def _save(self, owner: str, project: Project) -> None:
        try:
            self.store.upsert(owner, project)
        except sqlite3.IntegrityError as e:
            raise DuplicateEntityError(f"A project named {project.name!r} already exists") from e
        except sqlite3.Error as e:
            logger.error("Failed to save project %s: %s", project.project_id, e)
            raise OperationFailedError(f"Failed to save project {project.project_id}") from e
