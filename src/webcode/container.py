"""Per-process object graph and the FastAPI dependencies that expose it."""

import logging
from dataclasses import dataclass
from pathlib import Path

from fastapi import Depends, Header, Request

from .config import get_db_path, get_default_username, get_projects_path
from .db import Database
from .git import GitService
from .history import SAVE_DEBOUNCE_SECONDS, SessionHistoryManager
from .migration import Migrator
from .projects import ProjectService
from .services import (
    InputHistoryService,
    PromptTemplateService,
    QuickActionService,
    SessionOutputService,
    UserSettingService,
)
from .stores import Stores, create_stores

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    db: Database
    stores: Stores
    history: SessionHistoryManager
    outputs: SessionOutputService
    templates: PromptTemplateService
    quick_actions: QuickActionService
    input_history: InputHistoryService
    settings: UserSettingService
    git: GitService
    projects: ProjectService
    migrator: Migrator
    default_owner: str

    def close(self, timeout: float = 5.0) -> None:
        """Flush pending session saves, then release the database."""
        self.history.shutdown(timeout)
        self.db.close()


def build_container(
    db_path: Path | str | None = None,
    projects_path: Path | str | None = None,
    save_delay: float = SAVE_DEBOUNCE_SECONDS,
    default_owner: str | None = None,
) -> AppContainer:
    db = Database(db_path or get_db_path())
    stores = create_stores(db)
    history = SessionHistoryManager(stores.sessions, save_delay=save_delay)
    git = GitService()
    logger.debug("Building container for database %s", db.path)
    return AppContainer(
        db=db,
        stores=stores,
        history=history,
        outputs=SessionOutputService(stores.outputs),
        templates=PromptTemplateService(stores.templates),
        quick_actions=QuickActionService(stores.quick_actions),
        input_history=InputHistoryService(stores.input_history),
        settings=UserSettingService(stores.settings),
        git=git,
        projects=ProjectService(stores.projects, git, projects_path or get_projects_path()),
        migrator=Migrator(stores, history),
        default_owner=default_owner or get_default_username(),
    )


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_owner(
    container: AppContainer = Depends(get_container),
    x_username: str | None = Header(None),
) -> str:
    """Resolve the owner of the current request from the X-Username header."""
    if x_username and x_username.strip():
        return x_username.strip()
    return container.default_owner
