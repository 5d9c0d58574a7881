"""SQLite-backed stores, one per entity, bundled for the app container."""

from dataclasses import dataclass

from ..db import Database
from .input_history import InputHistoryStore
from .outputs import SessionOutputStore
from .projects import ProjectStore
from .quick_actions import QuickActionStore
from .sessions import SessionStore
from .settings import UserSettingStore
from .templates import PromptTemplateStore

__all__ = [
    "InputHistoryStore",
    "ProjectStore",
    "PromptTemplateStore",
    "QuickActionStore",
    "SessionOutputStore",
    "SessionStore",
    "Stores",
    "UserSettingStore",
    "create_stores",
]


@dataclass
class Stores:
    sessions: SessionStore
    outputs: SessionOutputStore
    templates: PromptTemplateStore
    quick_actions: QuickActionStore
    input_history: InputHistoryStore
    settings: UserSettingStore
    projects: ProjectStore


def create_stores(db: Database) -> Stores:
    """Build every store on top of one shared database."""
    return Stores(
        sessions=SessionStore(db),
        outputs=SessionOutputStore(db),
        templates=PromptTemplateStore(db),
        quick_actions=QuickActionStore(db),
        input_history=InputHistoryStore(db),
        settings=UserSettingStore(db),
        projects=ProjectStore(db),
    )
