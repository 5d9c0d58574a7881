"""Owner-scoped record services.

These wrap the stores with input checks and soft failure: storage errors
are logged and turned into an empty result or ``False`` instead of being
raised to the caller.
"""

import logging
import sqlite3
from dataclasses import replace

from .core import InputHistoryItem, OutputPanelState, PromptTemplate, QuickAction, utcnow
from .stores import (
    InputHistoryStore,
    PromptTemplateStore,
    QuickActionStore,
    SessionOutputStore,
    UserSettingStore,
)

logger = logging.getLogger(__name__)


def _blank(value: str | None) -> bool:
    return not value or not value.strip()


DEFAULT_TEMPLATES = [
    PromptTemplate(
        id="optimize-code",
        title="Optimize code",
        content="Optimize the following code for performance and readability, "
        "and explain each change:\n\n{{code}}",
        category="optimization",
        icon="🔧",
        is_custom=False,
        variables=["code"],
    ),
    PromptTemplate(
        id="add-comments",
        title="Add comments",
        content="Add detailed comments to the following code, covering what each "
        "function does, its parameters and the key logic:\n\n{{code}}",
        category="documentation",
        icon="📝",
        is_custom=False,
        variables=["code"],
    ),
    PromptTemplate(
        id="fix-bug",
        title="Fix a bug",
        content="Find and fix the bug in the following code and explain the cause:"
        "\n\n{{code}}\n\nError message: {{error}}",
        category="debugging",
        icon="🐛",
        is_custom=False,
        variables=["code", "error"],
    ),
    PromptTemplate(
        id="refactor-code",
        title="Refactor code",
        content="Refactor the following code to improve quality and maintainability, "
        "following SOLID principles:\n\n{{code}}",
        category="refactoring",
        icon="🔄",
        is_custom=False,
        variables=["code"],
    ),
    PromptTemplate(
        id="generate-tests",
        title="Generate tests",
        content="Write unit tests for the following code using the {{framework}} "
        "test framework:\n\n{{code}}",
        category="testing",
        icon="🧪",
        is_custom=False,
        variables=["framework", "code"],
    ),
    PromptTemplate(
        id="code-review",
        title="Code review",
        content="Review the following code and point out problems and improvements in:"
        "\n1. Code quality\n2. Security\n3. Performance\n4. Maintainability\n\n{{code}}",
        category="review",
        icon="👁️",
        is_custom=False,
        variables=["code"],
    ),
]


class SessionOutputService:
    def __init__(self, store: SessionOutputStore):
        self.store = store

    def get(self, owner: str, session_id: str) -> OutputPanelState | None:
        if _blank(session_id):
            return None
        try:
            return self.store.get(owner, session_id)
        except sqlite3.Error as e:
            logger.error("Failed to load output state for %s: %s", session_id, e)
            return None

    def save(self, owner: str, state: OutputPanelState) -> bool:
        if _blank(state.session_id):
            return False
        state.updated_at = utcnow()
        try:
            self.store.upsert(owner, state)
        except sqlite3.Error as e:
            logger.error("Failed to save output state for %s: %s", state.session_id, e)
            return False
        return True

    def delete(self, owner: str, session_id: str) -> bool:
        if _blank(session_id):
            return False
        try:
            self.store.delete(owner, session_id)
        except sqlite3.Error as e:
            logger.error("Failed to delete output state for %s: %s", session_id, e)
            return False
        return True


class PromptTemplateService:
    def __init__(self, store: PromptTemplateStore):
        self.store = store

    def get_all(self, owner: str) -> list[PromptTemplate]:
        try:
            return self.store.list_templates(owner)
        except sqlite3.Error as e:
            logger.error("Failed to load templates: %s", e)
            return []

    def get_by_category(self, owner: str, category: str) -> list[PromptTemplate]:
        try:
            return self.store.list_by_category(owner, category)
        except sqlite3.Error as e:
            logger.error("Failed to load templates in %s: %s", category, e)
            return []

    def get_favorites(self, owner: str) -> list[PromptTemplate]:
        try:
            return self.store.list_favorites(owner)
        except sqlite3.Error as e:
            logger.error("Failed to load favorite templates: %s", e)
            return []

    def get_by_id(self, owner: str, template_id: str) -> PromptTemplate | None:
        if _blank(template_id):
            return None
        try:
            return self.store.get(owner, template_id)
        except sqlite3.Error as e:
            logger.error("Failed to load template %s: %s", template_id, e)
            return None

    def save(self, owner: str, template: PromptTemplate) -> bool:
        """Insert or update a template, keeping the original creation time."""
        if _blank(template.id):
            return False
        try:
            existing = self.store.get(owner, template.id)
            if existing is not None:
                template.created_at = existing.created_at
            template.updated_at = utcnow()
            self.store.upsert(owner, template)
        except sqlite3.Error as e:
            logger.error("Failed to save template %s: %s", template.id, e)
            return False
        return True

    def delete(self, owner: str, template_id: str) -> bool:
        if _blank(template_id):
            return False
        try:
            return self.store.delete(owner, template_id)
        except sqlite3.Error as e:
            logger.error("Failed to delete template %s: %s", template_id, e)
            return False

    def init_defaults(self, owner: str) -> bool:
        """Seed the built-in templates for an owner that has none yet."""
        try:
            if self.store.count(owner) > 0:
                return True
            now = utcnow()
            for template in DEFAULT_TEMPLATES:
                self.store.upsert(owner, replace(template, created_at=now, updated_at=now))
        except sqlite3.Error as e:
            logger.error("Failed to seed default templates for %s: %s", owner, e)
            return False
        logger.info("Seeded %d default templates for %s", len(DEFAULT_TEMPLATES), owner)
        return True


class QuickActionService:
    def __init__(self, store: QuickActionStore):
        self.store = store

    def get_all(self, owner: str) -> list[QuickAction]:
        try:
            return self.store.list_actions(owner)
        except sqlite3.Error as e:
            logger.error("Failed to load quick actions: %s", e)
            return []

    def save(self, owner: str, action: QuickAction) -> bool:
        if _blank(action.id):
            return False
        try:
            self.store.upsert(owner, action)
        except sqlite3.Error as e:
            logger.error("Failed to save quick action %s: %s", action.id, e)
            return False
        return True

    def save_all(self, owner: str, actions: list[QuickAction]) -> bool:
        """Replace the owner's whole set atomically."""
        if any(_blank(a.id) for a in actions):
            return False
        try:
            self.store.replace_all(owner, actions)
        except sqlite3.Error as e:
            logger.error("Failed to replace quick actions: %s", e)
            return False
        return True

    def delete(self, owner: str, action_id: str) -> bool:
        if _blank(action_id):
            return False
        try:
            return self.store.delete(owner, action_id)
        except sqlite3.Error as e:
            logger.error("Failed to delete quick action %s: %s", action_id, e)
            return False

    def clear(self, owner: str) -> bool:
        try:
            self.store.clear(owner)
        except sqlite3.Error as e:
            logger.error("Failed to clear quick actions: %s", e)
            return False
        return True


class InputHistoryService:
    def __init__(self, store: InputHistoryStore):
        self.store = store

    def get_recent(self, owner: str, limit: int = 50) -> list[InputHistoryItem]:
        try:
            return self.store.recent(owner, limit)
        except sqlite3.Error as e:
            logger.error("Failed to load input history: %s", e)
            return []

    def search(self, owner: str, text: str, limit: int = 10) -> list[InputHistoryItem]:
        if _blank(text):
            return []
        try:
            return self.store.search(owner, text, limit)
        except sqlite3.Error as e:
            logger.error("Failed to search input history: %s", e)
            return []

    def save(self, owner: str, text: str) -> bool:
        if _blank(text):
            return False
        try:
            self.store.add(owner, text.strip())
        except sqlite3.Error as e:
            logger.error("Failed to save input history: %s", e)
            return False
        return True

    def clear(self, owner: str) -> bool:
        try:
            self.store.clear(owner)
        except sqlite3.Error as e:
            logger.error("Failed to clear input history: %s", e)
            return False
        return True


class UserSettingService:
    def __init__(self, store: UserSettingStore):
        self.store = store

    def get(self, owner: str, key: str, default: str | None = None) -> str | None:
        if _blank(key):
            return default
        try:
            value = self.store.get(owner, key)
        except sqlite3.Error as e:
            logger.error("Failed to read setting %s: %s", key, e)
            return default
        return default if value is None else value

    def set(self, owner: str, key: str, value: str | None) -> bool:
        if _blank(key):
            return False
        try:
            self.store.set(owner, key, value)
        except sqlite3.Error as e:
            logger.error("Failed to write setting %s: %s", key, e)
            return False
        return True

    def delete(self, owner: str, key: str) -> bool:
        if _blank(key):
            return False
        try:
            return self.store.delete(owner, key)
        except sqlite3.Error as e:
            logger.error("Failed to delete setting %s: %s", key, e)
            return False

    def get_all(self, owner: str) -> dict[str, str | None]:
        try:
            return self.store.all(owner)
        except sqlite3.Error as e:
            logger.error("Failed to read settings: %s", e)
            return {}
