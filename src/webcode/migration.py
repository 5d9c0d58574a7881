"""Bulk import of records kept in the browser by older clients.

Each import skips records the owner already has and keeps going when a
single record fails; failures are counted, not raised.
"""

import logging
import sqlite3
from dataclasses import asdict, dataclass

from .core import InputHistoryItem, OutputPanelState, PromptTemplate, QuickAction, Session
from .history import SessionHistoryManager
from .stores import Stores

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    success: bool
    message: str
    migrated_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class Migrator:
    def __init__(self, stores: Stores, history: SessionHistoryManager):
        self.stores = stores
        self.history = history

    def import_sessions(self, owner: str, sessions: list[Session]) -> MigrationResult:
        store = self.stores.sessions

        def write(session: Session) -> bool:
            if store.exists(owner, session.session_id):
                return False
            store.upsert_session(owner, session)
            store.insert_messages(owner, session.session_id, session.messages)
            return True

        result = self._run("session", sessions, lambda s: s.session_id, write)
        if result.migrated_count:
            self.history.clear_cache(owner)
        return result

    def import_templates(self, owner: str, templates: list[PromptTemplate]) -> MigrationResult:
        store = self.stores.templates

        def write(template: PromptTemplate) -> bool:
            if store.get(owner, template.id) is not None:
                return False
            store.upsert(owner, template)
            return True

        return self._run("template", templates, lambda t: t.id, write)

    def import_session_outputs(self, owner: str, outputs: list[OutputPanelState]) -> MigrationResult:
        store = self.stores.outputs

        def write(state: OutputPanelState) -> bool:
            if store.get(owner, state.session_id) is not None:
                return False
            store.upsert(owner, state)
            return True

        return self._run("session output", outputs, lambda o: o.session_id, write)

    def import_quick_actions(self, owner: str, actions: list[QuickAction]) -> MigrationResult:
        store = self.stores.quick_actions

        def write(action: QuickAction) -> bool:
            if store.get(owner, action.id) is not None:
                return False
            store.upsert(owner, action)
            return True

        return self._run("quick action", actions, lambda a: a.id, write)

    def import_settings(self, owner: str, settings: dict[str, str | None]) -> MigrationResult:
        store = self.stores.settings

        def write(item: tuple[str, str | None]) -> bool:
            key, value = item
            if not key or store.exists(owner, key):
                return False
            store.set(owner, key, value)
            return True

        return self._run("setting", list(settings.items()), lambda kv: kv[0], write)

    def import_input_history(self, owner: str, items: list[InputHistoryItem]) -> MigrationResult:
        store = self.stores.input_history

        def write(item: InputHistoryItem) -> bool:
            if not item.text or not item.text.strip():
                return False
            store.add(owner, item.text, item.timestamp)
            return True

        return self._run("input history entry", items, lambda i: i.id, write)

    def status(self, owner: str) -> dict[str, int]:
        """Per-entity record counts for the owner."""
        s = self.stores
        return {
            "sessions": s.sessions.count(owner),
            "templates": s.templates.count(owner),
            "session_outputs": s.outputs.count(owner),
            "input_history": s.input_history.count(owner),
            "quick_actions": s.quick_actions.count(owner),
            "settings": s.settings.count(owner),
        }

    def _run(self, kind, records, key, write) -> MigrationResult:
        if not records:
            return MigrationResult(True, f"No {kind} records to import")

        migrated = errors = 0
        for record in records:
            try:
                if write(record):
                    migrated += 1
                else:
                    logger.debug("Skipped %s %s", kind, key(record))
            except (sqlite3.Error, ValueError, TypeError) as e:
                logger.warning("Failed to import %s %s: %s", kind, key(record), e)
                errors += 1

        logger.info("Imported %d %s record(s), %d failed", migrated, kind, errors)
        return MigrationResult(True, f"Imported {migrated} {kind} record(s)", migrated, errors)
