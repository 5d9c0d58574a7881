"""Session history manager: the façade the HTTP layer talks to.

Combines the session store, the read-through cache and the debounced
saver. Every call names the owner explicitly.
"""

import logging
import sqlite3
import time
from pathlib import Path

from .cache import SessionCache
from .coalescer import DebouncedSaver
from .core import DEFAULT_SESSION_TITLE, Session, utcnow
from .errors import OperationFailedError, ValidationError
from .stores.sessions import SessionStore

logger = logging.getLogger(__name__)

MAX_MESSAGES_PER_SESSION = 1000
MAX_TITLE_LENGTH = 30
SAVE_DEBOUNCE_SECONDS = 0.5
CACHE_EXPIRATION_SECONDS = 10.0
WRITE_WAIT_SECONDS = 5.0


class SessionHistoryManager:
    def __init__(
        self,
        store: SessionStore,
        save_delay: float = SAVE_DEBOUNCE_SECONDS,
        cache_ttl: float = CACHE_EXPIRATION_SECONDS,
    ):
        self.store = store
        self.cache = SessionCache(store, ttl=cache_ttl)
        self.saver = DebouncedSaver(self._persist, delay=save_delay)

    # ── Reads ────────────────────────────────────────────────────────

    def load_sessions(self, owner: str) -> list[Session]:
        """Return the owner's sessions, newest update first. Never raises."""
        try:
            return self.cache.list(owner)
        except sqlite3.Error as e:
            logger.error("Failed to load sessions for %s: %s", owner, e)
            return []

    def get_session(self, owner: str, session_id: str) -> Session | None:
        if not session_id or not session_id.strip():
            return None
        try:
            return self.cache.get(owner, session_id)
        except sqlite3.Error as e:
            logger.error("Failed to get session %s: %s", session_id, e)
            return None

    # ── Writes ───────────────────────────────────────────────────────

    def request_save(self, owner: str, session: Session) -> None:
        """Queue a debounced save. Returns without touching storage."""
        self._prepare(session)
        self.saver.request(owner, session)

    def save_immediate(self, owner: str, session: Session) -> None:
        """Write ``session`` now, superseding any pending debounced save.

        Raises:
            ValidationError: the session id is empty.
            OperationFailedError: the storage write failed.
        """
        self._prepare(session)
        self._settle(owner, session.session_id)
        started = time.perf_counter()
        try:
            self._persist(owner, session.snapshot())
        except (sqlite3.Error, OSError) as e:
            logger.error("Failed to save session %s: %s", session.session_id, e)
            raise OperationFailedError(f"Failed to save session {session.session_id}") from e
        logger.debug(
            "Saved session %s in %.2fms", session.session_id, (time.perf_counter() - started) * 1000
        )

    def delete_session(self, owner: str, session_id: str) -> None:
        """Delete a session and its messages. Missing ids are a no-op."""
        if not session_id or not session_id.strip():
            raise ValidationError("Session id must not be empty")

        self._settle(owner, session_id)
        try:
            self.store.delete_messages(owner, session_id)
            deleted = self.store.delete_session(owner, session_id)
        except sqlite3.Error as e:
            logger.error("Failed to delete session %s: %s", session_id, e)
            raise OperationFailedError(f"Failed to delete session {session_id}") from e
        self.cache.evict(owner, session_id)

        if deleted:
            logger.info("Deleted session %s", session_id)
        else:
            logger.warning("Session %s did not exist", session_id)

    # ── Helpers ──────────────────────────────────────────────────────

    @staticmethod
    def generate_title(text: str | None) -> str:
        """Build a short title from the first user message."""
        title = " ".join((text or "").split())
        if not title:
            return DEFAULT_SESSION_TITLE
        if len(title) > MAX_TITLE_LENGTH:
            title = title[:MAX_TITLE_LENGTH] + "..."
        return title

    @staticmethod
    def trim_messages(session: Session) -> int:
        """Drop the oldest messages beyond the retention cap. Returns the number removed."""
        overflow = len(session.messages) - MAX_MESSAGES_PER_SESSION
        if overflow <= 0:
            return 0
        del session.messages[:overflow]
        logger.info("Trimmed %d old messages from session %s", overflow, session.session_id)
        return overflow

    @staticmethod
    def validate_workspace_path(path: str | None) -> bool:
        if not path or not path.strip():
            return False
        try:
            return Path(path).is_dir()
        except OSError as e:
            logger.error("Failed to check workspace path %s: %s", path, e)
            return False

    def cleanup_invalid_sessions(self, owner: str) -> int:
        """Re-check every workspace path and flag sessions whose directory is gone.

        Sessions are never deleted. Returns how many are currently invalid.
        """
        try:
            sessions = self.cache.list(owner)
            invalid = 0
            for session in sessions:
                valid = self.validate_workspace_path(session.workspace_path)
                if valid != session.is_workspace_valid:
                    session.is_workspace_valid = valid
                    self.store.set_workspace_valid(owner, session.session_id, valid)
                    if not valid:
                        logger.info(
                            "Workspace gone for session %s (%s): %s",
                            session.session_id, session.title, session.workspace_path,
                        )
                if not valid:
                    invalid += 1
        except sqlite3.Error as e:
            logger.error("Failed to update workspace state for %s: %s", owner, e)
            return 0

        if invalid:
            logger.info("%d session(s) of %s point at a missing workspace; kept", invalid, owner)
        return invalid

    def clear_cache(self, owner: str | None = None) -> None:
        self.cache.invalidate(owner)

    def shutdown(self, timeout: float = 5.0) -> bool:
        return self.saver.shutdown(timeout)

    def _settle(self, owner: str, session_id: str) -> None:
        """Drop a pending save and let a running one finish before writing over it."""
        self.saver.discard(owner, session_id)
        if not self.saver.wait_for(owner, session_id, WRITE_WAIT_SECONDS):
            logger.warning("Debounced save of %s is still running after %.1fs", session_id, WRITE_WAIT_SECONDS)

    def _prepare(self, session: Session) -> None:
        if not session.session_id or not session.session_id.strip():
            raise ValidationError("Session id must not be empty")
        self.trim_messages(session)
        session.updated_at = utcnow()

    def _persist(self, owner: str, session: Session) -> None:
        self.store.upsert_session(owner, session)
        self.store.delete_messages(owner, session.session_id)
        self.store.insert_messages(owner, session.session_id, session.messages)
        self.cache.put(owner, session)
