"""Read-through session cache, partitioned by owner."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .core import Session
from .stores.sessions import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class _OwnerCache:
    sessions: list[Session] | None = None
    by_id: dict[str, Session] = field(default_factory=dict)
    loaded_at: float = 0.0


class SessionCache:
    """Full-list cache with a time-to-live plus an exact per-id index.

    The per-id index is never expired; it is only refreshed by a list
    reload, a save or an eviction.
    """

    def __init__(
        self,
        store: SessionStore,
        ttl: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self.ttl = ttl
        self._clock = clock
        self._owners: dict[str, _OwnerCache] = {}
        # Bumped by every put, evict and invalidate; a reload that overlaps one is not kept.
        self._generation: dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    def list(self, owner: str) -> list[Session]:
        with self._lock:
            entry = self._owners.get(owner)
            if entry is not None and entry.sessions is not None:
                if self._clock() - entry.loaded_at < self.ttl:
                    return list(entry.sessions)
            stamp = self._stamp(owner)

        started = time.perf_counter()
        sessions = self._store.list_sessions(owner)
        with self._lock:
            if self._stamp(owner) != stamp:
                logger.debug("Sessions of %s changed during reload; not caching the list", owner)
                return list(sessions)
            entry = self._owners.setdefault(owner, _OwnerCache())
            entry.sessions = sessions
            entry.by_id = {s.session_id: s for s in sessions}
            entry.loaded_at = self._clock()
        logger.info(
            "Loaded %d sessions for %s in %.2fms",
            len(sessions), owner, (time.perf_counter() - started) * 1000,
        )
        return list(sessions)

    def get(self, owner: str, session_id: str) -> Session | None:
        with self._lock:
            entry = self._owners.get(owner)
            if entry is not None and session_id in entry.by_id:
                return entry.by_id[session_id]
            stamp = self._stamp(owner)

        session = self._store.get_session(owner, session_id)
        if session is not None:
            with self._lock:
                if self._stamp(owner) != stamp:
                    return session
                self._owners.setdefault(owner, _OwnerCache()).by_id[session_id] = session
        return session

    def put(self, owner: str, session: Session) -> None:
        """Record a freshly saved session in both the list and the index."""
        with self._lock:
            self._bump(owner)
            entry = self._owners.setdefault(owner, _OwnerCache())
            entry.by_id[session.session_id] = session
            if entry.sessions is None:
                return
            for i, existing in enumerate(entry.sessions):
                if existing.session_id == session.session_id:
                    entry.sessions[i] = session
                    break
            else:
                entry.sessions.insert(0, session)

    def evict(self, owner: str, session_id: str) -> None:
        with self._lock:
            self._bump(owner)
            entry = self._owners.get(owner)
            if entry is None:
                return
            entry.by_id.pop(session_id, None)
            if entry.sessions is not None:
                entry.sessions = [s for s in entry.sessions if s.session_id != session_id]

    def invalidate(self, owner: str | None = None) -> None:
        with self._lock:
            if owner is None:
                self._epoch += 1
                self._owners.clear()
            else:
                self._bump(owner)
                self._owners.pop(owner, None)

    def _bump(self, owner: str) -> None:
        self._generation[owner] = self._generation.get(owner, 0) + 1

    def _stamp(self, owner: str) -> tuple[int, int]:
        return self._epoch, self._generation.get(owner, 0)
