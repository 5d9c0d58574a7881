"""Debounced session writes.

Rapid successive save requests are collected in a pending map keyed by
(owner, session id) and written once a single shared timer expires. Each
new request restarts the timer, so a burst of edits becomes one write per
session carrying the last state.
"""

import logging
import threading
from typing import Callable

from .core import Session

logger = logging.getLogger(__name__)

WriteFn = Callable[[str, Session], None]


class DebouncedSaver:
    def __init__(self, write: WriteFn, delay: float = 0.5):
        self._write = write
        self.delay = delay
        self._pending: dict[tuple[str, str], Session] = {}
        self._cond = threading.Condition(threading.Lock())
        self._timer: threading.Timer | None = None
        self._writing = 0
        self._in_flight: dict[tuple[str, str], int] = {}

    def request(self, owner: str, session: Session) -> None:
        """Register ``session`` as pending and restart the delay timer."""
        with self._cond:
            self._pending[(owner, session.session_id)] = session.snapshot()
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()
        logger.debug("Save of %s/%s deferred by %.0fms", owner, session.session_id, self.delay * 1000)

    def discard(self, owner: str, session_id: str) -> bool:
        """Drop a pending entry. Returns True if one was waiting."""
        with self._cond:
            found = self._pending.pop((owner, session_id), None) is not None
            self._cond.notify_all()
        return found

    def pending_count(self) -> int:
        with self._cond:
            return len(self._pending)

    def wait_for(self, owner: str, session_id: str, timeout: float | None = None) -> bool:
        """Block while a write of this session taken from the pending map is running."""
        key = (owner, session_id)
        with self._cond:
            return self._cond.wait_for(lambda: key not in self._in_flight, timeout)

    def flush(self) -> int:
        """Cancel the timer and write everything pending on the calling thread."""
        with self._cond:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            batch = self._take()
        self._write_batch(batch)
        return len(batch)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until nothing is pending, scheduled or being written."""
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._pending and self._timer is None and self._writing == 0,
                timeout,
            )

    def shutdown(self, timeout: float = 5.0) -> bool:
        """Flush pending saves and wait (bounded) for an in-flight timer write."""
        flushed = self.flush()
        idle = self.wait(timeout)
        if flushed:
            logger.info("Flushed %d pending session save(s) on shutdown", flushed)
        if not idle:
            logger.warning("Timed out after %.1fs waiting for session writes", timeout)
        return idle

    # ── Private helpers ──────────────────────────────────────────────

    def _take(self) -> list[tuple[tuple[str, str], Session]]:
        batch = list(self._pending.items())
        self._pending.clear()
        if batch:
            self._writing += 1
            for key, _ in batch:
                self._in_flight[key] = self._in_flight.get(key, 0) + 1
        return batch

    def _fire(self) -> None:
        with self._cond:
            # A request racing this fire may already have scheduled a newer timer.
            if self._timer is threading.current_thread():
                self._timer = None
            batch = self._take()
            self._cond.notify_all()
        self._write_batch(batch)

    def _write_batch(self, batch: list[tuple[tuple[str, str], Session]]) -> None:
        if not batch:
            return
        try:
            for key, session in batch:
                owner, session_id = key
                try:
                    self._write(owner, session)
                except Exception:
                    logger.exception("Debounced save of %s/%s failed", owner, session_id)
                finally:
                    self._release(key)
        finally:
            with self._cond:
                self._writing -= 1
                self._cond.notify_all()

    def _release(self, key: tuple[str, str]) -> None:
        with self._cond:
            remaining = self._in_flight.get(key, 0) - 1
            if remaining > 0:
                self._in_flight[key] = remaining
            else:
                self._in_flight.pop(key, None)
            self._cond.notify_all()
