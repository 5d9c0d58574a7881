"""SQLite connection handling and schema for webcode.

Every table carries a ``username`` column; stores include it in every
predicate so records never leak between owners.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS chat_session (
    username           TEXT NOT NULL,
    session_id         TEXT NOT NULL,
    title              TEXT,
    workspace_path     TEXT,
    tool_id            TEXT,
    created_at         TEXT NOT NULL,
    updated_at         TEXT NOT NULL,
    is_workspace_valid INTEGER NOT NULL DEFAULT 1,
    project_id         TEXT,
    PRIMARY KEY (username, session_id)
);

CREATE TABLE IF NOT EXISTS chat_message (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    username   TEXT NOT NULL,
    session_id TEXT NOT NULL,
    role       TEXT NOT NULL,
    content    TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS session_output (
    username              TEXT NOT NULL,
    session_id            TEXT NOT NULL,
    raw_output            TEXT,
    events_json           TEXT,
    displayed_event_count INTEGER NOT NULL DEFAULT 20,
    updated_at            TEXT NOT NULL,
    PRIMARY KEY (username, session_id)
);

CREATE TABLE IF NOT EXISTS prompt_template (
    username       TEXT NOT NULL,
    id             TEXT NOT NULL,
    title          TEXT,
    content        TEXT,
    category       TEXT,
    icon           TEXT,
    is_custom      INTEGER NOT NULL DEFAULT 0,
    is_favorite    INTEGER NOT NULL DEFAULT 0,
    variables_json TEXT,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL,
    PRIMARY KEY (username, id)
);

CREATE TABLE IF NOT EXISTS input_history (
    id        INTEGER PRIMARY KEY AUTOINCREMENT,
    username  TEXT NOT NULL,
    text      TEXT,
    timestamp TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS quick_action (
    username   TEXT NOT NULL,
    id         TEXT NOT NULL,
    title      TEXT,
    icon       TEXT,
    prompt     TEXT,
    sort_order INTEGER NOT NULL DEFAULT 0,
    is_enabled INTEGER NOT NULL DEFAULT 1,
    PRIMARY KEY (username, id)
);

CREATE TABLE IF NOT EXISTS user_setting (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    username   TEXT NOT NULL,
    key        TEXT NOT NULL,
    value      TEXT,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS project (
    username        TEXT NOT NULL,
    project_id      TEXT NOT NULL,
    name            TEXT NOT NULL,
    git_url         TEXT NOT NULL,
    auth_type       TEXT NOT NULL DEFAULT 'none',
    https_username  TEXT,
    https_token     TEXT,
    ssh_private_key TEXT,
    ssh_passphrase  TEXT,
    branch          TEXT NOT NULL DEFAULT 'main',
    local_path      TEXT,
    last_sync_at    TEXT,
    status          TEXT NOT NULL DEFAULT 'pending',
    error_message   TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    PRIMARY KEY (username, project_id)
);

CREATE INDEX IF NOT EXISTS ix_chat_session_username_updated
    ON chat_session(username, updated_at DESC);
CREATE INDEX IF NOT EXISTS ix_chat_message_session
    ON chat_message(username, session_id);
CREATE INDEX IF NOT EXISTS ix_prompt_template_category
    ON prompt_template(username, category);
CREATE INDEX IF NOT EXISTS ix_input_history_timestamp
    ON input_history(username, timestamp DESC);
CREATE INDEX IF NOT EXISTS ix_quick_action_order
    ON quick_action(username, sort_order);
CREATE UNIQUE INDEX IF NOT EXISTS ux_user_setting_key
    ON user_setting(username, key);
CREATE INDEX IF NOT EXISTS ix_project_username_updated
    ON project(username, updated_at DESC);
CREATE UNIQUE INDEX IF NOT EXISTS ux_project_name
    ON project(username, name);
"""


def to_db_time(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as a sortable UTC ISO string (naive means UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


class Database:
    """A single shared SQLite connection guarded by a lock.

    The connection is opened lazily so an app can be constructed without
    touching the filesystem. Each ``connect()`` block is one transaction.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _open(self) -> sqlite3.Connection:
        if self._conn is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
            logger.info("Opened database %s", self.path)
            self._conn = conn
        return self._conn

    def initialize(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        with self._lock:
            self._open()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._open()
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            else:
                conn.commit()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
