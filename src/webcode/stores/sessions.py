"""Session and message persistence.

A save is three separate statements (upsert the session row, delete its
messages, insert the current messages). They are deliberately exposed as
separate calls; callers decide how to sequence them.
"""

import sqlite3
from collections import defaultdict

from ..core import DEFAULT_SESSION_TITLE, Message, Session
from ..db import Database, from_db_time, to_db_time


class SessionStore:
    """Owner-scoped access to the chat_session and chat_message tables."""

    def __init__(self, db: Database):
        self._db = db

    def list_sessions(self, username: str) -> list[Session]:
        """Return all sessions of an owner, most recently updated first."""
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM chat_session WHERE username = ? ORDER BY updated_at DESC",
                (username,),
            ).fetchall()
            message_rows = conn.execute(
                "SELECT session_id, role, content, created_at FROM chat_message "
                "WHERE username = ? ORDER BY id",
                (username,),
            ).fetchall()

        by_session: dict[str, list[Message]] = defaultdict(list)
        for row in message_rows:
            by_session[row["session_id"]].append(_row_to_message(row))

        return [_row_to_session(row, by_session.get(row["session_id"], [])) for row in rows]

    def get_session(self, username: str, session_id: str) -> Session | None:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM chat_session WHERE username = ? AND session_id = ?",
                (username, session_id),
            ).fetchone()
            if row is None:
                return None
            messages = self._read_messages(conn, username, session_id)
        return _row_to_session(row, messages)

    def exists(self, username: str, session_id: str) -> bool:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM chat_session WHERE username = ? AND session_id = ?",
                (username, session_id),
            ).fetchone()
        return row is not None

    def upsert_session(self, username: str, session: Session) -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO chat_session (
                    username, session_id, title, workspace_path, tool_id,
                    created_at, updated_at, is_workspace_valid, project_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(username, session_id) DO UPDATE SET
                    title = excluded.title,
                    workspace_path = excluded.workspace_path,
                    tool_id = excluded.tool_id,
                    created_at = excluded.created_at,
                    updated_at = excluded.updated_at,
                    is_workspace_valid = excluded.is_workspace_valid,
                    project_id = excluded.project_id
                """,
                (
                    username,
                    session.session_id,
                    session.title,
                    session.workspace_path,
                    session.tool_id,
                    to_db_time(session.created_at),
                    to_db_time(session.updated_at),
                    int(session.is_workspace_valid),
                    session.project_id,
                ),
            )

    def delete_messages(self, username: str, session_id: str) -> int:
        with self._db.connect() as conn:
            cur = conn.execute(
                "DELETE FROM chat_message WHERE username = ? AND session_id = ?",
                (username, session_id),
            )
        return cur.rowcount

    def insert_messages(self, username: str, session_id: str, messages: list[Message]) -> None:
        if not messages:
            return
        with self._db.connect() as conn:
            conn.executemany(
                "INSERT INTO chat_message (username, session_id, role, content, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                [
                    (username, session_id, m.role, m.content, to_db_time(m.created_at))
                    for m in messages
                ],
            )

    def delete_session(self, username: str, session_id: str) -> bool:
        """Delete the session row. Returns False when nothing matched."""
        with self._db.connect() as conn:
            cur = conn.execute(
                "DELETE FROM chat_session WHERE username = ? AND session_id = ?",
                (username, session_id),
            )
        return cur.rowcount > 0

    def set_workspace_valid(self, username: str, session_id: str, valid: bool) -> None:
        """Update only the workspace flag; updated_at is left alone."""
        with self._db.connect() as conn:
            conn.execute(
                "UPDATE chat_session SET is_workspace_valid = ? "
                "WHERE username = ? AND session_id = ?",
                (int(valid), username, session_id),
            )

    def count(self, username: str) -> int:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM chat_session WHERE username = ?", (username,)
            ).fetchone()
        return row[0]

    # ── Private helpers ──────────────────────────────────────────────

    def _read_messages(
        self, conn: sqlite3.Connection, username: str, session_id: str
    ) -> list[Message]:
        rows = conn.execute(
            "SELECT role, content, created_at FROM chat_message "
            "WHERE username = ? AND session_id = ? ORDER BY id",
            (username, session_id),
        ).fetchall()
        return [_row_to_message(r) for r in rows]


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        role=row["role"],
        content=row["content"] or "",
        created_at=from_db_time(row["created_at"]),
    )


def _row_to_session(row: sqlite3.Row, messages: list[Message]) -> Session:
    return Session(
        session_id=row["session_id"],
        title=row["title"] or DEFAULT_SESSION_TITLE,
        workspace_path=row["workspace_path"] or "",
        tool_id=row["tool_id"] or "",
        messages=messages,
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
        is_workspace_valid=bool(row["is_workspace_valid"]),
        project_id=row["project_id"],
    )
