"""Output panel state persistence (one row per session)."""

import sqlite3

from ..core import OutputPanelState
from ..db import Database, from_db_time, to_db_time


class SessionOutputStore:
    def __init__(self, db: Database):
        self._db = db

    def get(self, username: str, session_id: str) -> OutputPanelState | None:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM session_output WHERE username = ? AND session_id = ?",
                (username, session_id),
            ).fetchone()
        return _row_to_state(row) if row else None

    def upsert(self, username: str, state: OutputPanelState) -> None:
        """Overwrite the stored state for the session wholesale."""
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO session_output (
                    username, session_id, raw_output, events_json,
                    displayed_event_count, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(username, session_id) DO UPDATE SET
                    raw_output = excluded.raw_output,
                    events_json = excluded.events_json,
                    displayed_event_count = excluded.displayed_event_count,
                    updated_at = excluded.updated_at
                """,
                (
                    username,
                    state.session_id,
                    state.raw_output,
                    state.events_json,
                    state.displayed_event_count,
                    to_db_time(state.updated_at),
                ),
            )

    def delete(self, username: str, session_id: str) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                "DELETE FROM session_output WHERE username = ? AND session_id = ?",
                (username, session_id),
            )
        return cur.rowcount > 0

    def count(self, username: str) -> int:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM session_output WHERE username = ?", (username,)
            ).fetchone()
        return row[0]


def _row_to_state(row: sqlite3.Row) -> OutputPanelState:
    return OutputPanelState(
        session_id=row["session_id"],
        raw_output=row["raw_output"],
        events_json=row["events_json"],
        displayed_event_count=row["displayed_event_count"],
        updated_at=from_db_time(row["updated_at"]),
    )
