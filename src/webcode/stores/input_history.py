"""Input history persistence."""

from datetime import datetime

from ..core import InputHistoryItem, utcnow
from ..db import Database, from_db_time, to_db_time


class InputHistoryStore:
    def __init__(self, db: Database):
        self._db = db

    def recent(self, username: str, limit: int = 50) -> list[InputHistoryItem]:
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT id, text, timestamp FROM input_history WHERE username = ? "
                "ORDER BY timestamp DESC, id DESC LIMIT ?",
                (username, limit),
            ).fetchall()
        return [InputHistoryItem(r["id"], r["text"] or "", from_db_time(r["timestamp"])) for r in rows]

    def search(self, username: str, text: str, limit: int = 10) -> list[InputHistoryItem]:
        """Case-sensitive substring match, newest first."""
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT id, text, timestamp FROM input_history "
                "WHERE username = ? AND text IS NOT NULL AND instr(text, ?) > 0 "
                "ORDER BY timestamp DESC, id DESC LIMIT ?",
                (username, text, limit),
            ).fetchall()
        return [InputHistoryItem(r["id"], r["text"] or "", from_db_time(r["timestamp"])) for r in rows]

    def add(self, username: str, text: str, timestamp: datetime | None = None) -> int:
        with self._db.connect() as conn:
            cur = conn.execute(
                "INSERT INTO input_history (username, text, timestamp) VALUES (?, ?, ?)",
                (username, text, to_db_time(timestamp or utcnow())),
            )
        return cur.lastrowid

    def clear(self, username: str) -> int:
        with self._db.connect() as conn:
            cur = conn.execute("DELETE FROM input_history WHERE username = ?", (username,))
        return cur.rowcount

    def count(self, username: str) -> int:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM input_history WHERE username = ?", (username,)
            ).fetchone()
        return row[0]
