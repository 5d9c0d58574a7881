"""Quick action persistence."""

import sqlite3

from ..core import QuickAction
from ..db import Database

_UPSERT = """
    INSERT INTO quick_action (username, id, title, icon, prompt, sort_order, is_enabled)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(username, id) DO UPDATE SET
        title = excluded.title,
        icon = excluded.icon,
        prompt = excluded.prompt,
        sort_order = excluded.sort_order,
        is_enabled = excluded.is_enabled
"""


class QuickActionStore:
    def __init__(self, db: Database):
        self._db = db

    def list_actions(self, username: str) -> list[QuickAction]:
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM quick_action WHERE username = ? ORDER BY sort_order, id",
                (username,),
            ).fetchall()
        return [_row_to_action(r) for r in rows]

    def get(self, username: str, action_id: str) -> QuickAction | None:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM quick_action WHERE username = ? AND id = ?",
                (username, action_id),
            ).fetchone()
        return _row_to_action(row) if row else None

    def upsert(self, username: str, action: QuickAction) -> None:
        with self._db.connect() as conn:
            conn.execute(_UPSERT, _params(username, action))

    def replace_all(self, username: str, actions: list[QuickAction]) -> None:
        """Swap the owner's whole set in a single transaction."""
        with self._db.connect() as conn:
            conn.execute("DELETE FROM quick_action WHERE username = ?", (username,))
            conn.executemany(_UPSERT, [_params(username, a) for a in actions])

    def delete(self, username: str, action_id: str) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                "DELETE FROM quick_action WHERE username = ? AND id = ?",
                (username, action_id),
            )
        return cur.rowcount > 0

    def clear(self, username: str) -> int:
        with self._db.connect() as conn:
            cur = conn.execute("DELETE FROM quick_action WHERE username = ?", (username,))
        return cur.rowcount

    def count(self, username: str) -> int:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM quick_action WHERE username = ?", (username,)
            ).fetchone()
        return row[0]


def _params(username: str, action: QuickAction) -> tuple:
    return (
        username,
        action.id,
        action.title,
        action.icon,
        action.content,
        action.order,
        int(action.is_enabled),
    )


def _row_to_action(row: sqlite3.Row) -> QuickAction:
    return QuickAction(
        id=row["id"],
        title=row["title"] or "",
        content=row["prompt"] or "",
        icon=row["icon"] or "",
        order=row["sort_order"],
        is_enabled=bool(row["is_enabled"]),
    )
