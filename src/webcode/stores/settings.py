"""Per-owner key/value settings."""

from ..core import utcnow
from ..db import Database, to_db_time


class UserSettingStore:
    def __init__(self, db: Database):
        self._db = db

    def get(self, username: str, key: str) -> str | None:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT value FROM user_setting WHERE username = ? AND key = ?",
                (username, key),
            ).fetchone()
        return row["value"] if row else None

    def exists(self, username: str, key: str) -> bool:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM user_setting WHERE username = ? AND key = ?",
                (username, key),
            ).fetchone()
        return row is not None

    def all(self, username: str) -> dict[str, str | None]:
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT key, value FROM user_setting WHERE username = ? ORDER BY key",
                (username,),
            ).fetchall()
        return {r["key"]: r["value"] for r in rows}

    def set(self, username: str, key: str, value: str | None) -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO user_setting (username, key, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(username, key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (username, key, value, to_db_time(utcnow())),
            )

    def delete(self, username: str, key: str) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                "DELETE FROM user_setting WHERE username = ? AND key = ?", (username, key)
            )
        return cur.rowcount > 0

    def count(self, username: str) -> int:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM user_setting WHERE username = ?", (username,)
            ).fetchone()
        return row[0]
