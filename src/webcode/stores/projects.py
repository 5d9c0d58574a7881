"""Git project descriptor persistence."""

import sqlite3

from ..core import Project
from ..db import Database, from_db_time, to_db_time

_COLUMNS = (
    "project_id", "name", "git_url", "auth_type", "https_username", "https_token",
    "ssh_private_key", "ssh_passphrase", "branch", "local_path", "last_sync_at",
    "status", "error_message", "created_at", "updated_at",
)
_TIME_COLUMNS = {"last_sync_at", "created_at", "updated_at"}


class ProjectStore:
    def __init__(self, db: Database):
        self._db = db

    def list_projects(self, username: str) -> list[Project]:
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM project WHERE username = ? ORDER BY updated_at DESC",
                (username,),
            ).fetchall()
        return [_row_to_project(r) for r in rows]

    def get(self, username: str, project_id: str) -> Project | None:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM project WHERE username = ? AND project_id = ?",
                (username, project_id),
            ).fetchone()
        return _row_to_project(row) if row else None

    def exists_by_name(self, username: str, name: str, exclude_id: str | None = None) -> bool:
        sql = "SELECT 1 FROM project WHERE username = ? AND name = ?"
        params: tuple = (username, name)
        if exclude_id:
            sql += " AND project_id != ?"
            params += (exclude_id,)
        with self._db.connect() as conn:
            return conn.execute(sql, params).fetchone() is not None

    def upsert(self, username: str, project: Project) -> None:
        placeholders = ", ".join("?" for _ in range(len(_COLUMNS) + 1))
        updates = ", ".join(f"{c} = excluded.{c}" for c in _COLUMNS if c != "project_id")
        values = [username]
        for column in _COLUMNS:
            value = getattr(project, column)
            values.append(to_db_time(value) if column in _TIME_COLUMNS else value)

        with self._db.connect() as conn:
            conn.execute(
                f"INSERT INTO project (username, {', '.join(_COLUMNS)}) VALUES ({placeholders}) "
                f"ON CONFLICT(username, project_id) DO UPDATE SET {updates}",
                values,
            )

    def delete(self, username: str, project_id: str) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                "DELETE FROM project WHERE username = ? AND project_id = ?",
                (username, project_id),
            )
        return cur.rowcount > 0


def _row_to_project(row: sqlite3.Row) -> Project:
    values = {}
    for column in _COLUMNS:
        value = row[column]
        values[column] = from_db_time(value) if column in _TIME_COLUMNS else value
    return Project(**values)
