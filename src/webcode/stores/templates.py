"""Prompt template persistence."""

import json
import logging
import sqlite3

from ..core import PromptTemplate
from ..db import Database, from_db_time, to_db_time

logger = logging.getLogger(__name__)


class PromptTemplateStore:
    def __init__(self, db: Database):
        self._db = db

    def list_templates(self, username: str) -> list[PromptTemplate]:
        return self._query("WHERE username = ?", (username,))

    def list_by_category(self, username: str, category: str) -> list[PromptTemplate]:
        return self._query("WHERE username = ? AND category = ?", (username, category))

    def list_favorites(self, username: str) -> list[PromptTemplate]:
        return self._query("WHERE username = ? AND is_favorite = 1", (username,))

    def get(self, username: str, template_id: str) -> PromptTemplate | None:
        found = self._query("WHERE username = ? AND id = ?", (username, template_id))
        return found[0] if found else None

    def upsert(self, username: str, template: PromptTemplate) -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO prompt_template (
                    username, id, title, content, category, icon, is_custom,
                    is_favorite, variables_json, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(username, id) DO UPDATE SET
                    title = excluded.title,
                    content = excluded.content,
                    category = excluded.category,
                    icon = excluded.icon,
                    is_custom = excluded.is_custom,
                    is_favorite = excluded.is_favorite,
                    variables_json = excluded.variables_json,
                    created_at = excluded.created_at,
                    updated_at = excluded.updated_at
                """,
                (
                    username,
                    template.id,
                    template.title,
                    template.content,
                    template.category,
                    template.icon,
                    int(template.is_custom),
                    int(template.is_favorite),
                    json.dumps(template.variables),
                    to_db_time(template.created_at),
                    to_db_time(template.updated_at),
                ),
            )

    def delete(self, username: str, template_id: str) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                "DELETE FROM prompt_template WHERE username = ? AND id = ?",
                (username, template_id),
            )
        return cur.rowcount > 0

    def count(self, username: str) -> int:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM prompt_template WHERE username = ?", (username,)
            ).fetchone()
        return row[0]

    def _query(self, where: str, params: tuple) -> list[PromptTemplate]:
        with self._db.connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM prompt_template {where} ORDER BY created_at, id", params
            ).fetchall()
        return [_row_to_template(r) for r in rows]


def _row_to_template(row: sqlite3.Row) -> PromptTemplate:
    variables: list[str] = []
    if row["variables_json"]:
        try:
            variables = list(json.loads(row["variables_json"]))
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("Invalid variables for template %s: %s", row["id"], e)

    return PromptTemplate(
        id=row["id"],
        title=row["title"] or "",
        content=row["content"] or "",
        category=row["category"] or "",
        icon=row["icon"] or "",
        is_custom=bool(row["is_custom"]),
        is_favorite=bool(row["is_favorite"]),
        variables=variables,
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
    )
