import json
import sqlite3
from datetime import datetime

from wiki.domain.models import Attachment, Page


def _attachments_to_json(attachments: tuple[Attachment, ...]) -> str:
    return json.dumps(
        [
            {
                "file_id": a.file_id,
                "file_name": a.file_name,
                "mime_type": a.mime_type,
                "last_modified_utc": a.last_modified_utc.isoformat(),
            }
            for a in attachments
        ],
        ensure_ascii=False,
    )


def _attachments_from_json(raw: str) -> tuple[Attachment, ...]:
    return tuple(
        Attachment(
            file_id=str(a["file_id"]),
            file_name=str(a["file_name"]),
            mime_type=str(a["mime_type"]),
            last_modified_utc=datetime.fromisoformat(a["last_modified_utc"]),
        )
        for a in json.loads(raw or "[]")
    )


def _row_to_page(row: sqlite3.Row) -> Page:
    return Page(
        id=int(row["id"]),
        name=str(row["name"]),
        content=str(row["content"]),
        last_modified_utc=datetime.fromisoformat(row["last_modified_utc"]),
        attachments=_attachments_from_json(row["attachments_json"]),
    )


class PageRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list_all(self) -> list[Page]:
        rows = self._conn.execute("SELECT * FROM pages").fetchall()
        return [_row_to_page(r) for r in rows]

    def get_by_id(self, page_id: int) -> Page | None:
        row = self._conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()
        if row is None:
            return None
        return _row_to_page(row)

    def get_by_name(self, name: str) -> Page | None:
        # Served by ix_pages_name, which shares the NOCASE collation.
        row = self._conn.execute(
            "SELECT * FROM pages WHERE name = ? COLLATE NOCASE", (name,)
        ).fetchone()
        if row is None:
            return None
        return _row_to_page(row)

    def insert(self, page: Page) -> Page:
        """Insert a new record; `page.id` is ignored and a fresh id assigned."""

        cur = self._conn.execute(
            """
            INSERT INTO pages(name, content, last_modified_utc, attachments_json)
            VALUES(?, ?, ?, ?)
            """,
            (
                page.name,
                page.content,
                page.last_modified_utc.isoformat(),
                _attachments_to_json(page.attachments),
            ),
        )
        self._conn.commit()
        if cur.lastrowid is None:
            raise RuntimeError("Failed to create page: missing lastrowid")
        created = self.get_by_id(int(cur.lastrowid))
        if created is None:
            raise RuntimeError(f"Page vanished after insert: {cur.lastrowid}")
        return created

    def update(self, page: Page) -> bool:
        cur = self._conn.execute(
            """
            UPDATE pages
            SET name = ?, content = ?, last_modified_utc = ?, attachments_json = ?
            WHERE id = ?
            """,
            (
                page.name,
                page.content,
                page.last_modified_utc.isoformat(),
                _attachments_to_json(page.attachments),
                page.id,
            ),
        )
        self._conn.commit()
        return cur.rowcount > 0

    def delete(self, page_id: int) -> bool:
        cur = self._conn.execute("DELETE FROM pages WHERE id = ?", (page_id,))
        self._conn.commit()
        return cur.rowcount > 0
