from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import List, Optional

from .errors import PersistenceError
from .models import ArchiveEntry

SQLITE_CONNECT_TIMEOUT_SECONDS = 30.0

SCHEMA = """
CREATE TABLE IF NOT EXISTS archive_entries (
    id TEXT PRIMARY KEY,
    url TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    storage_path TEXT NOT NULL,
    screenshot_path TEXT,
    archived_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_archive_entries_url ON archive_entries (url);
CREATE INDEX IF NOT EXISTS idx_archive_entries_archived_at ON archive_entries (archived_at);
"""


def get_connection(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, timeout=SQLITE_CONNECT_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    return conn


class ArchiveStore:
    """SQLite-backed persistence for archive entries."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def initialize(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with get_connection(self.db_path) as conn:
                conn.executescript(SCHEMA)
                conn.commit()
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"failed to initialize database at {self.db_path}: {exc}") from exc

    def create(self, entry: ArchiveEntry) -> None:
        try:
            with get_connection(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO archive_entries (
                        id,
                        url,
                        title,
                        storage_path,
                        screenshot_path,
                        archived_at,
                        created_at,
                        updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry.id,
                        entry.url,
                        entry.title,
                        entry.storage_path,
                        entry.screenshot_path,
                        entry.archived_at,
                        entry.created_at,
                        entry.updated_at,
                    ),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"failed to create archive entry in database for '{entry.url}': {exc}"
            ) from exc

    def get(self, entry_id: str) -> Optional[ArchiveEntry]:
        try:
            with get_connection(self.db_path) as conn:
                row = conn.execute(
                    "SELECT * FROM archive_entries WHERE id = ?",
                    (entry_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to read archive entry {entry_id}: {exc}") from exc
        return self._to_model(row) if row else None

    def list_entries(self, limit: Optional[int] = None) -> List[ArchiveEntry]:
        query = "SELECT * FROM archive_entries ORDER BY archived_at DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        try:
            with get_connection(self.db_path) as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to list archive entries: {exc}") from exc
        return [self._to_model(row) for row in rows]

    def count(self) -> int:
        try:
            with get_connection(self.db_path) as conn:
                row = conn.execute("SELECT COUNT(*) AS n FROM archive_entries").fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to count archive entries: {exc}") from exc
        return int(row["n"])

    @staticmethod
    def _to_model(row) -> ArchiveEntry:
        return ArchiveEntry(
            id=row["id"],
            url=row["url"],
            title=row["title"],
            storage_path=row["storage_path"],
            screenshot_path=row["screenshot_path"],
            archived_at=row["archived_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
