"""Catalog repository for artifact database operations."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from common.logging_config import get_logger
from common.types import ContentCategory
from transfer.database import get_db_connection, get_row_value

logger = get_logger(__name__)

_COLUMNS = (
    "id, filename, content_category, size, path, media_type, "
    "download_name, link, created_at, download_count"
)


@dataclass
class CatalogEntry:
    id: str
    filename: str
    content_category: ContentCategory
    size_bytes: int
    storage_location: str
    media_type: str
    download_name: str
    download_link: str
    created_at: datetime
    download_count: int = 0


def _row_to_entry(row: sqlite3.Row) -> CatalogEntry:
    return CatalogEntry(
        id=row["id"],
        filename=row["filename"],
        content_category=ContentCategory(row["content_category"]),
        size_bytes=row["size"],
        storage_location=row["path"],
        media_type=row["media_type"],
        download_name=row["download_name"],
        download_link=row["link"],
        created_at=datetime.fromisoformat(row["created_at"]),
        download_count=get_row_value(row, "download_count", 0),
    )


class CatalogRepository:
    def __init__(self, database_path: Path):
        self.database_path = database_path

    def create_entry(self, entry: CatalogEntry) -> CatalogEntry:
        logger.debug(f"Creating catalog entry [id={entry.id}]")
        with get_db_connection(self.database_path) as conn:
            conn.execute(
                f"""
                INSERT INTO artifacts ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.filename,
                    entry.content_category.value,
                    entry.size_bytes,
                    entry.storage_location,
                    entry.media_type,
                    entry.download_name,
                    entry.download_link,
                    entry.created_at.isoformat(),
                    entry.download_count,
                )
            )
            conn.commit()
        return entry

    def get_by_id(self, artifact_id: str) -> Optional[CatalogEntry]:
        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {_COLUMNS} FROM artifacts WHERE id = ?", (artifact_id,))
            row = cursor.fetchone()

            if row is None:
                return None
            return _row_to_entry(row)

    def increment_and_get(self, artifact_id: str) -> Optional[CatalogEntry]:
        """
        Increment the download counter and return the updated entry in one
        transaction. Unknown ids leave the table untouched.
        """
        with get_db_connection(self.database_path) as conn:
            try:
                cursor = conn.cursor()
                cursor.execute("BEGIN IMMEDIATE")
                cursor.execute(
                    "UPDATE artifacts SET download_count = download_count + 1 WHERE id = ?",
                    (artifact_id,)
                )
                if cursor.rowcount == 0:
                    conn.rollback()
                    return None

                cursor.execute(f"SELECT {_COLUMNS} FROM artifacts WHERE id = ?", (artifact_id,))
                row = cursor.fetchone()
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Failed to record download [id={artifact_id}]: {e}", exc_info=True)
                raise

        return _row_to_entry(row)

    def list_recent(self, limit: int) -> List[CatalogEntry]:
        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_COLUMNS}
                FROM artifacts
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (limit,)
            )
            return [_row_to_entry(row) for row in cursor.fetchall()]

    def count(self) -> int:
        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM artifacts")
            return cursor.fetchone()[0]
