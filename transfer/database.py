"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional


def init_database(database_path: Path) -> None:
    """
    Initialize database and create tables if they don't exist.

    Args:
        database_path: Location of the SQLite file
    """
    Path(database_path).parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(database_path) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS artifacts (
                id TEXT PRIMARY KEY,
                filename TEXT NOT NULL,
                content_category TEXT NOT NULL,
                size INTEGER NOT NULL,
                path TEXT NOT NULL,
                media_type TEXT NOT NULL,
                download_name TEXT NOT NULL,
                link TEXT NOT NULL,
                created_at TEXT NOT NULL,
                download_count INTEGER NOT NULL DEFAULT 0
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS quality_parameters (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS quality_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                feature TEXT NOT NULL,
                value TEXT NOT NULL,
                ratio REAL NOT NULL,
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_artifacts_created_at ON artifacts(created_at)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_quality_history_feature ON quality_history(feature)
        """)

        conn.commit()


@contextmanager
def get_db_connection(database_path: Path) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(str(database_path), timeout=30)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def get_row_value(row: Optional[sqlite3.Row], column: str, default: Any = None) -> Any:
    """
    Read a column from a row, tolerating missing columns and NULLs.
    """
    if row is None or column not in row.keys():
        return default
    value = row[column]
    return default if value is None else value
