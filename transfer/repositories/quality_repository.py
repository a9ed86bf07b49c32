"""Quality parameter repository: key-value store plus adjustment history."""

import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from common.logging_config import get_logger
from compression.quality_model import QualityAdjustment
from transfer.database import get_db_connection

logger = get_logger(__name__)

_TRANSITION = re.compile(r"^(-?\d+)->(-?\d+)$")


class QualityRepository:
    """
    SQLite-backed KeyValueStore for the adaptive quality model.
    """

    def __init__(self, database_path: Path):
        self.database_path = database_path

    def get_value(self, name: str) -> Optional[str]:
        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT value FROM quality_parameters WHERE key = ?", (name,))
            row = cursor.fetchone()
            return None if row is None else row["value"]

    def set_value(self, name: str, value: str) -> None:
        with get_db_connection(self.database_path) as conn:
            conn.execute(
                """
                INSERT INTO quality_parameters (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (name, value)
            )
            conn.commit()

    def append_history(self, name: str, transition: str, ratio: float, created_at: datetime) -> None:
        with get_db_connection(self.database_path) as conn:
            conn.execute(
                "INSERT INTO quality_history (feature, value, ratio, created_at) VALUES (?, ?, ?, ?)",
                (name, transition, ratio, created_at.isoformat())
            )
            conn.commit()

    def list_history(self, name: Optional[str], limit: int) -> List[QualityAdjustment]:
        query = "SELECT feature, value, ratio, created_at FROM quality_history"
        params: list = []
        if name is not None:
            query += " WHERE feature = ?"
            params.append(name)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()

        adjustments = []
        for row in rows:
            match = _TRANSITION.match(row["value"])
            if match is None:
                logger.warning(f"Skipping malformed history record {row['value']!r} for {row['feature']}")
                continue
            adjustments.append(
                QualityAdjustment(
                    name=row["feature"],
                    previous_value=int(match.group(1)),
                    new_value=int(match.group(2)),
                    ratio=row["ratio"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
            )
        return adjustments
