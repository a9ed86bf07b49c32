"""Configuration settings for the transfer service."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from common.constants import DEFAULT_PORT, MAX_CHUNK_SIZE_BYTES


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration, loaded once by the entry point and handed to
    every component that needs it.
    """
    host: str
    port: int
    base_url: str
    chunks_dir: Path
    uploads_dir: Path
    database_path: Path
    ffmpeg_binary: str = "ffmpeg"
    max_chunk_bytes: int = MAX_CHUNK_SIZE_BYTES

    @classmethod
    def for_data_dir(cls, data_dir: Path, base_url: str = "http://testserver", **overrides) -> "Settings":
        """
        Build settings that keep every file under one directory.

        Args:
            data_dir: Root for chunks, uploads and the database
            base_url: Base URL used for download links
        """
        data_dir = Path(data_dir)
        values = dict(
            host="127.0.0.1",
            port=DEFAULT_PORT,
            base_url=base_url,
            chunks_dir=data_dir / "chunks",
            uploads_dir=data_dir / "uploads",
            database_path=data_dir / "transfer.db",
        )
        values.update(overrides)
        return cls(**values)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Read settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Settings instance
    """
    env = os.environ if environ is None else environ

    port = int(env.get("TRANSFER_PORT", str(DEFAULT_PORT)))
    data_dir = Path(env.get("TRANSFER_DATA_DIR", "./data"))

    return Settings(
        host=env.get("TRANSFER_HOST", "0.0.0.0"),
        port=port,
        base_url=env.get("TRANSFER_BASE_URL", f"http://localhost:{port}").rstrip("/"),
        chunks_dir=Path(env.get("TRANSFER_CHUNKS_DIR", str(data_dir / "chunks"))),
        uploads_dir=Path(env.get("TRANSFER_UPLOADS_DIR", str(data_dir / "uploads"))),
        database_path=Path(env.get("TRANSFER_DATABASE_PATH", str(data_dir / "transfer.db"))),
        ffmpeg_binary=env.get("TRANSFER_FFMPEG_BINARY", "ffmpeg"),
        max_chunk_bytes=int(env.get("TRANSFER_MAX_CHUNK_BYTES", str(MAX_CHUNK_SIZE_BYTES))),
    )
