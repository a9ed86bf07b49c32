"""Utility helper functions for the transfer service."""

import uuid
from datetime import datetime, timezone


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """
    Get the current time as a timezone-aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def build_download_link(base_url: str, artifact_id: str) -> str:
    """
    Build the public retrieval link for an artifact.

    Args:
        base_url: Configured base URL (e.g., "http://localhost:4000")
        artifact_id: Catalog id

    Returns:
        Absolute download URL
    """
    return f"{base_url.rstrip('/')}/download/{artifact_id}"
