"""Filename extension -> content category classification table."""

from pathlib import PurePosixPath
from typing import Dict

from common.types import ContentCategory

EXTENSION_CATEGORIES: Dict[str, ContentCategory] = {
    ".jpg": ContentCategory.IMAGE,
    ".jpeg": ContentCategory.IMAGE,
    ".png": ContentCategory.IMAGE,
    ".webp": ContentCategory.IMAGE,
    ".gif": ContentCategory.IMAGE,
    ".mp4": ContentCategory.VIDEO,
    ".mov": ContentCategory.VIDEO,
    ".mkv": ContentCategory.VIDEO,
    ".webm": ContentCategory.VIDEO,
}


def classify(filename: str) -> ContentCategory:
    """
    Classify a file by its extension; unknown extensions are documents.

    Args:
        filename: Original filename as declared by the client

    Returns:
        ContentCategory for the file
    """
    suffix = PurePosixPath(filename.replace("\\", "/")).suffix.lower()
    return EXTENSION_CATEGORIES.get(suffix, ContentCategory.DOCUMENT)
