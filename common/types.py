"""Shared data type definitions (ContentCategory, StagedChunk, Artifact, etc.)."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ContentCategory(str, Enum):
    """
    Closed set of content categories; each maps to one compression engine.
    """
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


@dataclass(frozen=True)
class StagedChunk:
    """
    A chunk persisted in the staging area.
    """
    upload_id: str
    index: int
    path: Path
    size: int


@dataclass(frozen=True)
class UploadManifest:
    """
    Declared shape of an upload, recorded by its first chunk.
    """
    upload_id: str
    total: int
    filename: str


@dataclass(frozen=True)
class Artifact:
    """
    A whole file on disk together with its derived metadata.
    """
    path: Path
    original_filename: str
    size_bytes: int
    content_category: ContentCategory
