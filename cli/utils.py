"""Utility functions for CLI operations."""

import math
import sys
import time
import uuid
from pathlib import Path
from typing import Iterator, Tuple

GREEN = "\033[32m"
RESET = "\033[0m"


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def count_chunks(file_size: int, chunk_size: int) -> int:
    """
    Number of chunks a file is split into; an empty file still sends one.
    """
    return max(1, math.ceil(file_size / chunk_size))


def iter_file_chunks(file_path: Path, chunk_size: int) -> Iterator[Tuple[int, bytes]]:
    """
    Read a file as (index, bytes) pairs of at most chunk_size bytes.

    Yields:
        Chunk index and chunk data; a single empty chunk for an empty file
    """
    with open(file_path, 'rb') as f:
        index = 0
        while True:
            data = f.read(chunk_size)
            if not data and index > 0:
                break
            yield index, data
            index += 1
            if not data:
                break


def new_upload_id() -> str:
    """
    Generate an upload id in the timestamp-random form the browser client used.
    """
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def print_progress(filename: str, sent_chunks: int, total_chunks: int) -> None:
    """Display chunk upload progress on one line."""
    progress = (sent_chunks / total_chunks) * 100
    sys.stdout.write(
        f"\rUploading {filename}: chunk {sent_chunks}/{total_chunks} ({GREEN}{progress:.1f}%{RESET})"
    )
    if sent_chunks == total_chunks:
        sys.stdout.write('\n')
    sys.stdout.flush()
