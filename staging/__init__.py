"""Chunk staging and reassembly."""

from staging.chunk_store import ChunkStore
from staging.reassembler import Reassembler

__all__ = [
    "ChunkStore",
    "Reassembler",
]
