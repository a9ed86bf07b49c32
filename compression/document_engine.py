"""Lossless gzip compression for documents."""

import asyncio
import gzip
import shutil
from pathlib import Path

from common.constants import STREAM_PIECE_SIZE_BYTES
from common.logging_config import get_logger
from common.types import Artifact, ContentCategory
from compression.base import CompressionEngine, CompressionResult

logger = get_logger(__name__)

GZIP_MEDIA_TYPE = "application/gzip"


def gzip_file(source: Path, destination: Path) -> None:
    with open(source, "rb") as src, gzip.open(destination, "wb") as dst:
        shutil.copyfileobj(src, dst, STREAM_PIECE_SIZE_BYTES)


class DocumentEngine(CompressionEngine):
    """Generic stream compressor; no quality parameter, no feedback."""

    category = ContentCategory.DOCUMENT

    async def compress(self, artifact: Artifact) -> CompressionResult:
        output_path = self.output_path_for(artifact)

        try:
            await asyncio.to_thread(gzip_file, artifact.path, output_path)
        except Exception:
            self.discard_output(output_path)
            raise

        compressed = self.replace_input(artifact, output_path)
        logger.info(
            f"Gzipped {artifact.original_filename}: {artifact.size_bytes} -> {compressed.size_bytes} bytes"
        )

        return CompressionResult(
            artifact=compressed,
            original_size=artifact.size_bytes,
            compressed_size=compressed.size_bytes,
            media_type=GZIP_MEDIA_TYPE,
            download_suffix=".gz",
        )
