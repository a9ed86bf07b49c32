"""Orders staged chunks and concatenates them into one artifact."""

import re
import uuid
from pathlib import Path
from typing import List

from common.exceptions import CompletenessError
from common.logging_config import get_logger
from common.types import Artifact, StagedChunk
from compression.classifier import classify
from staging.chunk_store import ChunkStore

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.\-]")


def sanitize_filename(filename: str) -> str:
    """
    Replace every character outside [a-zA-Z0-9.-] with an underscore.

    Args:
        filename: Client-supplied filename

    Returns:
        Filename safe to use as a path component
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", filename)
    return cleaned.lstrip(".") or "upload"


def check_completeness(upload_id: str, chunks: List[StagedChunk], total: int) -> None:
    """
    Verify that the staged indices are exactly 0..total-1.

    Raises:
        CompletenessError: If any index is missing or unexpected
    """
    present = [chunk.index for chunk in chunks]
    expected = set(range(total))
    missing = sorted(expected - set(present))
    unexpected = sorted(set(present) - expected)

    if missing or unexpected or len(present) != total:
        details = []
        if missing:
            details.append(f"missing indices {missing}")
        if unexpected:
            details.append(f"unexpected indices {unexpected}")
        if not details:
            details.append(f"{len(present)} chunks staged")
        raise CompletenessError(
            f"Upload {upload_id} is incomplete: expected {total} chunks, " + ", ".join(details)
        )


class Reassembler:
    """
    Builds one artifact from the staged chunks of an upload.

    Chunks are deleted one by one as they are appended, so memory use is
    bounded by a single read piece. An interrupted assembly cannot be resumed:
    the chunks consumed before the interruption are gone and a second attempt
    fails with CompletenessError.
    """

    def __init__(self, chunk_store: ChunkStore, uploads_dir: Path):
        self.chunk_store = chunk_store
        self.uploads_dir = Path(uploads_dir)

    def assemble(self, upload_id: str, filename: str, total: int) -> Artifact:
        """
        Concatenate the staged chunks of an upload in index order.

        Args:
            upload_id: Client-chosen upload identifier
            filename: Original filename, used for naming and classification
            total: Number of chunks the upload declared

        Returns:
            The reassembled artifact

        Raises:
            CompletenessError: If the staged chunks are not exactly 0..total-1,
                or if the written size does not match the staged chunks
        """
        chunks = self.chunk_store.list_ordered(upload_id)
        check_completeness(upload_id, chunks, total)

        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        out_path = self.uploads_dir / f"{uuid.uuid4()}-{sanitize_filename(filename)}"
        expected_size = sum(chunk.size for chunk in chunks)

        logger.info(f"Assembling upload {upload_id}: {total} chunks, {expected_size} bytes -> {out_path.name}")

        written = 0
        with open(out_path, "wb") as out:
            for chunk in chunks:
                for piece in self.chunk_store.read_chunk_streaming(chunk):
                    out.write(piece)
                    written += len(piece)
                out.flush()
                self.chunk_store.remove(upload_id, chunk.index)

        self.chunk_store.discard_session(upload_id)

        actual_size = out_path.stat().st_size
        if actual_size != expected_size or written != expected_size:
            out_path.unlink(missing_ok=True)
            raise CompletenessError(
                f"Upload {upload_id} reassembled to {actual_size} bytes, expected {expected_size}"
            )

        artifact = Artifact(
            path=out_path,
            original_filename=filename,
            size_bytes=actual_size,
            content_category=classify(filename),
        )
        logger.info(
            f"Assembled upload {upload_id} into {out_path.name} "
            f"({actual_size} bytes, category={artifact.content_category.value})"
        )
        return artifact
