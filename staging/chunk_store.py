"""Manages staged upload chunks on disk: write, ordered listing, removal."""

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional

from common.constants import CHUNK_FILE_SUFFIX, MANIFEST_FILENAME, STREAM_PIECE_SIZE_BYTES
from common.exceptions import StorageWriteError
from common.logging_config import get_logger
from common.types import StagedChunk, UploadManifest

logger = get_logger(__name__)


class ChunkStore:
    """
    Staging area keyed by (upload_id, index).

    Each upload gets its own directory named after the SHA-256 of the upload
    id; chunks live in it as ``<index>.chk`` next to a ``manifest.json`` that
    records the total declared by the first chunk.
    """

    def __init__(self, chunks_dir: Path):
        """
        Initialize chunk store.

        Args:
            chunks_dir: Root directory for staged chunks
        """
        self.chunks_dir = Path(chunks_dir)

    def ensure_directory(self) -> None:
        """Ensure the staging root exists."""
        self.chunks_dir.mkdir(parents=True, exist_ok=True)

    def get_session_dir(self, upload_id: str) -> Path:
        """
        Get the staging directory for an upload.

        Args:
            upload_id: Client-chosen upload identifier

        Returns:
            Path of the upload's directory (may not exist yet)
        """
        digest = hashlib.sha256(upload_id.encode("utf-8")).hexdigest()
        return self.chunks_dir / digest

    def get_chunk_path(self, upload_id: str, index: int) -> Path:
        return self.get_session_dir(upload_id) / f"{index}{CHUNK_FILE_SUFFIX}"

    def put(self, upload_id: str, index: int, data: bytes) -> StagedChunk:
        """
        Write chunk data, replacing any previous content for the same index.

        The data goes to a temporary file that is renamed over the target, so
        a concurrent retry of the same index never leaves a torn chunk behind.

        Args:
            upload_id: Client-chosen upload identifier
            index: Zero-based chunk index
            data: Raw chunk bytes

        Returns:
            The staged chunk

        Raises:
            StorageWriteError: If the chunk cannot be written
        """
        session_dir = self.get_session_dir(upload_id)
        target = self.get_chunk_path(upload_id, index)

        try:
            session_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=session_dir, prefix=f".{index}-", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to stage chunk {index} of upload {upload_id}: {e}")
            raise StorageWriteError(f"Could not store chunk {index} of upload {upload_id}: {e}") from e

        logger.debug(f"Staged chunk {index} of upload {upload_id} ({len(data)} bytes)")
        return StagedChunk(upload_id=upload_id, index=index, path=target, size=len(data))

    def list_ordered(self, upload_id: str) -> List[StagedChunk]:
        """
        List staged chunks for an upload sorted by numeric index.

        Args:
            upload_id: Client-chosen upload identifier

        Returns:
            Chunks in ascending index order; empty if none are staged
        """
        session_dir = self.get_session_dir(upload_id)
        if not session_dir.is_dir():
            return []

        chunks = []
        for filepath in session_dir.glob(f"*{CHUNK_FILE_SUFFIX}"):
            try:
                index = int(filepath.stem)
            except ValueError:
                logger.warning(f"Ignoring unexpected file in staging area: {filepath}")
                continue
            chunks.append(
                StagedChunk(
                    upload_id=upload_id,
                    index=index,
                    path=filepath,
                    size=filepath.stat().st_size,
                )
            )

        chunks.sort(key=lambda chunk: chunk.index)
        return chunks

    def read_chunk_streaming(
        self, chunk: StagedChunk, piece_size: int = STREAM_PIECE_SIZE_BYTES
    ) -> Iterator[bytes]:
        """
        Stream chunk data in pieces.

        Args:
            chunk: Staged chunk to read
            piece_size: Size of each piece in bytes (default 64KB)

        Yields:
            Chunk data pieces
        """
        with open(chunk.path, "rb") as f:
            while True:
                piece = f.read(piece_size)
                if not piece:
                    break
                yield piece

    def remove(self, upload_id: str, index: int) -> bool:
        """
        Delete one staged chunk.

        Returns:
            True if the chunk was deleted, False if it did not exist
        """
        filepath = self.get_chunk_path(upload_id, index)
        try:
            filepath.unlink()
            return True
        except FileNotFoundError:
            return False

    def declare_session(self, upload_id: str, total: int, filename: str) -> UploadManifest:
        """
        Record the manifest of an upload unless one already exists.

        Args:
            upload_id: Client-chosen upload identifier
            total: Number of chunks declared by the client
            filename: Original filename declared by the client

        Returns:
            The manifest in effect for the upload (the existing one if present)

        Raises:
            StorageWriteError: If the manifest cannot be written
        """
        existing = self.get_session(upload_id)
        if existing is not None:
            return existing

        manifest = UploadManifest(upload_id=upload_id, total=total, filename=filename)
        session_dir = self.get_session_dir(upload_id)
        payload = json.dumps({"upload_id": upload_id, "total": total, "filename": filename})

        try:
            session_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=session_dir, prefix=".manifest-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(payload)
                # link() refuses to overwrite, so the first declaration wins a race
                os.link(tmp_name, session_dir / MANIFEST_FILENAME)
            except FileExistsError:
                return self.get_session(upload_id)
            finally:
                Path(tmp_name).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to write manifest for upload {upload_id}: {e}")
            raise StorageWriteError(f"Could not record upload {upload_id}: {e}") from e

        logger.info(f"Started upload {upload_id}: {total} chunks for {filename}")
        return manifest

    def get_session(self, upload_id: str) -> Optional[UploadManifest]:
        """
        Read the manifest of an upload.

        Returns:
            The manifest, or None if no chunk was ever received for the upload
        """
        manifest_path = self.get_session_dir(upload_id) / MANIFEST_FILENAME
        try:
            data = json.loads(manifest_path.read_text())
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.error(f"Unreadable manifest for upload {upload_id}: {e}")
            return None

        return UploadManifest(
            upload_id=data["upload_id"],
            total=int(data["total"]),
            filename=data["filename"],
        )

    def discard_session(self, upload_id: str) -> None:
        """
        Remove the manifest and the session directory once it holds no chunks.
        """
        session_dir = self.get_session_dir(upload_id)
        (session_dir / MANIFEST_FILENAME).unlink(missing_ok=True)
        try:
            session_dir.rmdir()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Session directory for upload {upload_id} not removed: {e}")

    def list_sessions(self) -> List[UploadManifest]:
        """
        List every upload that currently has a manifest.

        Returns:
            Manifests of all staged uploads
        """
        if not self.chunks_dir.exists():
            return []

        manifests = []
        for manifest_path in self.chunks_dir.glob(f"*/{MANIFEST_FILENAME}"):
            try:
                data = json.loads(manifest_path.read_text())
            except (OSError, ValueError):
                continue
            manifests.append(UploadManifest(data["upload_id"], int(data["total"]), data["filename"]))
        return manifests
