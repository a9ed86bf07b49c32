"""Transfer pipeline: chunk intake, reassembly, compression and cataloging."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from common.constants import STREAM_PIECE_SIZE_BYTES
from common.exceptions import ChunkValidationError, CompletenessError, NotFoundError
from common.keyed_lock import KeyedLock
from common.logging_config import get_logger
from common.types import ContentCategory
from compression.base import CompressionResult
from compression.quality_model import AdaptiveQualityModel
from compression.registry import EngineRegistry
from compression.video_engine import FfmpegTranscoder, Transcoder
from staging.chunk_store import ChunkStore
from staging.reassembler import Reassembler
from transfer.config import Settings
from transfer.database import init_database
from transfer.repositories.catalog_repository import CatalogEntry, CatalogRepository
from transfer.repositories.quality_repository import QualityRepository
from transfer.services.catalog_service import ArtifactCatalog

logger = get_logger(__name__)


@dataclass(frozen=True)
class FinalizeResult:
    entry: CatalogEntry
    compression: CompressionResult

    @property
    def download_link(self) -> str:
        return self.entry.download_link

    @property
    def content_category(self) -> ContentCategory:
        return self.entry.content_category


@dataclass(frozen=True)
class RetrievedArtifact:
    entry: CatalogEntry
    stream: Iterator[bytes]

    @property
    def filename(self) -> str:
        return self.entry.download_name


def stream_file(path: Path, piece_size: int = STREAM_PIECE_SIZE_BYTES) -> Iterator[bytes]:
    with open(path, "rb") as f:
        while True:
            piece = f.read(piece_size)
            if not piece:
                break
            yield piece


def with_suffix_once(filename: str, suffix: str) -> str:
    if not suffix or filename.lower().endswith(suffix.lower()):
        return filename
    return filename + suffix


class TransferService:
    """
    Owns every pipeline component and exposes the four operations the HTTP
    layer needs.

    At most one finalize runs per upload id at a time; different uploads
    proceed concurrently.
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        reassembler: Reassembler,
        quality_model: AdaptiveQualityModel,
        engines: EngineRegistry,
        catalog: ArtifactCatalog,
        max_chunk_bytes: int,
    ):
        self.chunk_store = chunk_store
        self.reassembler = reassembler
        self.quality_model = quality_model
        self.engines = engines
        self.catalog = catalog
        self.max_chunk_bytes = max_chunk_bytes
        self._upload_locks = KeyedLock()

    @classmethod
    def from_settings(cls, settings: Settings, transcoder: Optional[Transcoder] = None) -> "TransferService":
        """
        Wire up the pipeline from settings, creating directories and tables.

        Args:
            settings: Loaded configuration
            transcoder: Video transcoder override (ffmpeg from settings if None)
        """
        init_database(settings.database_path)

        chunk_store = ChunkStore(settings.chunks_dir)
        chunk_store.ensure_directory()
        settings.uploads_dir.mkdir(parents=True, exist_ok=True)

        quality_model = AdaptiveQualityModel(QualityRepository(settings.database_path))
        engines = EngineRegistry.default(
            quality_model,
            transcoder or FfmpegTranscoder(settings.ffmpeg_binary),
        )

        return cls(
            chunk_store=chunk_store,
            reassembler=Reassembler(chunk_store, settings.uploads_dir),
            quality_model=quality_model,
            engines=engines,
            catalog=ArtifactCatalog(CatalogRepository(settings.database_path), settings.base_url),
            max_chunk_bytes=settings.max_chunk_bytes,
        )

    async def receive_chunk(
        self,
        upload_id: str,
        index: int,
        total: int,
        filename: str,
        data: bytes,
    ) -> None:
        """
        Stage one chunk of an upload.

        Raises:
            ChunkValidationError: If the chunk contradicts the upload's declared shape
            StorageWriteError: If the chunk could not be written; retry that chunk
        """
        if not upload_id:
            raise ChunkValidationError("upload_id must not be empty")
        if total < 1:
            raise ChunkValidationError(f"total must be positive, got {total}")
        if index < 0 or index >= total:
            raise ChunkValidationError(f"index {index} outside [0, {total})")
        if len(data) > self.max_chunk_bytes:
            raise ChunkValidationError(
                f"chunk of {len(data)} bytes exceeds the {self.max_chunk_bytes} byte limit"
            )

        manifest = await asyncio.to_thread(self.chunk_store.declare_session, upload_id, total, filename)
        if manifest.total != total:
            raise ChunkValidationError(
                f"upload {upload_id} declared {manifest.total} chunks, chunk {index} declares {total}"
            )

        await asyncio.to_thread(self.chunk_store.put, upload_id, index, data)
        logger.info(f"Received chunk {index + 1}/{total} of upload {upload_id} ({len(data)} bytes)")

    async def finalize(self, upload_id: str, filename: Optional[str] = None) -> FinalizeResult:
        """
        Reassemble, compress and catalog an upload.

        Args:
            upload_id: Upload to finalize
            filename: Original filename (defaults to the one declared by the first chunk)

        Raises:
            CompletenessError: If not every declared chunk is staged
        """
        async with self._upload_locks.hold(upload_id):
            manifest = await asyncio.to_thread(self.chunk_store.get_session, upload_id)
            if manifest is None:
                raise CompletenessError(f"No chunks received for upload {upload_id}")

            filename = filename or manifest.filename
            artifact = await asyncio.to_thread(
                self.reassembler.assemble, upload_id, filename, manifest.total
            )

            engine = self.engines.for_category(artifact.content_category)
            result = await engine.compress(artifact)

            entry = await asyncio.to_thread(
                self.catalog.register,
                filename,
                artifact.content_category,
                result.artifact.size_bytes,
                str(result.artifact.path),
                result.media_type,
                with_suffix_once(filename, result.download_suffix),
            )

        logger.info(
            f"Finalized upload {upload_id} as {entry.id}: "
            f"{result.original_size} -> {result.compressed_size} bytes "
            f"(ratio={result.ratio:.2f}, category={entry.content_category.value})"
        )
        return FinalizeResult(entry=entry, compression=result)

    async def retrieve(self, artifact_id: str) -> RetrievedArtifact:
        """
        Count a download and open the stored artifact for streaming.

        Raises:
            NotFoundError: If the id is unknown or its file is gone
        """
        entry = await asyncio.to_thread(self.catalog.lookup, artifact_id)

        path = Path(entry.storage_location)
        if not path.is_file():
            logger.error(f"Artifact {artifact_id} is cataloged but {path} is missing")
            raise NotFoundError(f"Artifact {artifact_id} data is unavailable")

        # only a download that can be served is counted
        entry = await asyncio.to_thread(self.catalog.fetch, artifact_id)

        logger.info(f"Serving artifact {artifact_id} (download #{entry.download_count})")
        return RetrievedArtifact(entry=entry, stream=stream_file(path))

    async def recent_uploads(self, limit: int) -> List[CatalogEntry]:
        return await asyncio.to_thread(self.catalog.list_recent, limit)
