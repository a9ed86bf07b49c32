"""Artifact catalog: ids, download links and access counters."""

from typing import List, Optional

from common.constants import RECENT_UPLOADS_MAX_LIMIT
from common.exceptions import NotFoundError
from common.logging_config import get_logger
from common.types import ContentCategory
from transfer.repositories.catalog_repository import CatalogEntry, CatalogRepository
from transfer.utils import build_download_link, generate_uuid, utcnow

logger = get_logger(__name__)


class ArtifactCatalog:
    def __init__(self, repository: CatalogRepository, base_url: str):
        self.repository = repository
        self.base_url = base_url

    def register(
        self,
        filename: str,
        content_category: ContentCategory,
        size_bytes: int,
        storage_location: str,
        media_type: str = "application/octet-stream",
        download_name: Optional[str] = None,
    ) -> CatalogEntry:
        """
        Create a catalog entry under a freshly generated id.

        Args:
            filename: Original filename of the upload
            content_category: Category the artifact was compressed as
            size_bytes: Final (post-compression) size
            storage_location: Path of the stored artifact
            media_type: Content type served on download
            download_name: Filename offered on download (defaults to filename)

        Returns:
            The stored entry, including its download link
        """
        artifact_id = generate_uuid()
        entry = CatalogEntry(
            id=artifact_id,
            filename=filename,
            content_category=content_category,
            size_bytes=size_bytes,
            storage_location=storage_location,
            media_type=media_type,
            download_name=download_name or filename,
            download_link=build_download_link(self.base_url, artifact_id),
            created_at=utcnow(),
        )
        self.repository.create_entry(entry)
        logger.info(f"Registered artifact {artifact_id} for {filename} ({size_bytes} bytes)")
        return entry

    def lookup(self, artifact_id: str) -> CatalogEntry:
        """
        Look up an entry without counting an access.

        Raises:
            NotFoundError: If no entry has this id
        """
        entry = self.repository.get_by_id(artifact_id)
        if entry is None:
            raise NotFoundError(f"Artifact {artifact_id} not found")
        return entry

    def fetch(self, artifact_id: str) -> CatalogEntry:
        """
        Look up an entry and count the access.

        Raises:
            NotFoundError: If no entry has this id
        """
        entry = self.repository.increment_and_get(artifact_id)
        if entry is None:
            raise NotFoundError(f"Artifact {artifact_id} not found")
        return entry

    def list_recent(self, limit: int) -> List[CatalogEntry]:
        """
        Entries newest first, at most limit of them.
        """
        if limit <= 0:
            return []
        return self.repository.list_recent(min(limit, RECENT_UPLOADS_MAX_LIMIT))
