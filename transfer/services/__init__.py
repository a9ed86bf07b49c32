"""Service layer for business logic."""

from transfer.services.catalog_service import ArtifactCatalog
from transfer.services.transfer_service import FinalizeResult, RetrievedArtifact, TransferService

__all__ = [
    "ArtifactCatalog",
    "FinalizeResult",
    "RetrievedArtifact",
    "TransferService",
]
