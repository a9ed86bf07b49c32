"""Repository layer for data access."""

from transfer.repositories.catalog_repository import CatalogEntry, CatalogRepository
from transfer.repositories.quality_repository import QualityRepository

__all__ = [
    "CatalogEntry",
    "CatalogRepository",
    "QualityRepository",
]
