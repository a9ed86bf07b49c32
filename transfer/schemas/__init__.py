"""Request and response schemas."""

from transfer.schemas.common import ErrorResponse
from transfer.schemas.uploads import (
    AssembleRequest,
    AssembleResponse,
    ChunkReceivedResponse,
    UploadStatsEntry,
    UploadStatsResponse,
)

__all__ = [
    "AssembleRequest",
    "AssembleResponse",
    "ChunkReceivedResponse",
    "ErrorResponse",
    "UploadStatsEntry",
    "UploadStatsResponse",
]
