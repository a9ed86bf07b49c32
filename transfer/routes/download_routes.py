"""Download and stats API routes."""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from common.constants import RECENT_UPLOADS_DEFAULT_LIMIT, RECENT_UPLOADS_MAX_LIMIT
from transfer.routes.dependencies import get_transfer_service
from transfer.schemas.common import ErrorResponse
from transfer.schemas.uploads import UploadStatsEntry, UploadStatsResponse
from transfer.services.transfer_service import TransferService

router = APIRouter(tags=["Downloads"])


@router.get("/download/{artifact_id}", responses={404: {"model": ErrorResponse}})
async def download(
    artifact_id: str,
    service: TransferService = Depends(get_transfer_service),
):
    """
    Stream a stored artifact and count the download.

    Raises:
        - 404: Unknown artifact id
    """
    retrieved = await service.retrieve(artifact_id)
    entry = retrieved.entry

    headers = {
        "Content-Disposition": f"attachment; filename*=UTF-8''{quote(retrieved.filename)}",
        "Content-Length": str(entry.size_bytes),
    }
    return StreamingResponse(retrieved.stream, media_type=entry.media_type, headers=headers)


@router.get("/stats", response_model=UploadStatsResponse)
async def stats(
    limit: int = Query(RECENT_UPLOADS_DEFAULT_LIMIT, ge=1, le=RECENT_UPLOADS_MAX_LIMIT),
    service: TransferService = Depends(get_transfer_service),
):
    """
    List the most recent uploads, newest first.
    """
    entries = await service.recent_uploads(limit)
    return UploadStatsResponse(
        uploads=[
            UploadStatsEntry(
                id=entry.id,
                filename=entry.filename,
                size=entry.size_bytes,
                created_at=entry.created_at.isoformat(),
                download_count=entry.download_count,
            )
            for entry in entries
        ]
    )
