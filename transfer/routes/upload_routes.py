"""Chunk upload and finalize API routes."""

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from transfer.routes.dependencies import get_transfer_service
from transfer.schemas.common import ErrorResponse
from transfer.schemas.uploads import AssembleRequest, AssembleResponse, ChunkReceivedResponse
from transfer.services.transfer_service import TransferService

router = APIRouter(tags=["Uploads"])


@router.post(
    "/upload-chunk",
    response_model=ChunkReceivedResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def upload_chunk(
    chunk: UploadFile = File(...),
    upload_id: str = Form(...),
    index: int = Form(..., ge=0),
    total: int = Form(..., ge=1),
    filename: str = Form(...),
    service: TransferService = Depends(get_transfer_service),
):
    """
    Stage one chunk of an upload.

    Parameters:
        - chunk: Chunk bytes (multipart/form-data)
        - upload_id: Client-chosen identifier shared by all chunks of the upload
        - index: Zero-based chunk index
        - total: Number of chunks in the upload (must match the first chunk)
        - filename: Original filename

    Raises:
        - 400: Index or total contradicts the upload
        - 503: Chunk could not be stored; retry this chunk
    """
    data = await chunk.read()
    await service.receive_chunk(
        upload_id=upload_id,
        index=index,
        total=total,
        filename=filename,
        data=data,
    )
    return ChunkReceivedResponse(upload_id=upload_id, index=index)


@router.post(
    "/assemble",
    response_model=AssembleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def assemble(
    request: AssembleRequest,
    service: TransferService = Depends(get_transfer_service),
):
    """
    Reassemble, compress and catalog an upload.

    Returns:
        - id: Catalog id of the stored artifact
        - download_url: Link for retrieving it
        - content_category: image, video or document
        - size: Stored (compressed) size in bytes

    Raises:
        - 409: Not every declared chunk has been received; restart the upload
    """
    result = await service.finalize(request.upload_id, request.filename)
    entry = result.entry
    return AssembleResponse(
        id=entry.id,
        download_url=entry.download_link,
        content_category=entry.content_category.value,
        size=entry.size_bytes,
    )
