"""Pydantic schemas for upload, finalize and stats endpoints."""

from typing import List

from pydantic import BaseModel, Field


class ChunkReceivedResponse(BaseModel):
    """Response model for a staged chunk."""
    ok: bool = True
    upload_id: str
    index: int


class AssembleRequest(BaseModel):
    """Request model for finalizing an upload."""
    upload_id: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)


class AssembleResponse(BaseModel):
    """Response model for a finalized upload."""
    ok: bool = True
    id: str
    download_url: str
    content_category: str
    size: int


class UploadStatsEntry(BaseModel):
    """One row of the recent uploads listing."""
    id: str
    filename: str
    size: int
    created_at: str
    download_count: int


class UploadStatsResponse(BaseModel):
    """Response model for the recent uploads listing."""
    uploads: List[UploadStatsEntry]
