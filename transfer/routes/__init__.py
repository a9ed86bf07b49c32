"""API routes package."""

from transfer.routes.download_routes import router as download_router
from transfer.routes.upload_routes import router as upload_router

__all__ = ["download_router", "upload_router"]
