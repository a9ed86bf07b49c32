"""Entry point for the transfer service."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.exceptions import (
    ChunkValidationError,
    CompletenessError,
    NotFoundError,
    StorageWriteError,
    TransferError,
)
from common.logging_config import reset_request_id, set_request_id, setup_logging
from compression.video_engine import Transcoder
from transfer.config import Settings, load_settings
from transfer.routes.download_routes import router as download_router
from transfer.routes.upload_routes import router as upload_router
from transfer.services.transfer_service import TransferService

logger = setup_logging('transfer')


def create_app(settings: Optional[Settings] = None, transcoder: Optional[Transcoder] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration (read from the environment at startup if None)
        transcoder: Video transcoder override

    Returns:
        Configured application; the pipeline is created when it starts up
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or load_settings()
        logger.info("Transfer service starting up...")

        service = TransferService.from_settings(resolved, transcoder=transcoder)
        app.state.settings = resolved
        app.state.transfer_service = service

        pending = service.chunk_store.list_sessions()
        if pending:
            logger.warning(f"{len(pending)} unfinished uploads are staged in {resolved.chunks_dir}")
        logger.info(f"Catalog holds {service.catalog.repository.count()} artifacts")
        logger.info(f"Serving download links under {resolved.base_url}")

        yield

        logger.info("Transfer service shutting down...")

    app = FastAPI(
        title="Adaptive Transfer",
        description="Chunked uploads with adaptive compression and download links",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests and responses.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = set_request_id(request_id)

        start_time = time.time()
        logger.info(f"Request started: {request.method} {request.url.path}")

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            logger.info(
                f"Request completed: {request.method} {request.url.path} "
                f"status={response.status_code} duration={duration:.3f}s"
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            reset_request_id(token)

    register_exception_handlers(app)

    app.include_router(upload_router)
    app.include_router(download_router)

    @app.get("/")
    async def root():
        """
        Root endpoint for health check.
        """
        return {"message": "Adaptive Transfer API", "status": "running"}

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint for container healthchecks.
        """
        return {"status": "healthy", "service": "transfer"}

    return app


def _error_response(status_code: int, exc: Exception, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": code})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ChunkValidationError)
    async def chunk_validation_handler(request: Request, exc: ChunkValidationError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(f"Invalid chunk: {exc} [request_id={request_id}] path={request.url.path}")
        return _error_response(status.HTTP_400_BAD_REQUEST, exc, "INVALID_CHUNK")

    @app.exception_handler(StorageWriteError)
    async def storage_write_handler(request: Request, exc: StorageWriteError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.error(
            f"Storage write error: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=True
        )
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc, "STORAGE_WRITE_FAILED")

    @app.exception_handler(CompletenessError)
    async def completeness_handler(request: Request, exc: CompletenessError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(f"Incomplete upload: {exc} [request_id={request_id}] path={request.url.path}")
        return _error_response(status.HTTP_409_CONFLICT, exc, "UPLOAD_INCOMPLETE")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(f"Artifact not found: {exc} [request_id={request_id}] path={request.url.path}")
        return _error_response(status.HTTP_404_NOT_FOUND, exc, "ARTIFACT_NOT_FOUND")

    @app.exception_handler(TransferError)
    async def transfer_error_handler(request: Request, exc: TransferError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.error(
            f"Transfer error: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=True
        )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "INTERNAL_ERROR")


app = create_app()


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    settings = load_settings()
    uvicorn.run(
        "transfer.main:app",
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
