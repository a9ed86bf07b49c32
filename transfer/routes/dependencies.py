"""FastAPI dependencies for route handlers."""

from fastapi import Request

from transfer.services.transfer_service import TransferService


def get_transfer_service(request: Request) -> TransferService:
    """
    Return the pipeline built at startup and stored on the application state.
    """
    return request.app.state.transfer_service
