"""
Exception handlers mapping domain errors to HTTP responses

All responses use FastAPI's HTTPException shape: {"detail": message}.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .domain.exceptions import (
    ConflictError,
    EngagementError,
    InvalidOperationError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidOperationError, status.HTTP_400_BAD_REQUEST),
)


def status_code_for(exc: EngagementError) -> int:
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def register_error_handlers(app: FastAPI) -> None:
    """Register domain error handlers on the FastAPI app"""

    @app.exception_handler(EngagementError)
    async def engagement_error_handler(request: Request, exc: EngagementError):
        code = status_code_for(exc)
        logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=code, content={"detail": exc.message})
