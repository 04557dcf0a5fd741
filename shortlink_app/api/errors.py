"""
Maps core errors to HTTP responses.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from shortlink_app.errors import (
    NotFoundError,
    NotOwnerError,
    ShortCodeTakenError,
    StorageError,
    ValidationError,
)


logger = logging.getLogger(__name__)

# Most specific first: ShortCodeTakenError is a ValidationError
STATUS_BY_ERROR = [
    (ShortCodeTakenError, status.HTTP_409_CONFLICT),
    (ValidationError, 422),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (NotOwnerError, status.HTTP_403_FORBIDDEN),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def _status_for(error: Exception) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    async def handle_core_error(request: Request, exc: Exception) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
            logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
            detail = "Storage temporarily unavailable"
        else:
            detail = str(exc)
        return JSONResponse(status_code=status_code, content={"detail": detail})

    for error_type in (ValidationError, NotFoundError, NotOwnerError, StorageError):
        app.add_exception_handler(error_type, handle_core_error)
