"""
Analytics error taxonomy and the shared error envelope.

Services raise AnalyticsError subclasses; they never build HTTP responses.
The handlers registered in app.main turn them into:

    {"error": {"code", "message", "details"?, "timestamp", "requestId"}}
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.schemas.analytics import ErrorBody, ErrorResponse

logger = logging.getLogger(__name__)


class AnalyticsError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details


class NotFoundError(AnalyticsError):
    """Referenced session or user has no data."""
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ValidationError(AnalyticsError):
    """Malformed input."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "INVALID_REQUEST"


class StorageError(AnalyticsError):
    """The storage collaborator raised."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "STORAGE_ERROR"


def wrap_component_error(exc: Exception, code: str, message: str) -> AnalyticsError:
    """
    Re-label a failure with the component's error code.

    Not-found and validation errors keep their own code and status; anything
    else becomes a 500 under `code`, keeping the original message as details.
    """
    if isinstance(exc, (NotFoundError, ValidationError)):
        return exc
    details = exc.message if isinstance(exc, AnalyticsError) else str(exc)
    return AnalyticsError(message, code=code, details=details)


@contextmanager
def component_errors(code: str, message: str):
    """Re-raise anything escaping the block via wrap_component_error."""
    try:
        yield
    except Exception as exc:
        wrapped = wrap_component_error(exc, code, message)
        if wrapped is exc:
            raise
        raise wrapped from exc


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorBody(
            code=code,
            message=message,
            details=details,
            timestamp=datetime.utcnow(),
            request_id=_request_id(request),
        )
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.code, exc.details or exc.message)
    return error_response(request, exc.status_code, exc.code, exc.message, exc.details)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        ValidationError.default_code,
        "Request validation failed",
        details=[{"loc": list(e.get("loc", [])), "msg": e.get("msg")} for e in exc.errors()],
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        AnalyticsError.default_code,
        "An unexpected error occurred",
    )
