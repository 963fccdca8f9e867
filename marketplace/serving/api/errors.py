"""
API Error Handling

Maps activity exceptions to HTTP responses. Store failures and unexpected
errors are logged with full detail and answered with a generic message.
"""

from typing import Dict, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog

from marketplace.activity.exceptions import (
    ActivityError,
    DependencyFailure,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    Unauthenticated,
)
from marketplace.activity.schemas import ErrorResponse

logger = structlog.get_logger(__name__)

STATUS_CODES: Dict[Type[ActivityError], int] = {
    InvalidArgument: 400,
    Unauthenticated: 401,
    PermissionDenied: 403,
    NotFound: 404,
    DependencyFailure: 503,
}


def status_code_for(exc: ActivityError) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


def _error_response(status_code: int, error: str, detail: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
        headers=headers,
    )


async def activity_error_handler(request: Request, exc: ActivityError) -> JSONResponse:
    status_code = status_code_for(exc)

    if status_code >= 500:
        logger.error(
            "Activity request failed",
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
            **exc.details,
        )
        return _error_response(status_code, type(exc).__name__, "Service temporarily unavailable")

    logger.info(
        "Activity request rejected",
        path=request.url.path,
        status_code=status_code,
        error_type=type(exc).__name__,
        error=exc.message,
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return _error_response(status_code, type(exc).__name__, exc.message, headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed query parameters as InvalidArgument."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
        detail = f"{field}: {first.get('msg', 'invalid value')}"
    else:
        detail = "Invalid request"

    logger.info("Request validation failed", path=request.url.path, detail=detail)
    return _error_response(400, InvalidArgument.__name__, detail)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        path=request.url.path,
        error_type=type(exc).__name__,
    )
    return _error_response(500, "InternalError", "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ActivityError, activity_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
