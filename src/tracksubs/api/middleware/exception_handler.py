"""Exception handlers for FastAPI.

Every failure leaves the service as the ERROR variant of ``ActionResponse``:
- Service exceptions keep their HTTP status and machine-readable code
- Request validation errors become 400 with the first failing field
- Anything unexpected becomes a generic 500 without implementation details
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tracksubs.core.exceptions import (
    GENERIC_ERROR_MESSAGE,
    ErrorCode,
    TrackSubsException,
    get_http_status_for_exception,
)
from tracksubs.core.logging import get_correlation_id, get_logger
from tracksubs.schemas.base import ActionResponse

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = get_logger(__name__)


def error_content(message: str, code: ErrorCode) -> dict[str, object]:
    """Serialize the ERROR variant for a JSON body."""
    return ActionResponse[None].error(message, code=code.value).model_dump(mode="json")


async def tracksubs_exception_handler(
    request: Request,
    exc: TrackSubsException,
) -> JSONResponse:
    """Handle TrackSubsException and subclasses."""
    log = logger.critical if exc.http_status >= HTTPStatus.INTERNAL_SERVER_ERROR else logger.warning
    log(
        "tracksubs_exception",
        error_code=exc.error_code.value,
        error_message=exc.message,
        reason=exc.reason,
        http_status=exc.http_status.value,
        path=request.url.path,
        details=exc.details,
        correlation_id=get_correlation_id(),
    )

    return JSONResponse(
        status_code=exc.http_status.value,
        content=error_content(exc.result_message, exc.error_code),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle FastAPI request validation errors."""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "validation_error",
        path=request.url.path,
        error_count=len(errors),
        errors=errors[:5],
    )

    message = f"{errors[0]['field']}: {errors[0]['message']}" if errors else "Invalid input data"
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST.value,
        content=error_content(message, ErrorCode.VALIDATION_ERROR),
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle Starlette HTTP exceptions (unknown routes, wrong methods)."""
    status_to_error_code = {
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.UNAUTHORIZED,
        404: ErrorCode.RESOURCE_NOT_FOUND,
    }
    error_code = status_to_error_code.get(exc.status_code, ErrorCode.UNKNOWN_ERROR)

    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(str(exc.detail) if exc.detail else GENERIC_ERROR_MESSAGE, error_code),
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions with the generic message."""
    logger.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
    )

    return JSONResponse(
        status_code=get_http_status_for_exception(exc).value,
        content=error_content(GENERIC_ERROR_MESSAGE, ErrorCode.INTERNAL_ERROR),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(TrackSubsException, tracksubs_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
