"""Global exception handlers for consistent error envelopes.

This module provides FastAPI exception handlers that intercept all errors
(domain, framework and unexpected) and return the same JSON envelope the
lookup endpoint uses, so clients never see a bare error page.

Design:
- AppError subclasses → status from ``ERROR_HTTP_STATUS`` (401, 403, 429, 5xx)
- Starlette HTTPException (e.g. unmatched path) → not_found / http_error
- RequestValidationError (malformed admin body) → invalid_request (422)
- Unexpected Exception → internal_error 500 (safety net)
- All error envelopes include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import AppError, ErrorCode
from app.core.logging import get_request_id
from app.core.rate_limit import rate_limit_headers
from app.schemas.lookup import LookupEnvelope

logger = logging.getLogger(__name__)


def error_response(exc: AppError, *, status_code: int | None = None, headers: dict[str, str] | None = None) -> JSONResponse:
    """Render an AppError as an envelope response."""
    envelope = LookupEnvelope.failure(exc, request_id=get_request_id())
    return JSONResponse(
        status_code=status_code or exc.http_status,
        content=envelope.to_content(),
        headers=headers or None,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the envelope format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the status mapped from the error code.
    """
    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": exc.http_status,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )
    return error_response(exc, headers=rate_limit_headers(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Convert framework HTTP errors (404, 405, ...) to envelopes."""
    if exc.status_code == 404:
        error = AppError(
            code=ErrorCode.NOT_FOUND,
            message="Endpoint not found. Use /lookup for number information",
        )
    else:
        error = AppError(code=ErrorCode.HTTP_ERROR, message=str(exc.detail))

    logger.info(
        "http_error_handled",
        extra={
            "status_code": exc.status_code,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )
    return error_response(error, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert request validation failures to an invalid_request envelope."""
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    logger.info(
        "request_validation_failed",
        extra={"fields": fields, "request_path": request.url.path},
    )
    error = AppError(
        code=ErrorCode.INVALID_REQUEST,
        message="Invalid request: " + ", ".join(fields) if fields else "Invalid request",
    )
    return error_response(error)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )
    return error_response(
        AppError(code=ErrorCode.INTERNAL_ERROR, message="Something went wrong"),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
