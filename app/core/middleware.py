"""HTTP middleware: request correlation, access logging, and CORS.

Request correlation:
- Accepts an incoming X-Request-ID header (configurable) or generates a UUID
- Stores request_id in contextvars so every log line of the request carries it
- Echoes request_id and the total duration in response headers
- Emits one ``request.completed`` access log line per request
- Renders unhandled exceptions as the internal_error envelope, so a 500
  still carries request_id and the CORS headers

CORS:
- Allow-all origins/headers, ``GET, POST, OPTIONS`` methods
- ``OPTIONS`` preflights are short-circuited with an empty 200

Usage:
    app.middleware("http")(cors_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.exception_handlers import general_exception_handler
from app.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides the correlation header (``LOG_REQUEST_ID_HEADER``,
    default X-Request-ID), that value is used; otherwise a new UUID is
    generated. The id is available through ``get_request_id()`` for the whole
    request lifecycle and is cleared afterwards.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.

    Example:
        >>> # Request arrives with custom ID
        >>> # Headers: {"X-Request-ID": "req-abc-123"}
        >>> # Response includes:
        >>> # {"X-Request-ID": "req-abc-123", "X-Request-Duration-ms": "3.41"}
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            # Rendered here, while request_id is still set and inside CORS
            response = await general_exception_handler(request, exc)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "route": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


async def cors_middleware(request: Request, call_next) -> Response:
    """Permissive CORS for browser clients.

    Every response carries the allow-all CORS headers. ``OPTIONS`` requests
    are answered immediately with 200 and no body, before routing, so
    preflights never hit authentication or rate limiting.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: Empty preflight response or the downstream response with
            CORS headers added.
    """

    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    response: Response = await call_next(request)
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value
    return response
