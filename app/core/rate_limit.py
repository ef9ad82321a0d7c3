"""HTTP-side helpers for rate limiting.

The limiter itself lives in ``app.adapters.rate_limit`` and is owned by the
lookup gateway. This module covers the transport concerns around it:

- deriving the client identity (the limiter bucket key) from a request
- rendering ``Retry-After`` / ``X-RateLimit-*`` headers for throttled calls

Rate limiting strategy:
- Trailing-window limit per client network address.
- ``X-Forwarded-For`` (first hop) is used when present and trusted, so the
  proxy keeps working behind a load balancer.
"""

from __future__ import annotations

from fastapi import Request

from app.core.config import settings
from app.core.errors import AppError, RateLimitAppError

FORWARDED_FOR_HEADER = "x-forwarded-for"


def resolve_client_identity(request: Request, *, trust_forwarded_for: bool | None = None) -> str:
    """Build the limiter key for the current request.

    Args:
        request: FastAPI request.
        trust_forwarded_for: Override for ``settings.app.trust_forwarded_for``.

    Returns:
        str: Namespaced limiter key, e.g. ``ip:203.0.113.7``.
    """

    if trust_forwarded_for is None:
        trust_forwarded_for = settings.app.trust_forwarded_for

    if trust_forwarded_for:
        forwarded = request.headers.get(FORWARDED_FOR_HEADER, "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"

    client_host = request.client.host if request.client else None
    return f"ip:{client_host or 'unknown'}"


def rate_limit_headers(error: AppError | None) -> dict[str, str]:
    """Headers to attach to a throttled response.

    Returns an empty dict for anything but a rate limit rejection, or when
    ``APP_RATE_LIMIT_INCLUDE_HEADERS`` is off.
    """

    if not isinstance(error, RateLimitAppError) or not settings.app.rate_limit_include_headers:
        return {}

    details = error.details or {}
    headers: dict[str, str] = {}
    if "retry_after" in details:
        headers["Retry-After"] = str(details["retry_after"])
    if "limit" in details:
        headers["X-RateLimit-Limit"] = str(details["limit"])
    if "remaining" in details:
        headers["X-RateLimit-Remaining"] = str(details["remaining"])
    if "reset_at" in details:
        headers["X-RateLimit-Reset"] = str(details["reset_at"])
    return headers
