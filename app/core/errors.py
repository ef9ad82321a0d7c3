"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, NotRequired, TypedDict


class ErrorCode(StrEnum):
    """Stable, machine-readable error tags returned in the response envelope."""

    MISSING_KEY = "missing_key"
    INVALID_KEY = "invalid_key"
    RATE_LIMITED = "rate_limited"
    MISSING_PARAMETER = "missing_parameter"
    INVALID_FORMAT = "invalid_format"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    UPSTREAM_ERROR = "upstream_error"
    UPSTREAM_UNREACHABLE = "upstream_unreachable"
    INTERNAL_ERROR = "internal_error"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    ADMIN_DISABLED = "admin_disabled"
    INVALID_REQUEST = "invalid_request"
    HTTP_ERROR = "http_error"


ERROR_HTTP_STATUS: dict[str, int] = {
    ErrorCode.MISSING_KEY: 401,
    ErrorCode.INVALID_KEY: 403,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.MISSING_PARAMETER: 400,
    ErrorCode.INVALID_FORMAT: 400,
    ErrorCode.UPSTREAM_TIMEOUT: 504,
    ErrorCode.UPSTREAM_ERROR: 502,
    ErrorCode.UPSTREAM_UNREACHABLE: 503,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.ADMIN_DISABLED: 403,
    ErrorCode.INVALID_REQUEST: 422,
}


def http_status_for(code: str | None) -> int:
    """Map an error code to its HTTP status (500 for unknown codes, 200 for None)."""
    if code is None:
        return 200
    return ERROR_HTTP_STATUS.get(code, 500)


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    hint: str
    status_code: int
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    timeout_s: float
    min_length: int
    max_length: int
    actual_length: int
    reason: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return http_status_for(self.code)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class RateLimitAppError(AppError):
    """Raised when a client exceeds its request budget."""


class UpstreamAppError(AppError):
    """Raised when the upstream lookup API times out, fails, or is unreachable."""
