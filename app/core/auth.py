"""API key authentication logic.

Two credentials exist:
- Client API keys, held in an ``ApiKeyStore`` owned by the lookup gateway.
  The initial set comes from a comma-separated environment variable; keys can
  be added at runtime but never removed.
- A single admin key that guards the key administration endpoint.

Design principles:
- Single Responsibility: Only handles credential checks
- Dependency Injection: admin check is used via FastAPI Depends()
- Configuration-driven: Keys managed via env vars, not hardcoded
"""

from __future__ import annotations

import hmac
import logging
import threading
from typing import Annotated, Iterable

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationAppError, ErrorCode
from app.core.logging import fingerprint

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Args:
        keys_string: Comma-separated string of API keys, or None.

    Returns:
        Set of trimmed, non-empty API keys.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ") == {"key1", "key2", "key3"}
        True
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


class ApiKeyStore:
    """Thread-safe set of valid client API keys.

    Membership is exact-match and case-sensitive. Keys can be added but
    never removed or expired.
    """

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._lock = threading.RLock()
        self._keys: set[str] = {k for k in keys if k}

    @classmethod
    def from_config(cls, keys_string: str | None) -> "ApiKeyStore":
        """Build a store from the comma-separated configuration value."""
        return cls(parse_api_keys(keys_string))

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.is_valid(key)

    def is_valid(self, key: str | None) -> bool:
        """Return True iff ``key`` is a non-empty string present in the store."""
        if not key or not isinstance(key, str):
            return False
        with self._lock:
            return key in self._keys

    def add(self, key: str | None) -> bool:
        """Insert ``key`` if it is non-empty and new.

        Returns:
            True if the store changed, False for empty or already-known keys.
        """
        if not key or not isinstance(key, str):
            return False
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            total = len(self._keys)

        logger.info(
            "auth.key_added",
            extra={"api_key_hash": fingerprint(key), "total_keys": total},
        )
        return True


def validate_admin_key(provided_key: str | None) -> None:
    """Validate the admin credential against configuration.

    Pure validation logic without FastAPI dependencies for easy testing.

    Args:
        provided_key: Value of the X-Admin-Key header.

    Raises:
        AuthenticationAppError: If admin access is disabled or the key is wrong.
    """
    configured = settings.app.admin_key
    if not configured:
        logger.warning("auth.admin_disabled", extra={"reason": "admin_key_not_configured"})
        raise AuthenticationAppError(
            code=ErrorCode.ADMIN_DISABLED,
            message="Key administration is disabled",
            details={"hint": "Set APP_ADMIN_KEY to enable the admin endpoint"},
        )

    if not provided_key or not hmac.compare_digest(provided_key.encode(), configured.encode()):
        logger.warning(
            "auth.admin_rejected",
            extra={
                "admin_key_present": bool(provided_key),
                "admin_key_hash": fingerprint(provided_key),
            },
        )
        raise AuthenticationAppError(
            code=ErrorCode.UNAUTHORIZED,
            message="Invalid or missing admin key",
        )


async def verify_admin_key(
    x_admin_key: Annotated[str | None, Header(alias="X-Admin-Key")] = None,
) -> None:
    """FastAPI dependency guarding the admin endpoints.

    Usage:
        @router.post("/admin/keys", dependencies=[Depends(verify_admin_key)])

    Raises:
        AuthenticationAppError: rendered as an error envelope by the global handler.
    """
    validate_admin_key(x_admin_key)
