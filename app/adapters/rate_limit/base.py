"""Rate limiter interfaces.

The gateway depends on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit admission check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the oldest counted request leaves the window.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str, *, now: float | None = None) -> RateLimitResult:
        """Check the budget for ``key`` and record the request if admitted.

        Args:
            key: Unique identifier (e.g., client IP).
            now: Current instant in seconds; the limiter's clock when omitted.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    def try_admit(self, key: str, now: float | None = None) -> bool:
        """Return True if the request is admitted (and recorded)."""
        return self.consume(key, now=now).allowed

    def reset(self) -> None:
        """Forget all recorded requests."""

    def evict_idle(self, now: float | None = None) -> int:
        """Drop state for keys with no requests left in the window."""
        return 0
