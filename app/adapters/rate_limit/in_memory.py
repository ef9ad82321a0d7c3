"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting exact request timestamps in a trailing window.

    Each key keeps an ordered deque of the instants at which its requests were
    admitted. On every check, timestamps that fell out of the trailing window
    are dropped; the request is admitted only if fewer than ``limit`` remain.
    Rejected requests are not recorded. Keys whose windows have emptied are
    released at most once per window length, during an ordinary ``consume``,
    so idle clients stop holding memory without an external sweeper.

    Cost is O(requests in window) per check, which is fine for the low
    per-client traffic this proxy expects.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of admitted requests per trailing window.
            window_seconds: Length of the trailing window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: dict[str, deque[float]] = {}
        self._next_idle_sweep_at = float("-inf")

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def tracked_keys(self) -> int:
        """Number of keys with at least one request inside the window."""
        with self._lock:
            return len(self._windows)

    def _prune_locked(self, window: deque[float], now: float) -> None:
        cutoff = now - self._window_seconds
        while window and window[0] <= cutoff:
            window.popleft()

    def consume(self, key: str, *, now: float | None = None) -> RateLimitResult:
        """Admit or reject one request for ``key``.

        Pruning, counting and recording happen under a single lock so two
        concurrent requests for the same key cannot both take the last slot.

        Args:
            key: Unique identifier for rate limiting (e.g., client IP).
            now: Current instant in seconds; the limiter's clock when omitted.

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        if now is None:
            now = self._clock()

        with self._lock:
            if now >= self._next_idle_sweep_at:
                self._evict_idle_locked(now)
                self._next_idle_sweep_at = now + self._window_seconds

            window = self._windows.get(key)
            if window is None:
                window = deque()
                self._windows[key] = window

            self._prune_locked(window, now)

            if len(window) >= self._limit:
                reset_at = window[0] + self._window_seconds
                return RateLimitResult(
                    allowed=False,
                    limit=self._limit,
                    remaining=0,
                    reset_at=int(math.ceil(reset_at)),
                    retry_after_seconds=max(1, int(math.ceil(reset_at - now))),
                )

            window.append(now)
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=self._limit - len(window),
                reset_at=int(math.ceil(window[0] + self._window_seconds)),
                retry_after_seconds=None,
            )

    def evict_idle(self, now: float | None = None) -> int:
        """Drop keys whose windows are empty. Returns the number removed."""
        if now is None:
            now = self._clock()

        with self._lock:
            return self._evict_idle_locked(now)

    def _evict_idle_locked(self, now: float) -> int:
        idle = []
        for key, window in self._windows.items():
            self._prune_locked(window, now)
            if not window:
                idle.append(key)
        for key in idle:
            del self._windows[key]
        return len(idle)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
