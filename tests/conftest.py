"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set here, before any import that might build the
global settings object.
"""

import asyncio
import os
from typing import Any, Callable

import pytest

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

# Set default env vars that all tests might need
os.environ.setdefault("UPSTREAM_URL", "https://upstream.test/api.php")
os.environ.setdefault("UPSTREAM_API_KEY", "upstream-secret")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("APP_ADMIN_KEY", "test-admin-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter  # noqa: E402
from app.adapters.upstream.base import AbstractUpstreamClient  # noqa: E402
from app.core.auth import ApiKeyStore  # noqa: E402
from app.services.lookup_service import LookupGateway  # noqa: E402
from app.utils.simple_cache import SimpleTTLCache  # noqa: E402

VALID_API_KEY = "test-api-key-123"
SAMPLE_NUMBER = "1234567890"
SAMPLE_PAYLOAD: dict[str, Any] = {
    "success": True,
    "name": "Jane Doe",
    "carrier": "Acme Mobile",
    "circle": "North",
}


class FakeClock:
    """Deterministic clock; call it to read, advance() to move time."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream(AbstractUpstreamClient):
    """In-memory upstream that records calls and can delay or fail."""

    def __init__(
        self,
        payload: dict[str, Any] | None = None,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.payload = payload if payload is not None else SAMPLE_PAYLOAD
        self.error = error
        self.delay = delay
        self.calls: list[str] = []
        self.closed = False

    async def fetch(self, number: str) -> dict[str, Any]:
        self.calls.append(number)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return dict(self.payload)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def make_gateway(clock: FakeClock, upstream: FakeUpstream) -> Callable[..., LookupGateway]:
    """Factory building gateways on the shared fake clock."""

    def _make(
        *,
        upstream: AbstractUpstreamClient = upstream,
        limit: int = 20,
        window_seconds: float = 60,
        ttl_seconds: float = 300,
        keys: tuple[str, ...] = (VALID_API_KEY,),
        **kwargs: Any,
    ) -> LookupGateway:
        return LookupGateway(
            key_store=ApiKeyStore(keys),
            rate_limiter=InMemorySlidingWindowRateLimiter(
                limit=limit, window_seconds=window_seconds, clock=clock
            ),
            cache=SimpleTTLCache(ttl_seconds=ttl_seconds, clock=clock),
            upstream=upstream,
            clock=clock,
            **kwargs,
        )

    return _make


@pytest.fixture
def gateway(make_gateway: Callable[..., LookupGateway]) -> LookupGateway:
    return make_gateway()
