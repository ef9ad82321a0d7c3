"""Lookup gateway orchestrating auth, rate limiting, caching, and upstream calls.

This service is the core business logic of the proxy. For every inbound
lookup it walks a fixed sequence of gates:

    RECEIVED -> AUTHENTICATED -> RATE_OK -> CACHE_CHECKED
             -> (CACHE_HIT | UPSTREAM_FETCHED) -> RESPONDED

Any gate can end the request early with an error envelope. ``lookup`` never
raises: typed ``AppError``s become their own envelope and anything else
becomes ``internal_error``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.upstream.base import AbstractUpstreamClient
from app.core.auth import ApiKeyStore
from app.core.errors import (
    AppError,
    AuthenticationAppError,
    ErrorCode,
    RateLimitAppError,
    UpstreamAppError,
)
from app.core.logging import fingerprint, get_request_id
from app.schemas.lookup import LookupEnvelope
from app.utils.number_validators import validate_number
from app.utils.simple_cache import SimpleTTLCache, build_cache_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupRequest:
    """Validated-later input of a single lookup call."""

    number: str | None
    api_key: str | None
    client_identity: str


@dataclass(frozen=True)
class LookupOutcome:
    """Envelope returned to the caller plus the error that produced it, if any."""

    envelope: LookupEnvelope
    error: AppError | None = None

    @property
    def status_code(self) -> int:
        return self.error.http_status if self.error else 200


class LookupGateway:
    """Process-wide orchestrator for phone-number lookups.

    Owns the key store, the rate limiter and the response cache. Concurrent
    cache misses for the same key share one upstream call (single flight).

    Attributes:
        key_store: Valid client API keys.
        rate_limiter: Per-client admission control.
        cache: Upstream payloads by normalized number.
        upstream: Client for the third-party API.
    """

    def __init__(
        self,
        *,
        key_store: ApiKeyStore,
        rate_limiter: AbstractRateLimiter,
        cache: SimpleTTLCache,
        upstream: AbstractUpstreamClient,
        upstream_timeout_seconds: float = 10.0,
        api_key_required: bool = True,
        rate_limit_enabled: bool = True,
        cache_key_prefix: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.key_store = key_store
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.upstream = upstream
        self._upstream_timeout = upstream_timeout_seconds
        self._api_key_required = api_key_required
        self._rate_limit_enabled = rate_limit_enabled
        self._cache_key_prefix = cache_key_prefix
        self._clock = clock
        self._inflight: dict[str, asyncio.Task[dict[str, Any]]] = {}

    def _authenticate(self, api_key: str | None) -> None:
        if not self._api_key_required:
            return

        if not api_key:
            logger.warning("auth.missing_key", extra={"api_key_present": False})
            raise AuthenticationAppError(
                code=ErrorCode.MISSING_KEY,
                message="Please provide valid API key",
            )

        if not self.key_store.is_valid(api_key):
            logger.warning(
                "auth.invalid_key",
                extra={"api_key_hash": fingerprint(api_key), "provided_key_length": len(api_key)},
            )
            raise AuthenticationAppError(
                code=ErrorCode.INVALID_KEY,
                message="Invalid API key",
            )

    def _admit(self, client_identity: str, now: float) -> None:
        if not self._rate_limit_enabled:
            return

        result = self.rate_limiter.consume(client_identity, now=now)
        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "client_hash": fingerprint(client_identity),
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            return

        retry_after = result.retry_after_seconds or 0
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "client_hash": fingerprint(client_identity),
                "limit": result.limit,
                "retry_after_s": retry_after,
            },
        )
        raise RateLimitAppError(
            code=ErrorCode.RATE_LIMITED,
            message="Too many requests",
            details={
                "limit": result.limit,
                "remaining": result.remaining,
                "reset_at": result.reset_at,
                "retry_after": retry_after,
            },
        )

    async def _fetch_and_store(self, cache_key: str, number: str) -> dict[str, Any]:
        """Single upstream attempt bounded by the configured timeout."""
        try:
            payload = await asyncio.wait_for(
                self.upstream.fetch(number),
                timeout=self._upstream_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(
                "upstream.timeout",
                extra={"number_hash": fingerprint(number), "timeout_s": self._upstream_timeout},
            )
            raise UpstreamAppError(
                code=ErrorCode.UPSTREAM_TIMEOUT,
                message="Request timeout",
                details={"timeout_s": self._upstream_timeout},
            ) from exc

        self.cache.set(cache_key, payload, now=self._clock())
        return payload

    def _forget_inflight(self, cache_key: str, task: asyncio.Task[dict[str, Any]]) -> None:
        if self._inflight.get(cache_key) is task:
            del self._inflight[cache_key]
        if not task.cancelled():
            # Retrieve the exception so failures nobody awaited are not reported as unhandled
            task.exception()

    async def _fetch_shared(self, cache_key: str, number: str) -> tuple[dict[str, Any], bool]:
        """Join an in-flight fetch for ``cache_key`` or start a new one.

        The fetch runs as its own task and is awaited through ``shield`` so a
        disconnecting caller does not cancel it; it still fills the cache.

        Returns:
            Tuple of (payload, joined_existing_fetch).
        """
        task = self._inflight.get(cache_key)
        joined = task is not None
        if task is None:
            task = asyncio.create_task(self._fetch_and_store(cache_key, number))
            self._inflight[cache_key] = task
            task.add_done_callback(lambda t: self._forget_inflight(cache_key, t))

        return await asyncio.shield(task), joined

    def _timestamp(self) -> str:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat()

    async def _run_gates(self, request: LookupRequest) -> LookupEnvelope:
        now = self._clock()

        self._authenticate(request.api_key)
        self._admit(request.client_identity, now)
        number = validate_number(request.number)

        cache_key = build_cache_key(number, prefix=self._cache_key_prefix)
        cached_payload = self.cache.get(cache_key, now=now)
        if cached_payload is not None:
            logger.info("lookup.cache_hit", extra={"number_hash": fingerprint(number)})
            return LookupEnvelope.from_cache(cached_payload)

        payload, joined = await self._fetch_shared(cache_key, number)
        logger.info(
            "lookup.fetched",
            extra={"number_hash": fingerprint(number), "joined_inflight": joined},
        )
        return LookupEnvelope.fresh(payload, timestamp=self._timestamp())

    async def lookup(self, request: LookupRequest) -> LookupOutcome:
        """Run one lookup through every gate and shape the response.

        Args:
            request: Number, API key and client identity of the inbound call.

        Returns:
            LookupOutcome whose envelope is ready to serialize. Never raises.
        """
        try:
            envelope = await self._run_gates(request)
        except AppError as exc:
            logger.info(
                "lookup.rejected",
                extra={"error_code": exc.code, "status_code": exc.http_status},
            )
            return LookupOutcome(
                envelope=LookupEnvelope.failure(exc, request_id=get_request_id()),
                error=exc,
            )
        except Exception as exc:
            logger.exception(
                "lookup.internal_error",
                extra={"error_type": type(exc).__name__},
            )
            error = AppError(code=ErrorCode.INTERNAL_ERROR, message="Something went wrong")
            return LookupOutcome(
                envelope=LookupEnvelope.failure(error, request_id=get_request_id()),
                error=error,
            )

        return LookupOutcome(envelope=envelope)

    def sweep(self) -> int:
        """Purge expired cache entries and idle rate-limit windows.

        Returns:
            Number of cache entries removed.
        """
        now = self._clock()
        removed = self.cache.evict_expired(now)
        self.rate_limiter.evict_idle(now)
        return removed

    async def aclose(self) -> None:
        """Close the upstream client."""
        await self.upstream.aclose()
