"""Process-wide service instances exposed as FastAPI dependencies.

The gateway (and the key store, limiter and cache it owns) is built lazily on
first use and lives until process exit. Tests replace it through
``app.dependency_overrides[get_lookup_gateway]``.
"""

from __future__ import annotations

import logging
import time

from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.adapters.upstream.factory import create_upstream_client
from app.core.auth import ApiKeyStore
from app.core.config import Settings, settings
from app.services.lookup_service import LookupGateway
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)

STARTED_AT = time.time()

_gateway: LookupGateway | None = None


def build_lookup_gateway(cfg: Settings | None = None) -> LookupGateway:
    """Wire a gateway from configuration.

    Args:
        cfg: Settings to use; the global settings when omitted.

    Returns:
        A new LookupGateway with its own key store, limiter and cache.
    """

    cfg = cfg or settings
    key_store = ApiKeyStore.from_config(cfg.app.api_keys)
    if cfg.app.api_key_required and not len(key_store):
        logger.warning(
            "auth.no_keys_configured",
            extra={"hint": "Set APP_API_KEYS or add keys through POST /admin/keys"},
        )

    gateway = LookupGateway(
        key_store=key_store,
        rate_limiter=InMemorySlidingWindowRateLimiter(
            limit=cfg.app.rate_limit_requests,
            window_seconds=cfg.app.rate_limit_window_seconds,
        ),
        cache=SimpleTTLCache(
            ttl_seconds=cfg.app.cache_ttl_seconds,
            max_entries=cfg.app.cache_max_entries,
            evict_on_write=cfg.app.cache_evict_on_write,
        ),
        upstream=create_upstream_client(cfg.upstream),
        upstream_timeout_seconds=cfg.upstream.timeout_seconds,
        api_key_required=cfg.app.api_key_required,
        rate_limit_enabled=cfg.app.rate_limit_enabled,
        cache_key_prefix=cfg.app.cache_key_prefix,
    )
    logger.info(
        "gateway.initialized",
        extra={
            "api_key_count": len(key_store),
            "rate_limit": cfg.app.rate_limit_requests,
            "rate_window_s": cfg.app.rate_limit_window_seconds,
            "cache_ttl_s": cfg.app.cache_ttl_seconds,
        },
    )
    return gateway


def get_lookup_gateway() -> LookupGateway:
    """Return the process-wide gateway, building it on first use."""

    global _gateway

    if _gateway is None:
        _gateway = build_lookup_gateway()
    return _gateway


def peek_lookup_gateway() -> LookupGateway | None:
    """Return the gateway if it has been built, without building it."""

    return _gateway


async def reset_lookup_gateway() -> None:
    """Close and forget the current gateway (shutdown and tests)."""

    global _gateway

    gateway, _gateway = _gateway, None
    if gateway is not None:
        await gateway.aclose()
