"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
lifespan) to improve testability and separation of concerns.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.dependencies import get_lookup_gateway, reset_lookup_gateway
from app.api.routes import admin_router, health_router, lookup_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import cors_middleware, request_id_middleware
from app.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


async def _sweep_periodically(interval_seconds: float) -> None:
    """Purge expired cache entries and idle limiter windows on a timer."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = get_lookup_gateway().sweep()
        except Exception as exc:
            logger.error("cache.sweep_failed", extra={"error_type": type(exc).__name__})
            continue
        if removed:
            logger.info("cache.swept", extra={"removed": removed})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the optional sweeper and close the upstream client on shutdown."""
    sweeper: asyncio.Task[None] | None = None
    interval = settings.app.cache_sweep_interval_seconds
    if interval > 0:
        sweeper = asyncio.create_task(_sweep_periodically(interval))
        logger.info("cache.sweeper_started", extra={"interval_s": interval})

    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        await reset_lookup_gateway()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Number Lookup Proxy",
        description=(
            "Proxy for a third-party phone number information API. Requires an "
            "API key (X-API-Key header or `key` query parameter), applies a "
            "per-client rate limit and caches upstream responses for a short TTL. "
            "Every response, including errors, is a JSON envelope with `success` "
            "and `cached` fields."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    # Middleware: the last one registered is the outermost
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(cors_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(lookup_router)
    app.include_router(admin_router)
    app.include_router(health_router)

    # OpenAPI customizations (security schemes, tags, exemptions)
    apply_openapi_customizations(app)

    return app
