from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter

from app.api.dependencies import STARTED_AT, peek_lookup_gateway
from app.core.config import settings
from app.schemas.lookup import HealthResponse

router = APIRouter(tags=["Health"])


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint.

    Reports process uptime and the current cache size. Always succeeds and
    never builds the gateway or touches the upstream.

    Returns:
        HealthResponse: status "ok" plus uptime and cache size.
    """

    gateway = peek_lookup_gateway()
    return HealthResponse(
        status="ok",
        service=settings.app.service_name,
        uptime_seconds=round(time.time() - STARTED_AT, 3),
        cache_entries=len(gateway.cache) if gateway else 0,
        timestamp=_utc_now(),
    )


@router.get("/test")
def smoke_test() -> dict:
    """Unauthenticated smoke endpoint confirming the API is reachable."""

    return {
        "success": True,
        "message": "API is working!",
        "service": settings.app.service_name,
        "timestamp": _utc_now(),
    }
