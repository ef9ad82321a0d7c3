"""Tests for gateway wiring and process-wide lifecycle."""

import pytest
from fastapi.testclient import TestClient

from app.adapters.upstream.httpx_client import HttpxUpstreamClient
from app.api import dependencies
from app.api.dependencies import (
    build_lookup_gateway,
    get_lookup_gateway,
    peek_lookup_gateway,
    reset_lookup_gateway,
)
from app.core.config import settings
from app.main import app


@pytest.mark.asyncio
async def test_build_wires_components_from_settings() -> None:
    gateway = build_lookup_gateway(settings)
    try:
        assert gateway.key_store.is_valid("test-api-key-123")
        assert gateway.key_store.is_valid("test-api-key-456")
        assert gateway.rate_limiter.limit == settings.app.rate_limit_requests
        assert gateway.rate_limiter.window_seconds == settings.app.rate_limit_window_seconds
        assert gateway.cache.ttl_seconds == settings.app.cache_ttl_seconds
        assert isinstance(gateway.upstream, HttpxUpstreamClient)
        assert gateway.upstream.url == settings.upstream.url
    finally:
        await gateway.aclose()


@pytest.mark.asyncio
async def test_gateway_is_a_lazy_singleton() -> None:
    await reset_lookup_gateway()
    assert peek_lookup_gateway() is None

    first = get_lookup_gateway()
    assert get_lookup_gateway() is first
    assert peek_lookup_gateway() is first

    await reset_lookup_gateway()
    assert dependencies._gateway is None


def test_lifespan_closes_gateway_on_shutdown() -> None:
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        get_lookup_gateway()
        assert peek_lookup_gateway() is not None

    assert peek_lookup_gateway() is None


def test_app_settings_expose_only_consumed_fields() -> None:
    assert "debug" not in type(settings.app).model_fields
    assert not hasattr(settings.app, "debug")
