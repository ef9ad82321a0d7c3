"""Factory for creating the upstream client from configuration."""

from app.adapters.upstream.base import AbstractUpstreamClient
from app.adapters.upstream.httpx_client import HttpxUpstreamClient
from app.core.config import UpstreamSettings, settings


def create_upstream_client(upstream_settings: UpstreamSettings | None = None) -> AbstractUpstreamClient:
    """Instantiate the upstream client.

    Reads configuration from app.core.config.settings (Pydantic Settings)
    unless explicit settings are passed.

    Returns:
        AbstractUpstreamClient: Configured client instance.

    Raises:
        ValueError: If UPSTREAM_URL is not an http(s) URL.
    """
    cfg = upstream_settings or settings.upstream

    if not cfg.url.lower().startswith(("http://", "https://")):
        raise ValueError("UPSTREAM_URL must be an absolute http(s) URL")

    return HttpxUpstreamClient(
        url=cfg.url,
        api_key=cfg.api_key,
        number_param=cfg.number_param,
        key_param=cfg.key_param,
        timeout_seconds=cfg.timeout_seconds,
    )
