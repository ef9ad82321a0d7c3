"""Upstream adapter layer - abstracts over the third-party lookup API."""

from app.adapters.upstream.base import AbstractUpstreamClient
from app.adapters.upstream.factory import create_upstream_client
from app.adapters.upstream.httpx_client import HttpxUpstreamClient

__all__ = [
    "AbstractUpstreamClient",
    "HttpxUpstreamClient",
    "create_upstream_client",
]
