"""httpx-based client for the upstream lookup API."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from app.adapters.upstream.base import AbstractUpstreamClient
from app.core.errors import ErrorCode, UpstreamAppError
from app.core.logging import fingerprint

logger = logging.getLogger(__name__)


class HttpxUpstreamClient(AbstractUpstreamClient):
    """Issues a single GET per lookup against a fixed upstream endpoint.

    The number and the upstream credential travel as query parameters. The
    decoded JSON body is returned verbatim; non-object bodies are wrapped as
    ``{"data": <value>}`` so they can be merged into the response envelope.
    """

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        *,
        number_param: str = "number",
        key_param: str = "key",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            url: Upstream endpoint URL.
            api_key: Upstream credential, sent as ``key_param``.
            number_param: Query parameter name for the phone number.
            key_param: Query parameter name for the credential.
            timeout_seconds: Timeout applied to connect, read, write and pool waits.
            transport: Optional custom transport (tests use httpx.MockTransport).
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._number_param = number_param
        self._key_param = key_param
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def _build_params(self, number: str) -> dict[str, str]:
        params = {self._number_param: number}
        if self._api_key:
            params[self._key_param] = self._api_key
        return params

    async def fetch(self, number: str) -> dict[str, Any]:
        """Fetch the upstream payload for ``number`` (single attempt, no retry).

        Raises:
            UpstreamAppError: upstream_timeout, upstream_error (carries the
                upstream status code) or upstream_unreachable.
        """
        start = time.perf_counter()
        try:
            response = await self.client.get(self.url, params=self._build_params(number))
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            self._log_failure(ErrorCode.UPSTREAM_TIMEOUT, start, number, exc)
            raise UpstreamAppError(
                code=ErrorCode.UPSTREAM_TIMEOUT,
                message="Request timeout",
                details={"timeout_s": self.timeout_seconds},
            ) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            self._log_failure(ErrorCode.UPSTREAM_ERROR, start, number, exc, status_code=status_code)
            raise UpstreamAppError(
                code=ErrorCode.UPSTREAM_ERROR,
                message="Error from source API",
                details={"status_code": status_code},
            ) from exc
        except httpx.RequestError as exc:
            self._log_failure(ErrorCode.UPSTREAM_UNREACHABLE, start, number, exc)
            raise UpstreamAppError(
                code=ErrorCode.UPSTREAM_UNREACHABLE,
                message="Source API is unreachable",
            ) from exc

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self._log_failure(
                ErrorCode.UPSTREAM_ERROR, start, number, exc, status_code=response.status_code
            )
            raise UpstreamAppError(
                code=ErrorCode.UPSTREAM_ERROR,
                message="Source API returned an invalid response",
                details={"status_code": response.status_code, "reason": "invalid_json"},
            ) from exc

        logger.info(
            "upstream.fetched",
            extra={
                "number_hash": fingerprint(number),
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

        if not isinstance(payload, dict):
            return {"data": payload}
        return payload

    def _log_failure(
        self,
        code: ErrorCode,
        start: float,
        number: str,
        exc: Exception,
        *,
        status_code: int | None = None,
    ) -> None:
        logger.warning(
            "upstream.fetch_failed",
            extra={
                "error_code": code,
                "error_type": type(exc).__name__,
                "status_code": status_code,
                "number_hash": fingerprint(number),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

    async def aclose(self) -> None:
        await self.client.aclose()
