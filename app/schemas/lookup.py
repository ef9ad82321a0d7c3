"""Pydantic schemas for the lookup response envelope."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from app.core.errors import AppError

# Envelope fields the proxy always controls on success, regardless of upstream content
_CONTROLLED_SUCCESS_FIELDS = ("cached", "timestamp", "retry_after", "request_id")
_OPTIONAL_FIELDS = ("error", "message", "timestamp", "retry_after", "request_id")


class LookupEnvelope(BaseModel):
    """Uniform response wrapper for both success and error outcomes.

    On success the upstream payload fields are merged in at the top level
    (``extra="allow"``). Build instances through ``fresh``, ``from_cache`` or
    ``failure`` rather than the constructor.
    """

    model_config = ConfigDict(extra="allow")

    # Keys copied from the upstream payload; their nulls are kept by to_content
    _payload_keys: frozenset[str] = PrivateAttr(default_factory=frozenset)

    success: bool = Field(
        ...,
        description="True when the lookup produced upstream data.",
    )
    error: str | None = Field(
        default=None,
        description="Machine-readable error tag (e.g. invalid_key, rate_limited).",
    )
    message: str | None = Field(
        default=None,
        description="Human-readable explanation of the error.",
    )
    cached: bool = Field(
        default=False,
        description="True if the payload was served from the response cache.",
    )
    timestamp: str | None = Field(
        default=None,
        description="ISO-8601 UTC instant at which a fresh payload was fetched.",
    )
    retry_after: int | None = Field(
        default=None,
        description="Seconds to wait before retrying (rate limited responses only).",
    )
    request_id: str | None = Field(
        default=None,
        description="Correlation id of the request (error responses only).",
    )

    @classmethod
    def _with_payload(cls, payload: dict[str, Any], **controlled: Any) -> "LookupEnvelope":
        fields: dict[str, Any] = {"success": True}
        fields.update(
            (k, v) for k, v in payload.items() if k not in _CONTROLLED_SUCCESS_FIELDS
        )
        if not isinstance(fields["success"], bool):
            fields["success"] = True
        fields.update(controlled)
        # Upstream fields are passed through verbatim, without validation
        envelope = cls.model_construct(**fields)
        envelope._payload_keys = frozenset(payload).difference(_CONTROLLED_SUCCESS_FIELDS)
        return envelope

    @classmethod
    def fresh(cls, payload: dict[str, Any], *, timestamp: str) -> "LookupEnvelope":
        """Envelope for a payload just fetched from the upstream."""
        return cls._with_payload(payload, cached=False, timestamp=timestamp)

    @classmethod
    def from_cache(cls, payload: dict[str, Any]) -> "LookupEnvelope":
        """Envelope for a payload served from the response cache."""
        return cls._with_payload(payload, cached=True)

    @classmethod
    def failure(cls, exc: AppError, *, request_id: str | None = None) -> "LookupEnvelope":
        """Envelope for any error outcome."""
        retry_after = (exc.details or {}).get("retry_after")
        return cls(
            success=False,
            error=str(exc.code),
            message=exc.message,
            cached=False,
            retry_after=retry_after,
            request_id=request_id,
        )

    def to_content(self) -> dict[str, Any]:
        """JSON-ready dict with unset envelope fields omitted.

        Only the envelope's own optional fields are dropped when None;
        upstream fields are kept as-is, nulls included.
        """
        content = self.model_dump(mode="json")
        for name in _OPTIONAL_FIELDS:
            if name not in self._payload_keys and content.get(name) is None:
                content.pop(name, None)
        return content


class HealthResponse(BaseModel):
    """Liveness payload."""

    status: str = Field("ok", description="Always 'ok' while the process serves requests.")
    service: str = Field(..., description="Configured service name.")
    uptime_seconds: float = Field(..., description="Seconds since the application started.")
    cache_entries: int = Field(..., description="Number of entries currently held in the cache.")
    timestamp: str = Field(..., description="ISO-8601 UTC instant of the check.")


class AddKeyRequest(BaseModel):
    """Body of the key administration endpoint."""

    key: str = Field(..., min_length=1, description="API key to add to the key store.")


class AddKeyResponse(BaseModel):
    """Result of a key addition."""

    success: bool = True
    added: bool = Field(..., description="False when the key was already present.")
    total_keys: int = Field(..., description="Number of keys in the store after the call.")
