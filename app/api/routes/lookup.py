from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from app.api.dependencies import get_lookup_gateway
from app.core.rate_limit import rate_limit_headers, resolve_client_identity
from app.services.lookup_service import LookupGateway, LookupRequest

router = APIRouter(tags=["Lookup"])


@router.get("/lookup", response_class=JSONResponse)
@router.get("/api", response_class=JSONResponse, include_in_schema=False)
async def lookup_number(
    request: Request,
    gateway: Annotated[LookupGateway, Depends(get_lookup_gateway)],
    number: Annotated[
        str | None,
        Query(description="Phone number to look up: 10-15 digits, no separators."),
    ] = None,
    key: Annotated[
        str | None,
        Query(description="API key (alternative to the X-API-Key header)."),
    ] = None,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> JSONResponse:
    """Phone number lookup endpoint.

    Authenticates the caller, applies the per-client rate limit, validates
    the number and serves the upstream payload from cache or a fresh fetch.
    Every outcome, including errors, is a JSON envelope with ``success``
    and ``cached`` fields.

    Args:
        request: Incoming request (used to derive the client identity).
        gateway: Process-wide lookup gateway.
        number: Phone number to look up.
        key: API key passed as a query parameter.
        x_api_key: API key passed as a header; wins over ``key``.

    Returns:
        JSONResponse: The envelope with 200 on success or the error's status.
    """
    lookup_request = LookupRequest(
        number=number,
        api_key=x_api_key or key,
        client_identity=resolve_client_identity(request),
    )
    outcome = await gateway.lookup(lookup_request)

    return JSONResponse(
        status_code=outcome.status_code,
        content=outcome.envelope.to_content(),
        headers=rate_limit_headers(outcome.error) or None,
    )
