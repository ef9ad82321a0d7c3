from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import get_lookup_gateway
from app.core.auth import verify_admin_key
from app.core.logging import fingerprint
from app.schemas.lookup import AddKeyRequest, AddKeyResponse
from app.services.lookup_service import LookupGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])


@router.post(
    "/admin/keys",
    response_model=AddKeyResponse,
    dependencies=[Depends(verify_admin_key)],
)
async def add_api_key(
    body: AddKeyRequest,
    gateway: Annotated[LookupGateway, Depends(get_lookup_gateway)],
) -> AddKeyResponse:
    """Add a client API key to the running key store.

    Requires the X-Admin-Key header. Adding a key that already exists is a
    no-op reported as ``added: false``. Keys are not persisted: a restart
    falls back to the configured set.
    """

    added = gateway.key_store.add(body.key)
    if not added:
        logger.info("admin.key_exists", extra={"api_key_hash": fingerprint(body.key)})

    return AddKeyResponse(added=added, total_keys=len(gateway.key_store))
