"""Provider API: verify an API key against the provider's model listing."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from models.request import ProviderVerifyRequest
from services.provider_verify import verify_provider_api_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/provider", tags=["provider"])


@router.post("/verify")
async def verify_provider(req: ProviderVerifyRequest):
    """Return ``{ok, models}`` or ``{ok: false, error: {code, message}}``."""
    timeout = req.timeout_ms / 1000 if req.timeout_ms else None
    result = await verify_provider_api_key(
        req.api_key,
        base_url=req.base_url,
        provider=req.provider,
        timeout=timeout,
    )
    if not result.ok:
        logger.info("Provider verify failed: %s", result.error.code.value)
    return result.to_wire()
