"""API request / response models."""

from __future__ import annotations

from pydantic import Field

from models.base import CamelModel
from models.blocks import DEMO_DOCUMENT_ID
from models.provider import ProviderType


class PatchRequest(CamelModel):
    """POST /api/patch: request body."""

    page_id: str = DEMO_DOCUMENT_ID
    selected_block_ids: list[str] = Field(min_length=1)
    instruction: str = Field(min_length=1)


class PatchResponse(CamelModel):
    """POST /api/patch: response body (wire dicts, camelCase, no nulls)."""

    ok: bool = True
    patch: dict
    page: dict


class UndoRequest(CamelModel):
    """POST /api/undo: request body."""

    page_id: str = DEMO_DOCUMENT_ID


class UndoResponse(CamelModel):
    """POST /api/undo: ``page`` on success, ``error`` when nothing to undo."""

    ok: bool
    page: dict | None = None
    error: str | None = None


class ProviderVerifyRequest(CamelModel):
    """POST /api/provider/verify: request body."""

    api_key: str = ""
    base_url: str | None = None
    provider: ProviderType = ProviderType.OPENAI_COMPATIBLE
    timeout_ms: int | None = None


class ErrorResponse(CamelModel):
    """Body of every failed edit request."""

    ok: bool = False
    error: str
    code: str
