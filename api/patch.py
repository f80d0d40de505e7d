"""Patch API: instruction-driven block edits and undo."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from agents.patch_generator import ProviderOverrides, get_patch_generator
from errors.exceptions import (
    BlockPatchError,
    DocumentNotFoundError,
    DocumentStoreError,
    GenerationServiceError,
    InvalidRequestError,
)
from models.blocks import DEMO_DOCUMENT_ID
from models.errors import GenerationFailureKind, format_error
from models.request import ErrorResponse, PatchRequest, PatchResponse, UndoRequest, UndoResponse
from services.document_store import is_valid_document_id
from services.edit_pipeline import get_edit_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["patch"])

NOTHING_TO_UNDO = "Nothing to undo"


def error_status(exc: BlockPatchError) -> int:
    """HTTP status for a failed edit request."""
    if isinstance(exc, DocumentNotFoundError):
        return 404
    if isinstance(exc, DocumentStoreError):
        return 500
    if isinstance(exc, GenerationServiceError):
        if exc.kind == GenerationFailureKind.INVALID_CREDENTIALS:
            return 400
        if exc.kind == GenerationFailureKind.TIMEOUT:
            return 504
        return 502
    # structural, block not found, unsupported, out of scope, bad request
    return 400


def error_response(exc: BlockPatchError) -> JSONResponse:
    body = ErrorResponse(error=exc.message, code=exc.code.value)
    return JSONResponse(status_code=error_status(exc), content=body.to_wire())


@router.post("/patch")
async def patch_page(
    req: PatchRequest,
    x_llm_base_url: str | None = Header(default=None),
    x_llm_model: str | None = Header(default=None),
    x_llm_api_key: str | None = Header(default=None),
):
    """Generate a patch for the selected blocks and apply it.

    Provider settings may be overridden per request through the
    ``x-llm-base-url`` / ``x-llm-model`` / ``x-llm-api-key`` headers.
    """
    overrides = ProviderOverrides(
        api_key=(x_llm_api_key or "").strip(),
        base_url=(x_llm_base_url or "").strip(),
        model=(x_llm_model or "").strip(),
    )
    logger.info(
        "Patch request: page=%s selected=%s", req.page_id, req.selected_block_ids
    )

    try:
        result = await get_edit_pipeline().apply_instruction(
            req.page_id,
            req.selected_block_ids,
            req.instruction,
            generator=get_patch_generator(overrides),
        )
    except BlockPatchError as e:
        logger.warning("Patch rejected for %s: %s", req.page_id, format_error(e.code, e.message))
        return error_response(e)

    return PatchResponse(patch=result.patch.to_wire(), page=result.document.to_wire()).to_wire()


@router.post("/undo")
@router.post("/undo/demo")
async def undo_page(req: UndoRequest | None = None):
    """Restore the page to its state before the latest applied patch.

    ``/api/undo/demo`` is kept for older editor clients; both paths honour
    ``pageId`` and fall back to the demo page without one.
    """
    page_id = (req.page_id.strip() if req else "") or DEMO_DOCUMENT_ID
    if not is_valid_document_id(page_id):
        return error_response(InvalidRequestError("Invalid pageId"))

    try:
        previous = await get_edit_pipeline().undo(page_id)
    except BlockPatchError as e:
        logger.warning("Undo failed for %s: %s", page_id, e.message)
        return error_response(e)

    if previous is None:
        return UndoResponse(ok=False, error=NOTHING_TO_UNDO).to_wire()
    return UndoResponse(ok=True, page=previous.to_wire()).to_wire()
