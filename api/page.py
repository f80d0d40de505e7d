"""Page API: read the current state of a document."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from services.document_store import is_valid_document_id
from services.edit_pipeline import get_edit_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/page", tags=["page"])


@router.get("/{page_id}")
async def get_page(page_id: str):
    """Return the stored document as camelCase JSON."""
    if not is_valid_document_id(page_id):
        raise HTTPException(status_code=400, detail="Invalid pageId")

    document = await get_edit_pipeline().store.load(page_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Page not found: {page_id}")
    return document.to_wire()
