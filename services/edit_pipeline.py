"""Edit pipeline: instruction in, new document (or typed failure) out.

One edit request runs, under the document's lock::

    load → generate → normalize → validate → scope check → apply → store → push history

Every step before ``store`` is side-effect free, so any failure there
leaves the stored document and its undo history untouched.  The history
push happens only after the store write succeeded: a snapshot is never
recorded for a state that was not durably committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from agents.patch_generator import PatchGenerator, get_patch_generator
from errors.exceptions import (
    DocumentNotFoundError,
    DocumentStoreError,
    InvalidRequestError,
)
from models.blocks import Document
from models.patch import Patch
from services.block_tree import count_blocks
from services.concurrency import DocumentLocks
from services.document_store import DocumentStore, get_document_store, is_valid_document_id
from services.history import UndoHistory
from services.patch_applier import apply_patch
from services.patch_normalizer import normalize_patch_candidate
from services.patch_validator import validate_patch
from services.scope import ensure_in_scope

logger = logging.getLogger(__name__)


@dataclass
class EditResult:
    """A committed edit: the new authoritative document and the patch applied."""

    document: Document
    patch: Patch


def _clean_selection(selected_ids: Iterable[str]) -> list[str]:
    """De-duplicate while keeping order; reject an empty selection."""
    cleaned = [sid for sid in dict.fromkeys(selected_ids) if isinstance(sid, str) and sid]
    if not cleaned:
        raise InvalidRequestError("selectedBlockIds must be a non-empty string array")
    return cleaned


def prepare_patch(candidate: Any, document: Document, selected_ids: list[str]) -> Patch:
    """Normalize, validate and scope-check a raw candidate against *document*.

    Raises:
        PatchStructuralError: the normalized candidate is not a valid patch.
        OutOfScopeError: a target escapes the selection.
    """
    normalized = normalize_patch_candidate(candidate)
    patch = validate_patch(normalized)
    ensure_in_scope(patch, document, selected_ids)
    return patch


class EditPipeline:
    """Runs edits and undos against an explicit document store and history."""

    def __init__(
        self,
        store: DocumentStore,
        history: UndoHistory,
        *,
        generator: PatchGenerator | None = None,
        locks: DocumentLocks | None = None,
    ) -> None:
        self._store = store
        self._history = history
        self._generator = generator
        self._locks = locks or DocumentLocks()

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def history(self) -> UndoHistory:
        return self._history

    async def _load(self, document_id: str) -> Document:
        if not is_valid_document_id(document_id):
            raise InvalidRequestError("Invalid pageId")
        document = await self._store.load(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    async def _commit(self, document_id: str, previous: Document, patch: Patch) -> EditResult:
        new_document = apply_patch(previous, patch)
        await self._store.save(document_id, new_document)
        self._history.push(document_id, previous)
        logger.info(
            "Applied patch to %s: ops=%d blocks=%d history=%d",
            document_id,
            len(patch.ops),
            count_blocks(new_document.blocks),
            self._history.depth(document_id),
        )
        return EditResult(document=new_document, patch=patch)

    async def apply_instruction(
        self,
        document_id: str,
        selected_ids: Iterable[str],
        instruction: str,
        *,
        generator: PatchGenerator | None = None,
    ) -> EditResult:
        """Generate a patch for *instruction* and commit it atomically.

        Raises:
            InvalidRequestError, DocumentNotFoundError, GenerationServiceError,
            PatchStructuralError, OutOfScopeError, BlockNotFoundError,
            UnsupportedOperationError, DocumentStoreError.
        """
        selected = _clean_selection(selected_ids)
        if not instruction or not instruction.strip():
            raise InvalidRequestError("instruction must be a non-empty string")
        gen = generator or self._generator or get_patch_generator()

        async with self._locks.hold(document_id):
            document = await self._load(document_id)
            candidate = await gen.generate(document, selected, instruction)
            patch = prepare_patch(candidate, document, selected)
            return await self._commit(document_id, document, patch)

    async def apply_candidate(
        self,
        document_id: str,
        selected_ids: Iterable[str],
        candidate: Any,
    ) -> EditResult:
        """Commit an already-obtained raw patch candidate (no generation step)."""
        selected = _clean_selection(selected_ids)
        async with self._locks.hold(document_id):
            document = await self._load(document_id)
            patch = prepare_patch(candidate, document, selected)
            return await self._commit(document_id, document, patch)

    async def undo(self, document_id: str) -> Document | None:
        """Restore the previous state; ``None`` means nothing to undo."""
        async with self._locks.hold(document_id):
            previous = self._history.pop(document_id)
            if previous is None:
                logger.info("Nothing to undo for %s", document_id)
                return None
            try:
                await self._store.save(document_id, previous)
            except DocumentStoreError:
                # Keep the snapshot so the undo can be retried.
                self._history.push(document_id, previous)
                raise
            logger.info(
                "Undo on %s: history=%d", document_id, self._history.depth(document_id)
            )
            return previous


# ── Module-level Singleton ───────────────────────────────────

_pipeline: EditPipeline | None = None


def get_edit_pipeline() -> EditPipeline:
    """Get the process-wide pipeline (file store + in-memory history)."""
    global _pipeline
    if _pipeline is None:
        from config.settings import get_settings

        settings = get_settings()
        _pipeline = EditPipeline(
            store=get_document_store(),
            history=UndoHistory(max_entries=settings.history_max_entries),
        )
        logger.info(
            "Initialized EditPipeline (history_max_entries=%d)", settings.history_max_entries
        )
    return _pipeline
