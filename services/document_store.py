"""Document store: per-id persistence of the authoritative Document.

Provides an abstract interface with two implementations:

- :class:`InMemoryDocumentStore` for tests and ephemeral runs
- :class:`FileDocumentStore`, one camelCase JSON file per page under
  ``pages_dir`` with a read-through cache

Documents are immutable values: ``save`` replaces the stored reference and
readers always get a consistent snapshot.  A stored file that fails
Document decoding is treated as not-found, never coerced.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from errors.exceptions import DocumentStoreError
from models.blocks import DEMO_DOCUMENT_ID, Document
from services.seed_document import build_demo_document

logger = logging.getLogger(__name__)

_DOCUMENT_ID_RE = re.compile(r"[a-zA-Z0-9_-]+")


def is_valid_document_id(document_id: str) -> bool:
    """Ids double as file names, so only ``[a-zA-Z0-9_-]`` is allowed."""
    return bool(document_id) and bool(_DOCUMENT_ID_RE.fullmatch(document_id))


# ── Abstract Interface ───────────────────────────────────────


class DocumentStore(ABC):
    """Abstract document store interface."""

    @abstractmethod
    async def load(self, document_id: str) -> Document | None:
        """Return the current Document, or ``None`` if it does not exist."""

    @abstractmethod
    async def save(self, document_id: str, document: Document) -> None:
        """Persist *document* as the new authoritative state.

        Raises:
            DocumentStoreError: the write did not complete.
        """


# ── In-Memory Implementation ─────────────────────────────────


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store; seeds ``demo`` on first access when enabled."""

    def __init__(self, *, seed_demo: bool = True) -> None:
        self._documents: dict[str, Document] = {}
        self._seed_demo = seed_demo

    async def load(self, document_id: str) -> Document | None:
        document = self._documents.get(document_id)
        if document is None and self._seed_demo and document_id == DEMO_DOCUMENT_ID:
            document = build_demo_document()
            self._documents[document_id] = document
        return document

    async def save(self, document_id: str, document: Document) -> None:
        self._documents[document_id] = document

    @property
    def size(self) -> int:
        return len(self._documents)


# ── File Implementation ──────────────────────────────────────


class FileDocumentStore(DocumentStore):
    """JSON files at ``<root>/<id>.json`` with an in-process cache."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._cache: dict[str, Document] = {}

    def _path(self, document_id: str) -> Path:
        return self._root / f"{document_id}.json"

    def _read(self, document_id: str) -> Document | None:
        path = self._path(document_id)
        if not path.is_file():
            return None
        try:
            return Document.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Unreadable page file %s treated as not found: %s", path, e)
            return None

    def _write(self, document_id: str, document: Document) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        path = self._path(document_id)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(
            json.dumps(document.to_wire(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        tmp.replace(path)

    async def load(self, document_id: str) -> Document | None:
        if not is_valid_document_id(document_id):
            return None
        cached = self._cache.get(document_id)
        if cached is not None:
            return cached

        document = await asyncio.to_thread(self._read, document_id)
        if document is None and document_id == DEMO_DOCUMENT_ID:
            document = build_demo_document()
        if document is not None:
            self._cache[document_id] = document
        return document

    async def save(self, document_id: str, document: Document) -> None:
        if not is_valid_document_id(document_id):
            raise DocumentStoreError(document_id, "invalid document id")
        try:
            await asyncio.to_thread(self._write, document_id, document)
        except OSError as e:
            logger.exception("Failed to write page %s", document_id)
            raise DocumentStoreError(document_id, str(e)) from e
        self._cache[document_id] = document
        logger.debug("Saved page %s to %s", document_id, self._root)


# ── Module-level Singleton ───────────────────────────────────

_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """Get the singleton document store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        _store = FileDocumentStore(settings.pages_dir)
        logger.info("Initialized FileDocumentStore (root=%s)", settings.pages_dir)
    return _store
