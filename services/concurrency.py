"""Concurrency controls for document edits and outbound LLM calls.

- :class:`DocumentLocks` serializes {load, generate, apply, store, push}
  per document id so two edits of the same page never interleave (a lost
  update would push a history snapshot that is no longer current).
- :func:`llm_slot` caps concurrent outbound generation calls per worker.

Both are in-process primitives; the service runs as a single worker.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

logger = logging.getLogger(__name__)


class DocumentLocks:
    """One ``asyncio.Lock`` per document id, created on demand.

    Locks are dropped again once no task holds or waits on them, so the
    map only grows with the number of documents being edited concurrently.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, document_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        self._waiters[document_id] = self._waiters.get(document_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._waiters[document_id] - 1
            if remaining:
                self._waiters[document_id] = remaining
            else:
                del self._waiters[document_id]
                del self._locks[document_id]

    def is_locked(self, document_id: str) -> bool:
        lock = self._locks.get(document_id)
        return lock is not None and lock.locked()

    @property
    def active(self) -> int:
        """Number of document ids with a holder or waiter."""
        return len(self._locks)


# ── Outbound LLM semaphore ───────────────────────────────────

_MAX_CONCURRENT_LLM = 10
_llm_semaphore: asyncio.Semaphore | None = None


def _get_semaphore() -> asyncio.Semaphore:
    """Lazy-init so the semaphore binds to the running event loop."""
    global _llm_semaphore
    if _llm_semaphore is None:
        _llm_semaphore = asyncio.Semaphore(_MAX_CONCURRENT_LLM)
        logger.info("LLM concurrency semaphore initialized (max=%d)", _MAX_CONCURRENT_LLM)
    return _llm_semaphore


@asynccontextmanager
async def llm_slot() -> AsyncIterator[None]:
    """Hold one of the worker's outbound LLM call slots."""
    async with _get_semaphore():
        yield
