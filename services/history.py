"""In-memory undo history: bounded per-document stacks of prior states.

One applied patch pushes exactly one snapshot (the pre-edit document),
regardless of how many ops it contained.  When a stack exceeds
``max_entries`` the oldest snapshot is evicted.  ``MAX_DOCUMENTS`` caps how
many document ids keep a history at all; the least recently touched one is
dropped first.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict, deque

from models.blocks import Document

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 20


class UndoHistory:
    """Thread-safe per-document undo stacks."""

    MAX_DOCUMENTS = 1000

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._lock = threading.RLock()
        self._max_entries = max_entries
        self._stacks: OrderedDict[str, deque[Document]] = OrderedDict()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def push(self, document_id: str, snapshot: Document) -> None:
        """Record *snapshot* as the state to return to on the next undo."""
        with self._lock:
            stack = self._stacks.get(document_id)
            if stack is None:
                stack = deque(maxlen=self._max_entries)
                self._stacks[document_id] = stack
            self._stacks.move_to_end(document_id)
            stack.append(snapshot.model_copy(deep=True))

            if len(self._stacks) > self.MAX_DOCUMENTS:
                evicted, lost = self._stacks.popitem(last=False)
                logger.warning(
                    "Undo history for document %s dropped (%d snapshots): more than %d documents tracked",
                    evicted,
                    len(lost),
                    self.MAX_DOCUMENTS,
                )

    def pop(self, document_id: str) -> Document | None:
        """Remove and return the most recent snapshot; ``None`` when empty."""
        with self._lock:
            stack = self._stacks.get(document_id)
            if not stack:
                return None
            return stack.pop()

    def depth(self, document_id: str) -> int:
        with self._lock:
            stack = self._stacks.get(document_id)
            return len(stack) if stack else 0

    def clear(self, document_id: str) -> None:
        with self._lock:
            self._stacks.pop(document_id, None)
