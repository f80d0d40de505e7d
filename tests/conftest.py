"""Shared pytest fixtures for block patch engine tests.

Provides:
- ``simple_document``: ``[heading h1 "Title", paragraph p1 "Hello"]``
- ``nested_document``: a columns block with nested paragraphs and a chart
- ``demo_document``: the built-in seed page
- ``memory_store``: fresh InMemoryDocumentStore per test
- ``history``: fresh UndoHistory per test
- ``pipeline``: EditPipeline over the two above with the mock generator
"""

from __future__ import annotations

import pytest

from agents.patch_generator import MockPatchGenerator
from models.blocks import Document
from services.document_store import InMemoryDocumentStore
from services.edit_pipeline import EditPipeline
from services.history import UndoHistory
from services.seed_document import build_demo_document


@pytest.fixture
def simple_document() -> Document:
    """Two-block page used by the scope scenario."""
    return Document.model_validate({
        "id": "simple",
        "title": "Simple",
        "blocks": [
            {"id": "h1", "type": "heading", "level": 1, "text": "Title"},
            {"id": "p1", "type": "paragraph", "text": "Hello"},
        ],
    })


@pytest.fixture
def nested_document() -> Document:
    """Page with a columns block: col-a [p-a1, p-a2], col-b [chart-b]."""
    return Document.model_validate({
        "id": "nested",
        "title": "Nested",
        "blocks": [
            {"id": "h-top", "type": "heading", "level": 1, "text": "Top"},
            {
                "id": "cols",
                "type": "columns",
                "gap": 16,
                "columns": [
                    {
                        "id": "col-a",
                        "blocks": [
                            {"id": "p-a1", "type": "paragraph", "text": "Left one"},
                            {"id": "p-a2", "type": "paragraph", "text": "Left two"},
                        ],
                    },
                    {
                        "id": "col-b",
                        "blocks": [
                            {
                                "id": "chart-b",
                                "type": "chart",
                                "option": {"series": [{"type": "bar", "data": [1, 2]}]},
                            },
                        ],
                    },
                ],
            },
            {"id": "p-tail", "type": "paragraph", "text": "Tail"},
        ],
    })


@pytest.fixture
def demo_document() -> Document:
    return build_demo_document()


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    """Fresh in-memory store (``demo`` seeded on demand), isolated per test."""
    return InMemoryDocumentStore()


@pytest.fixture
def history() -> UndoHistory:
    return UndoHistory(max_entries=20)


@pytest.fixture
def pipeline(memory_store, history) -> EditPipeline:
    """Pipeline wired to the in-memory store and the mock generator."""
    return EditPipeline(memory_store, history, generator=MockPatchGenerator())
