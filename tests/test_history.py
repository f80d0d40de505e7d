"""Tests for services/history.py: bounded per-document undo stacks."""

import logging

import pytest

from models.blocks import Document
from services.history import UndoHistory


def _doc(text: str, doc_id: str = "d") -> Document:
    return Document.model_validate({
        "id": doc_id,
        "title": "T",
        "blocks": [{"id": "p", "type": "paragraph", "text": text}],
    })


def test_pop_empty_returns_none():
    assert UndoHistory().pop("d") is None


def test_lifo_order():
    history = UndoHistory()
    history.push("d", _doc("v1"))
    history.push("d", _doc("v2"))
    assert history.pop("d").blocks[0].text == "v2"
    assert history.pop("d").blocks[0].text == "v1"
    assert history.pop("d") is None


def test_oldest_evicted_past_capacity():
    history = UndoHistory(max_entries=3)
    for i in range(5):
        history.push("d", _doc(f"v{i}"))
    assert history.depth("d") == 3
    texts = [history.pop("d").blocks[0].text for _ in range(3)]
    assert texts == ["v4", "v3", "v2"]


def test_default_capacity_is_twenty():
    history = UndoHistory()
    for i in range(25):
        history.push("d", _doc(f"v{i}"))
    assert history.max_entries == 20
    assert history.depth("d") == 20


def test_stacks_are_per_document():
    history = UndoHistory()
    history.push("a", _doc("a1", "a"))
    history.push("b", _doc("b1", "b"))
    history.clear("a")
    assert history.depth("a") == 0
    assert history.pop("b").id == "b"


def test_snapshot_is_isolated_from_caller():
    history = UndoHistory()
    doc = _doc("original")
    history.push("d", doc)
    doc.blocks[0].text = "mutated"
    assert history.pop("d").blocks[0].text == "original"


def test_document_cap_evicts_least_recent(monkeypatch, caplog):
    monkeypatch.setattr(UndoHistory, "MAX_DOCUMENTS", 2)
    history = UndoHistory()
    history.push("a", _doc("a", "a"))
    history.push("b", _doc("b", "b"))
    history.push("a", _doc("a2", "a"))
    history.push("c", _doc("c", "c"))
    assert history.depth("b") == 0
    assert history.depth("a") == 2
    assert history.depth("c") == 1
    evictions = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(evictions) == 1
    assert "document b dropped (1 snapshots)" in evictions[0].getMessage()


def test_invalid_capacity():
    with pytest.raises(ValueError):
        UndoHistory(max_entries=0)
