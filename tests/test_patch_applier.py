"""Tests for services/patch_applier.py and services/block_tree.py."""

import pytest

from errors.exceptions import (
    BlockNotFoundError,
    PatchStructuralError,
    UnsupportedOperationError,
)
from models.blocks import Document, HeadingBlock, ParagraphBlock, RichBlock
from services.block_tree import count_blocks, find_block, find_location, find_node, subtree_ids
from services.patch_applier import apply_patch
from services.patch_validator import validate_patch


def _patch(*ops):
    return validate_patch({"ops": list(ops)})


# ── Tree lookups ──────────────────────────────────────────────


def test_find_location_nested(nested_document):
    loc = find_location(nested_document.blocks, "p-a2")
    assert loc.index == 1
    assert loc.block.id == "p-a2"
    assert [b.id for b in loc.owner] == ["p-a1", "p-a2"]


def test_find_location_skips_column_ids(nested_document):
    assert find_location(nested_document.blocks, "col-a") is None
    assert find_node(nested_document.blocks, "col-a").id == "col-a"


def test_subtree_ids_of_columns(nested_document):
    cols = find_block(nested_document.blocks, "cols")
    assert subtree_ids(cols) == {"cols", "col-a", "p-a1", "p-a2", "col-b", "chart-b"}


def test_count_blocks(demo_document):
    # 6 top level + h2-traffic, p-traffic, chart-visits
    assert count_blocks(demo_document.blocks) == 9


# ── update_content ────────────────────────────────────────────


def test_update_paragraph_text(simple_document):
    result = apply_patch(simple_document, _patch({"op": "update_content", "id": "p1", "content": "Hi"}))
    assert result.blocks[1].text == "Hi"
    assert simple_document.blocks[1].text == "Hello"


def test_update_merges_text_style(simple_document):
    first = apply_patch(
        simple_document,
        _patch({"op": "update_content", "id": "h1", "content": "T", "textStyle": {"fontSize": 32}}),
    )
    second = apply_patch(
        first,
        _patch({"op": "update_content", "id": "h1", "content": "T", "textStyle": {"textAlign": "center"}}),
    )
    style = second.blocks[0].text_style
    assert style.font_size == 32
    assert style.text_align == "center"


def test_update_image_sets_caption():
    doc = Document.model_validate({
        "id": "d", "title": "T",
        "blocks": [{"id": "img", "type": "image", "src": "a.png"}],
    })
    patched = apply_patch(doc, _patch({"op": "update_content", "id": "img", "content": "A caption"}))
    assert patched.blocks[0].caption == "A caption"
    assert patched.blocks[0].src == "a.png"


def test_update_rich_first_text_item(demo_document):
    result = apply_patch(
        demo_document, _patch({"op": "update_content", "id": "rich-notes", "content": "New notes"})
    )
    rich = find_block(result.blocks, "rich-notes")
    assert isinstance(rich, RichBlock)
    assert rich.items[0].text == "New notes"
    assert rich.items[1].type == "image"


def test_update_rich_without_text_appends_item():
    doc = Document.model_validate({
        "id": "d", "title": "T",
        "blocks": [{"id": "r", "type": "rich", "items": [{"type": "image", "src": "x.png"}]}],
    })
    result = apply_patch(doc, _patch({"op": "update_content", "id": "r", "content": "Added"}))
    assert [item.type for item in result.blocks[0].items] == ["image", "text"]
    assert result.blocks[0].items[1].text == "Added"


@pytest.mark.parametrize("block_id", ["divider-1", "chart-visits", "cols-metrics"])
def test_update_unsupported_kinds(demo_document, block_id):
    with pytest.raises(UnsupportedOperationError):
        apply_patch(demo_document, _patch({"op": "update_content", "id": block_id, "content": "x"}))


# ── replace / insert / delete ─────────────────────────────────


def test_replace_changes_kind(simple_document):
    result = apply_patch(
        simple_document,
        _patch({"op": "replace_block", "id": "p1", "block": {"id": "p1", "type": "heading", "level": 2, "text": "Now heading"}}),
    )
    assert isinstance(result.blocks[1], HeadingBlock)
    assert result.blocks[1].level == 2


def test_insert_inside_column(nested_document):
    result = apply_patch(
        nested_document,
        _patch({"op": "insert_after", "afterId": "p-a1", "block": {"id": "p-new", "type": "paragraph", "text": "Mid"}}),
    )
    column = find_node(result.blocks, "col-a")
    assert [b.id for b in column.blocks] == ["p-a1", "p-new", "p-a2"]


def test_delete_nested_block(nested_document):
    result = apply_patch(nested_document, _patch({"op": "delete_block", "id": "chart-b"}))
    assert find_block(result.blocks, "chart-b") is None
    assert find_node(result.blocks, "col-b").blocks == []


def test_insert_then_delete_round_trips(simple_document):
    inserted = apply_patch(
        simple_document,
        _patch({"op": "insert_after", "afterId": "h1", "block": {"id": "d1", "type": "divider"}}),
    )
    assert [b.id for b in inserted.blocks] == ["h1", "d1", "p1"]
    restored = apply_patch(inserted, _patch({"op": "delete_block", "id": "d1"}))
    assert restored == simple_document


def test_ops_apply_in_order(simple_document):
    result = apply_patch(
        simple_document,
        _patch(
            {"op": "insert_after", "afterId": "p1", "block": {"id": "p2", "type": "paragraph", "text": "Two"}},
            {"op": "update_content", "id": "p2", "content": "Second"},
        ),
    )
    assert isinstance(result.blocks[2], ParagraphBlock)
    assert result.blocks[2].text == "Second"


# ── Atomicity & invariants ────────────────────────────────────


def test_empty_patch_is_identity(demo_document):
    assert apply_patch(demo_document, _patch()) == demo_document


def test_missing_id_aborts_whole_patch(simple_document):
    before = simple_document.model_copy(deep=True)
    with pytest.raises(BlockNotFoundError, match="Block id not found: ghost"):
        apply_patch(
            simple_document,
            _patch(
                {"op": "update_content", "id": "p1", "content": "changed"},
                {"op": "delete_block", "id": "ghost"},
            ),
        )
    assert simple_document == before


def test_duplicate_id_from_insert_rejected(simple_document):
    with pytest.raises(PatchStructuralError):
        apply_patch(
            simple_document,
            _patch({"op": "insert_after", "afterId": "h1", "block": {"id": "p1", "type": "divider"}}),
        )


def test_replace_may_keep_or_change_id(simple_document):
    result = apply_patch(
        simple_document,
        _patch({"op": "replace_block", "id": "p1", "block": {"id": "p1-v2", "type": "paragraph", "text": "x"}}),
    )
    assert [b.id for b in result.blocks] == ["h1", "p1-v2"]
