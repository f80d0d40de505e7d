"""Tests for services/patch_normalizer.py: provider output repair."""

import pytest

from services.patch_normalizer import (
    DOWNGRADE_MESSAGE,
    extract_json_payload,
    normalize_op,
    normalize_op_name,
    normalize_patch_candidate,
    normalize_text_style,
)
from services.patch_validator import validate_patch


# ── Operation names ───────────────────────────────────────────


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Update", "update_content"),
        ("updateContent", "update_content"),
        ("replaceBlock", "replace_block"),
        ("insert-after", "insert_after"),
        ("Insert After", "insert_after"),
        ("remove", "delete_block"),
        ("delete_block", "delete_block"),
        ("moveBlock", "move_block"),
    ],
)
def test_normalize_op_name(raw, expected):
    assert normalize_op_name(raw) == expected


# ── update / delete ───────────────────────────────────────────


def test_update_with_renamed_fields():
    op = normalize_op({"op": "Update", "blockId": "p1", "text": "Hi"})
    assert op == {"op": "update_content", "id": "p1", "content": "Hi"}


def test_update_target_object_and_style():
    op = normalize_op({
        "action": "edit",
        "target": {"id": "h1"},
        "newText": "Bigger",
        "style": {"font-size": "24px", "weight": 700, "align": "centre", "shadow": "x"},
    })
    assert op == {
        "op": "update_content",
        "id": "h1",
        "content": "Bigger",
        "textStyle": {"fontSize": 24, "fontWeight": "bold", "textAlign": "center"},
    }


def test_update_keeps_empty_content_verbatim():
    op = normalize_op({"op": "update_content", "id": "p1", "content": ""})
    assert op["content"] == ""


def test_update_without_id_is_not_invented():
    op = normalize_op({"op": "update", "text": "orphan"})
    assert "id" not in op


def test_delete_with_type_as_op_name():
    op = normalize_op({"type": "deleteBlock", "block_id": "p9"})
    assert op == {"op": "delete_block", "id": "p9"}


# ── replace / insert ──────────────────────────────────────────


def test_replace_with_wellformed_nested_block_kept():
    block = {"id": "h1", "type": "heading", "level": 2, "text": "New"}
    op = normalize_op({"op": "replace", "blockId": "h1", "block": block})
    assert op == {"op": "replace_block", "block": block, "id": "h1"}


def test_replace_nested_image_with_url_is_repaired():
    op = normalize_op({
        "op": "replace",
        "id": "img1",
        "block": {"id": "img1", "type": "image", "url": "https://x/a.png"},
    })
    assert op == {
        "op": "replace_block",
        "block": {"id": "img1", "type": "image", "src": "https://x/a.png"},
        "id": "img1",
    }
    assert validate_patch({"ops": [op]}).ops[0].block.src == "https://x/a.png"


def test_insert_nested_heading_level_alias_is_repaired():
    op = normalize_op({
        "op": "insert",
        "afterId": "p1",
        "block": {"id": "h9", "type": "heading", "headingLevel": 2, "text": "T"},
    })
    assert op["block"] == {"id": "h9", "type": "heading", "text": "T", "level": 2}
    assert op["afterId"] == "p1"
    validate_patch({"ops": [op]})


def test_replace_nested_heading_without_level_downgrades():
    op = normalize_op({
        "op": "replace",
        "id": "h1",
        "block": {"id": "h1", "type": "heading", "text": "T"},
    })
    assert op == {"op": "update_content", "content": DOWNGRADE_MESSAGE, "id": "h1"}


def test_nested_block_loose_style_is_rebuilt():
    op = normalize_op({
        "op": "replace_block",
        "id": "p1",
        "block": {"id": "p1", "type": "paragraph", "text": "x", "textStyle": {"font-weight": "700"}},
    })
    assert op["block"]["textStyle"] == {"fontWeight": "bold"}


def test_replace_with_flattened_fields():
    op = normalize_op({"op": "replaceBlock", "id": "p1", "blockType": "h2", "text": "Section"})
    assert op["block"] == {"id": "p1", "type": "heading", "text": "Section", "level": 2}


def test_insert_with_flattened_fields_and_new_id():
    op = normalize_op({
        "op": "insert",
        "afterId": "p1",
        "newId": "p2",
        "kind": "paragraph",
        "content": "Added",
    })
    assert op == {
        "op": "insert_after",
        "block": {"id": "p2", "type": "paragraph", "text": "Added"},
        "afterId": "p1",
    }


def test_insert_nested_block_uses_bare_id_as_anchor():
    op = normalize_op({
        "op": "insert_after",
        "id": "p1",
        "block": {"id": "d2", "type": "divider"},
    })
    assert op["afterId"] == "p1"
    assert op["block"]["id"] == "d2"


def test_insert_chart_gets_synthesized_id():
    op = normalize_op({
        "op": "insert_after",
        "afterId": "p1",
        "type": "chart",
        "option": {"series": [{"type": "bar", "data": [1]}]},
    })
    assert op["op"] == "insert_after"
    assert op["block"]["type"] == "chart"
    assert op["block"]["id"].startswith("chart-")


def test_insert_without_new_id_downgrades():
    op = normalize_op({"op": "insert_after", "afterId": "p1", "kind": "paragraph", "text": "x"})
    assert op == {"op": "update_content", "content": DOWNGRADE_MESSAGE, "id": "p1"}


def test_replace_heading_without_level_downgrades():
    op = normalize_op({"op": "replace_block", "id": "h1", "kind": "heading", "text": "No level"})
    assert op["op"] == "update_content"
    assert op["id"] == "h1"
    assert op["content"] == DOWNGRADE_MESSAGE


def test_unknown_op_passes_through():
    op = normalize_op({"operation": "moveBlock", "id": "p1", "to": "end"})
    assert op == {"op": "move_block", "id": "p1", "to": "end"}


def test_non_dict_op_unchanged():
    assert normalize_op("delete p1") == "delete p1"


# ── Envelope ──────────────────────────────────────────────────


def test_envelope_variants():
    op = {"op": "delete", "id": "p1"}
    expected = {"ops": [{"op": "delete_block", "id": "p1"}]}
    assert normalize_patch_candidate({"ops": [op]}) == expected
    assert normalize_patch_candidate({"operations": [op]}) == expected
    assert normalize_patch_candidate({"patch": {"changes": [op]}}) == expected
    assert normalize_patch_candidate([op]) == expected
    assert normalize_patch_candidate(op) == expected


def test_unrecognized_envelope_returned_unchanged():
    raw = {"message": "I could not do that"}
    assert normalize_patch_candidate(raw) is raw


def test_string_candidate_decoded():
    text = '```json\n{"ops": [{"op": "Update", "blockId": "p1", "text": "Hi"}]}\n```'
    assert normalize_patch_candidate(text) == {
        "ops": [{"op": "update_content", "id": "p1", "content": "Hi"}]
    }


def test_non_json_string_left_for_validator():
    assert normalize_patch_candidate("no json here") == "no json here"


def test_normalized_output_validates():
    raw = {
        "changes": [
            {"type": "update", "target": "p1", "value": "Hi", "textStyle": {"fontWeight": "600"}},
            {"op": "insertAfter", "anchorId": "p1", "block": {"id": "img1", "type": "img", "url": "a.png"}},
        ]
    }
    patch = validate_patch(normalize_patch_candidate(raw))
    assert patch.ops[0].content == "Hi"
    assert patch.ops[0].text_style.font_weight == "bold"
    assert patch.ops[1].after_id == "p1"
    assert patch.ops[1].block.src == "a.png"


# ── Text style & JSON extraction ──────────────────────────────


def test_text_style_drops_everything_unusable():
    assert normalize_text_style({"fontSize": 300, "textAlign": "diagonal"}) is None
    assert normalize_text_style("bold") is None


def test_extract_json_with_prose():
    assert extract_json_payload('Here you go: {"ops": []} hope it helps') == {"ops": []}


def test_extract_json_failure():
    with pytest.raises(ValueError):
        extract_json_payload("   ")
    with pytest.raises(ValueError):
        extract_json_payload("nothing to decode")
