"""Tests for models/patch.py and services/patch_validator.py."""

import pytest

from errors.exceptions import PatchStructuralError
from models.blocks import HeadingBlock
from models.patch import (
    DeleteBlockOp,
    InsertAfterOp,
    Patch,
    ReplaceBlockOp,
    UpdateContentOp,
    target_id,
)
from services.patch_validator import validate_patch


# ── Patch model ───────────────────────────────────────────────


def test_patch_ops_discriminated():
    patch = Patch.model_validate({
        "ops": [
            {"op": "update_content", "id": "p1", "content": "Hi"},
            {"op": "replace_block", "id": "h1", "block": {"id": "h1", "type": "heading", "level": 2, "text": "T"}},
            {"op": "insert_after", "afterId": "p1", "block": {"id": "d9", "type": "divider"}},
            {"op": "delete_block", "id": "d9"},
        ]
    })
    assert [type(op) for op in patch.ops] == [
        UpdateContentOp, ReplaceBlockOp, InsertAfterOp, DeleteBlockOp,
    ]
    assert isinstance(patch.ops[1].block, HeadingBlock)
    assert patch.target_ids() == ["p1", "h1", "p1", "d9"]


def test_target_id_uses_after_id_for_insert():
    op = InsertAfterOp(after_id="anchor", block={"id": "n", "type": "divider"})
    assert target_id(op) == "anchor"


def test_empty_patch_is_valid():
    assert validate_patch({"ops": []}).ops == []


def test_patch_wire_format():
    patch = Patch(ops=[InsertAfterOp(after_id="a", block={"id": "n", "type": "divider"})])
    assert patch.to_wire() == {
        "ops": [{"op": "insert_after", "afterId": "a", "block": {"id": "n", "type": "divider"}}]
    }


# ── Validator ─────────────────────────────────────────────────


def test_validator_rejects_non_object():
    with pytest.raises(PatchStructuralError, match="expected an object"):
        validate_patch(["not", "a", "patch"])


def test_validator_rejects_unknown_op():
    with pytest.raises(PatchStructuralError) as exc_info:
        validate_patch({"ops": [{"op": "move_block", "id": "p1"}]})
    assert exc_info.value.path.startswith("ops.0")


def test_validator_rejects_unknown_field():
    with pytest.raises(PatchStructuralError):
        validate_patch({"ops": [{"op": "delete_block", "id": "p1", "force": True}]})


def test_validator_rejects_unknown_field_inside_block():
    with pytest.raises(PatchStructuralError) as exc_info:
        validate_patch({
            "ops": [
                {
                    "op": "insert_after",
                    "afterId": "p1",
                    "block": {"id": "p2", "type": "paragraph", "text": "x", "color": "red"},
                }
            ]
        })
    assert exc_info.value.path == "ops.0.block.color"


def test_validator_rejects_missing_content():
    with pytest.raises(PatchStructuralError) as exc_info:
        validate_patch({"ops": [{"op": "update_content", "id": "p1"}]})
    assert exc_info.value.path == "ops.0.content"


def test_validator_reports_nested_block_path():
    with pytest.raises(PatchStructuralError) as exc_info:
        validate_patch({
            "ops": [
                {"op": "replace_block", "id": "h1", "block": {"id": "h1", "type": "heading", "level": 7, "text": "x"}}
            ]
        })
    assert exc_info.value.path == "ops.0.block.level"
    assert "Invalid patch: ops.0.block.level" in exc_info.value.message


def test_validator_rejects_empty_id():
    with pytest.raises(PatchStructuralError):
        validate_patch({"ops": [{"op": "delete_block", "id": ""}]})


def test_validator_rejects_bad_text_style():
    with pytest.raises(PatchStructuralError):
        validate_patch({
            "ops": [{"op": "update_content", "id": "p1", "content": "x", "textStyle": {"fontSize": 200}}]
        })


def test_validator_passes_patch_instance_through():
    patch = Patch(ops=[DeleteBlockOp(id="x")])
    assert validate_patch(patch) is patch
