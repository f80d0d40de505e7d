"""Patch models: the closed operation language that mutates a Document.

- PatchOpType: the four canonical operation tags
- UpdateContentOp / ReplaceBlockOp / InsertAfterOp / DeleteBlockOp
- PatchOp: ``op``-tagged union of the above
- Patch: an ordered list of ops applied as one atomic edit

Ops address blocks by id alone (no path); the applier locates them anywhere
in the tree.  Unknown op tags and unknown op fields are rejected.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import Field

from models.base import StrictCamelModel
from models.blocks import Block, TextStyle


class PatchOpType(str, Enum):
    """Canonical operation tags."""

    UPDATE_CONTENT = "update_content"  # Replace text / caption / first rich text item
    REPLACE_BLOCK = "replace_block"  # Swap the whole block (type may change)
    INSERT_AFTER = "insert_after"  # Insert a new block after an anchor block
    DELETE_BLOCK = "delete_block"  # Remove a block from its owning sequence


class UpdateContentOp(StrictCamelModel):
    op: Literal["update_content"] = "update_content"
    id: str = Field(min_length=1)
    content: str
    text_style: TextStyle | None = None


class ReplaceBlockOp(StrictCamelModel):
    op: Literal["replace_block"] = "replace_block"
    id: str = Field(min_length=1)
    block: Block


class InsertAfterOp(StrictCamelModel):
    op: Literal["insert_after"] = "insert_after"
    after_id: str = Field(min_length=1)
    block: Block


class DeleteBlockOp(StrictCamelModel):
    op: Literal["delete_block"] = "delete_block"
    id: str = Field(min_length=1)


PatchOp = Annotated[
    Union[UpdateContentOp, ReplaceBlockOp, InsertAfterOp, DeleteBlockOp],
    Field(discriminator="op"),
]


def target_id(op: UpdateContentOp | ReplaceBlockOp | InsertAfterOp | DeleteBlockOp) -> str:
    """The id an op addresses: ``afterId`` for inserts, ``id`` otherwise."""
    if isinstance(op, InsertAfterOp):
        return op.after_id
    return op.id


class Patch(StrictCamelModel):
    """An ordered list of ops describing one atomic edit."""

    ops: list[PatchOp] = Field(default_factory=list)

    def target_ids(self) -> list[str]:
        return [target_id(op) for op in self.ops]
