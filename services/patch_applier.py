"""Apply a validated Patch to a Document.

``apply_patch`` is pure: it deep-copies the document's block tree, runs
every op against the copy, and builds a new :class:`Document` from the
result.  Any failure (missing id, unsupported update, duplicate id in the
result) aborts the whole patch; the caller's document is never touched.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from errors.exceptions import (
    BlockNotFoundError,
    PatchStructuralError,
    UnsupportedOperationError,
)
from models.blocks import (
    Block,
    Document,
    HeadingBlock,
    ImageBlock,
    ParagraphBlock,
    RichBlock,
    RichTextItem,
    TextStyle,
)
from models.patch import (
    DeleteBlockOp,
    InsertAfterOp,
    Patch,
    ReplaceBlockOp,
    UpdateContentOp,
)
from services.block_tree import BlockLocation, find_location

logger = logging.getLogger(__name__)


def _merge_style(current: TextStyle | None, incoming: TextStyle | None) -> TextStyle | None:
    if incoming is None:
        return current
    if current is None:
        return incoming.model_copy()
    return current.merged_with(incoming)


def _update_block_content(block: Block, content: str, style: TextStyle | None) -> Block:
    """Return a copy of *block* with its editable content replaced.

    heading / paragraph → ``text``; image → ``caption``; rich → first text
    item (appended when the group has none).
    """
    if isinstance(block, (HeadingBlock, ParagraphBlock)):
        return block.model_copy(
            update={"text": content, "text_style": _merge_style(block.text_style, style)}
        )

    if isinstance(block, ImageBlock):
        return block.model_copy(update={"caption": content})

    if isinstance(block, RichBlock):
        items = list(block.items)
        for i, item in enumerate(items):
            if isinstance(item, RichTextItem):
                items[i] = item.model_copy(
                    update={"text": content, "text_style": _merge_style(item.text_style, style)}
                )
                break
        else:
            items.append(RichTextItem(text=content, text_style=style))
        return block.model_copy(update={"items": items})

    raise UnsupportedOperationError(block.id, block.type)


def _locate(blocks: list[Block], block_id: str) -> BlockLocation:
    location = find_location(blocks, block_id)
    if location is None:
        raise BlockNotFoundError(block_id)
    return location


def apply_patch(document: Document, patch: Patch) -> Document:
    """Apply *patch* to a clone of *document* and return the new Document.

    Raises:
        BlockNotFoundError: an ``id`` / ``afterId`` is not in the tree.
        UnsupportedOperationError: ``update_content`` on a divider, chart
            or columns block.
        PatchStructuralError: the result would break id uniqueness.
    """
    blocks = [block.model_copy(deep=True) for block in document.blocks]

    for op in patch.ops:
        if isinstance(op, UpdateContentOp):
            loc = _locate(blocks, op.id)
            loc.owner[loc.index] = _update_block_content(loc.block, op.content, op.text_style)
            continue

        if isinstance(op, ReplaceBlockOp):
            loc = _locate(blocks, op.id)
            loc.owner[loc.index] = op.block.model_copy(deep=True)
            continue

        if isinstance(op, InsertAfterOp):
            loc = _locate(blocks, op.after_id)
            loc.owner.insert(loc.index + 1, op.block.model_copy(deep=True))
            continue

        if isinstance(op, DeleteBlockOp):
            loc = _locate(blocks, op.id)
            del loc.owner[loc.index]
            continue

    try:
        result = Document(id=document.id, title=document.title, blocks=blocks)
    except ValidationError as e:
        first = e.errors()[0]
        raise PatchStructuralError("ops", first.get("msg", "invalid result")) from e

    logger.debug("Applied %d op(s) to document %s", len(patch.ops), document.id)
    return result
