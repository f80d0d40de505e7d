"""Depth-first lookups over the block tree.

Blocks hold no parent back-references; every lookup walks down from a block
sequence and reports the *owning sequence* plus the index inside it, so
callers can splice without knowing how deep the block sits.
"""

from __future__ import annotations

from dataclasses import dataclass

from models.blocks import Block, Column, ColumnsBlock


@dataclass
class BlockLocation:
    """Where a block lives: the list that owns it and its index there."""

    owner: list[Block]
    index: int

    @property
    def block(self) -> Block:
        return self.owner[self.index]


def find_location(blocks: list[Block], block_id: str) -> BlockLocation | None:
    """Locate *block_id* anywhere under *blocks*, descending into columns.

    Returns ``None`` when no block carries the id.  Column ids are not
    block ids and are never returned as locations.
    """
    for index, block in enumerate(blocks):
        if block.id == block_id:
            return BlockLocation(owner=blocks, index=index)
        if isinstance(block, ColumnsBlock):
            for column in block.columns:
                found = find_location(column.blocks, block_id)
                if found is not None:
                    return found
    return None


def find_block(blocks: list[Block], block_id: str) -> Block | None:
    location = find_location(blocks, block_id)
    return location.block if location else None


def find_node(blocks: list[Block], node_id: str) -> Block | Column | None:
    """Find a block *or* a column by id."""
    for block in blocks:
        if block.id == node_id:
            return block
        if isinstance(block, ColumnsBlock):
            for column in block.columns:
                if column.id == node_id:
                    return column
                found = find_node(column.blocks, node_id)
                if found is not None:
                    return found
    return None


def subtree_ids(node: Block | Column) -> set[str]:
    """The node's own id plus the ids of all of its descendants."""
    ids = {node.id}
    if isinstance(node, Column):
        for child in node.blocks:
            ids |= subtree_ids(child)
    elif isinstance(node, ColumnsBlock):
        for column in node.columns:
            ids |= subtree_ids(column)
    return ids


def count_blocks(blocks: list[Block]) -> int:
    """Total number of blocks in the tree (columns themselves not counted)."""
    total = 0
    for block in blocks:
        total += 1
        if isinstance(block, ColumnsBlock):
            for column in block.columns:
                total += count_blocks(column.blocks)
    return total
