"""Scope enforcement: keep generated edits inside the user's selection.

Patches address blocks by bare id, so the selection is expanded to the set
of every selected node plus all of its descendants (through columns) and
each op's target must fall inside that set.  Runs before any mutation; an
out-of-scope patch is rejected as a whole.
"""

from __future__ import annotations

import logging
from typing import Iterable

from errors.exceptions import OutOfScopeError
from models.blocks import Document
from models.patch import Patch
from services.block_tree import find_node, subtree_ids

logger = logging.getLogger(__name__)


def allowed_ids(document: Document, selected_ids: Iterable[str]) -> set[str]:
    """Selected ids that exist in *document*, plus all their descendants.

    Unknown selected ids contribute nothing.
    """
    allowed: set[str] = set()
    for node_id in selected_ids:
        node = find_node(document.blocks, node_id)
        if node is not None:
            allowed |= subtree_ids(node)
    return allowed


def out_of_scope_targets(
    patch: Patch, document: Document, selected_ids: Iterable[str]
) -> list[str]:
    """Targets of *patch* that escape the selection, in op order."""
    allowed = allowed_ids(document, selected_ids)
    return [tid for tid in patch.target_ids() if tid not in allowed]


def is_patch_in_scope(patch: Patch, document: Document, selected_ids: Iterable[str]) -> bool:
    """True iff every op target is a selected node or a descendant of one.

    An empty allowed set (no selected id found) makes every patch
    out of scope, including the empty patch.
    """
    allowed = allowed_ids(document, selected_ids)
    if not allowed:
        return False
    return all(tid in allowed for tid in patch.target_ids())


def ensure_in_scope(patch: Patch, document: Document, selected_ids: Iterable[str]) -> None:
    """Raise :class:`OutOfScopeError` unless *patch* stays inside the selection."""
    selected = list(selected_ids)
    if is_patch_in_scope(patch, document, selected):
        return
    escaping = out_of_scope_targets(patch, document, selected)
    logger.warning(
        "Rejected out-of-scope patch on %s: targets=%s selected=%s",
        document.id,
        escaping,
        selected,
    )
    raise OutOfScopeError(escaping)
