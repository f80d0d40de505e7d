"""Strict structural validation of candidate patches.

The validator only checks shape: types, required fields, enum and range
constraints.  Whether the referenced ids exist is decided later by the
applier against a concrete document.  It deliberately knows nothing about
provider quirks; repair happens upstream in
:mod:`services.patch_normalizer`.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from errors.exceptions import PatchStructuralError
from models.patch import Patch

logger = logging.getLogger(__name__)


def _format_loc(loc: tuple[Any, ...]) -> str:
    """Join a pydantic error location into a dotted path.

    Discriminated-union branch tags (e.g. ``update_content``, ``heading``)
    are dropped so the path reads ``ops.0.block.level`` rather than
    ``ops.0.replace_block.block.heading.level``.
    """
    parts: list[str] = []
    for i, item in enumerate(loc):
        if isinstance(item, int):
            parts.append(str(item))
            continue
        prev = loc[i - 1] if i > 0 else None
        if isinstance(prev, int) or prev in ("block", "blocks", "items"):
            # Tag segment directly after a list index / union field.
            if _is_union_tag(item):
                continue
        parts.append(str(item))
    return ".".join(parts)


_UNION_TAGS = frozenset({
    "update_content", "replace_block", "insert_after", "delete_block",
    "heading", "paragraph", "divider", "image", "chart", "rich", "columns",
    "text",
})


def _is_union_tag(segment: Any) -> bool:
    return isinstance(segment, str) and segment in _UNION_TAGS


def validate_patch(candidate: Any) -> Patch:
    """Validate *candidate* (decoded JSON) into a :class:`Patch`.

    Raises:
        PatchStructuralError: naming the first offending field path.
    """
    if isinstance(candidate, Patch):
        return candidate
    if not isinstance(candidate, dict):
        raise PatchStructuralError("", f"expected an object, got {type(candidate).__name__}")

    try:
        return Patch.model_validate(candidate)
    except ValidationError as e:
        first = e.errors()[0]
        path = _format_loc(tuple(first.get("loc", ())))
        logger.debug("Patch validation failed (%d errors): %s", e.error_count(), e)
        raise PatchStructuralError(path, first.get("msg", "invalid value")) from e
