"""Provider output normalizer: best-effort repair before strict validation.

Generation providers do not reliably follow the patch schema.  Depending
on vendor and mood they rename fields (``blockId``, ``target.id``), spell
operations differently (``Update``, ``replaceBlock``, ``insert-after``),
or flatten a new block's fields into the op instead of nesting them under
``block``.  This module reshapes such output into the canonical patch
shape by relocating and renaming values that are already present.

Rules:

1. Never invent ids or content.  The only synthesized value is the id of a
   reconstructed chart block, which has no natural source.
2. Unknown operation names pass through unchanged so validation fails
   loudly instead of the op being dropped.
3. When a replace/insert block cannot be reconstructed the op is
   downgraded to ``update_content`` on the best-recovered id with a fixed
   explanatory message, so the user always sees that something happened.

The output is still a plain dict and must go through
:func:`services.patch_validator.validate_patch` and the scope check.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from typing import Any

from models.blocks import BLOCK_KINDS
from models.patch import PatchOpType

logger = logging.getLogger(__name__)

DOWNGRADE_MESSAGE = (
    "The AI response could not be turned into a valid block change. "
    "No structural edit was applied; please rephrase the instruction."
)

# ── Operation names ──────────────────────────────────────────

_OP_SYNONYMS: dict[str, str] = {
    "update": PatchOpType.UPDATE_CONTENT.value,
    "edit": PatchOpType.UPDATE_CONTENT.value,
    "update_text": PatchOpType.UPDATE_CONTENT.value,
    "replace": PatchOpType.REPLACE_BLOCK.value,
    "insert": PatchOpType.INSERT_AFTER.value,
    "append_after": PatchOpType.INSERT_AFTER.value,
    "delete": PatchOpType.DELETE_BLOCK.value,
    "remove": PatchOpType.DELETE_BLOCK.value,
}

_OP_NAME_KEYS = ("op", "operation", "action")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS = re.compile(r"[\s\-.]+")


def normalize_op_name(value: Any) -> Any:
    """Canonicalize an operation name; unknown tokens come back snake_cased.

    ``"Update"`` → ``update_content``, ``"replaceBlock"`` → ``replace_block``,
    ``"insert-after"`` → ``insert_after``.  Non-strings are returned as-is.
    """
    if not isinstance(value, str):
        return value
    token = _CAMEL_BOUNDARY.sub("_", value.strip())
    token = _SEPARATORS.sub("_", token).lower()
    token = re.sub(r"_+", "_", token).strip("_")
    return _OP_SYNONYMS.get(token, token)


# ── Generic field probing ────────────────────────────────────


def _get_path(raw: dict[str, Any], path: tuple[str, ...]) -> Any:
    current: Any = raw
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def _first_string(raw: dict[str, Any], paths: tuple[tuple[str, ...], ...]) -> str | None:
    """First non-empty string found along *paths*, stripped."""
    for path in paths:
        value = _get_path(raw, path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _first_present(raw: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


_TARGET_ID_PATHS: tuple[tuple[str, ...], ...] = (
    ("id",),
    ("blockId",),
    ("block_id",),
    ("BlockId",),
    ("ID",),
    ("targetId",),
    ("target_id",),
    ("target", "id"),
    ("target", "blockId"),
    ("target", "block_id"),
    ("target",),
    ("block", "id"),
)

_AFTER_ID_PATHS: tuple[tuple[str, ...], ...] = (
    ("afterId",),
    ("after_id",),
    ("AfterId",),
    ("afterBlockId",),
    ("after_block_id",),
    ("after",),
    ("anchorId",),
    ("anchor_id",),
    ("targetId",),
    ("target_id",),
    ("target", "afterId"),
    ("target", "after_id"),
    ("target", "id"),
    ("target", "blockId"),
    ("target",),
)

# Only consulted for inserts whose new block is nested, so a bare ``id``
# cannot be the new block's own id.
_AFTER_ID_FALLBACK_PATHS: tuple[tuple[str, ...], ...] = (
    ("id",),
    ("blockId",),
    ("block_id",),
)

_CONTENT_PATHS: tuple[tuple[str, ...], ...] = (
    ("content",),
    ("text",),
    ("value",),
    ("newContent",),
    ("new_content",),
    ("newText",),
    ("new_text",),
    ("caption",),
    ("block", "content"),
    ("block", "text"),
)


def _first_text(raw: dict[str, Any], paths: tuple[tuple[str, ...], ...]) -> str | None:
    """Like :func:`_first_string` but keeps the text verbatim (empty allowed)."""
    for path in paths:
        value = _get_path(raw, path)
        if isinstance(value, str):
            return value
    return None


# ── Text style ───────────────────────────────────────────────

_STYLE_KEYS: dict[str, str] = {
    "fontsize": "fontSize",
    "size": "fontSize",
    "fontweight": "fontWeight",
    "weight": "fontWeight",
    "textalign": "textAlign",
    "align": "textAlign",
    "alignment": "textAlign",
    "color": "color",
    "colour": "color",
}

_ALIGNMENTS = {"left", "center", "right", "justify"}
_ALIGN_SYNONYMS = {"centre": "center", "middle": "center", "justified": "justify"}


def _coerce_font_size(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        size = int(value)
    elif isinstance(value, str):
        match = re.match(r"^\s*(\d+(?:\.\d+)?)\s*(px|pt)?\s*$", value, re.IGNORECASE)
        if not match:
            return None
        size = int(float(match.group(1)))
    else:
        return None
    return size if 8 <= size <= 96 else None


def _coerce_font_weight(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        token = value.strip().lower()
        if token in ("bold", "bolder", "semibold", "heavy", "black"):
            return "bold"
        if token in ("normal", "regular", "lighter", "light"):
            return "normal"
        if not token.isdigit():
            return None
        value = int(token)
    if isinstance(value, (int, float)):
        return "bold" if value >= 600 else "normal"
    return None


def _coerce_align(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    token = value.strip().lower()
    token = _ALIGN_SYNONYMS.get(token, token)
    return token if token in _ALIGNMENTS else None


def normalize_text_style(raw: Any) -> dict[str, Any] | None:
    """Map a loose style object onto the canonical TextStyle shape.

    Unknown keys and out-of-range values are dropped; returns ``None``
    when nothing usable remains.
    """
    if not isinstance(raw, dict):
        return None

    style: dict[str, Any] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        canonical = _STYLE_KEYS.get(re.sub(r"[\s_\-]", "", key).lower())
        if canonical is None or canonical in style:
            continue
        if canonical == "fontSize":
            coerced = _coerce_font_size(value)
        elif canonical == "fontWeight":
            coerced = _coerce_font_weight(value)
        elif canonical == "textAlign":
            coerced = _coerce_align(value)
        else:
            coerced = value.strip() if isinstance(value, str) and value.strip() else None
        if coerced is not None:
            style[canonical] = coerced
    return style or None


def _recover_style(raw: dict[str, Any]) -> dict[str, Any] | None:
    for key in ("textStyle", "text_style", "style"):
        if key in raw:
            style = normalize_text_style(raw[key])
            if style:
                return style
    return None


# ── Block reconstruction ─────────────────────────────────────

_NESTED_BLOCK_KEYS = ("block", "newBlock", "new_block", "node", "newNode")
_KIND_KEYS = ("blockType", "block_type", "kind", "nodeType", "node_type", "type")

_KIND_SYNONYMS: dict[str, str] = {
    "title": "heading",
    "header": "heading",
    "text": "paragraph",
    "p": "paragraph",
    "para": "paragraph",
    "hr": "divider",
    "separator": "divider",
    "rule": "divider",
    "img": "image",
    "picture": "image",
    "photo": "image",
    "graph": "chart",
    "plot": "chart",
}

_HEADING_TOKEN = re.compile(r"^h([1-3])$")


def _normalize_kind(value: Any) -> tuple[str | None, int | None]:
    """Return ``(kind, heading_level_hint)`` for a raw block-kind token."""
    if not isinstance(value, str):
        return None, None
    token = normalize_op_name(value)
    if not isinstance(token, str):
        return None, None
    match = _HEADING_TOKEN.match(token)
    if match:
        return "heading", int(match.group(1))
    token = _KIND_SYNONYMS.get(token, token)
    return (token, None) if token in BLOCK_KINDS else (None, None)


def _infer_kind(fields: dict[str, Any]) -> tuple[str | None, int | None]:
    for key in _KIND_KEYS:
        kind, level = _normalize_kind(fields.get(key))
        if kind:
            return kind, level
    # Shape-based fallback when no kind token is present.
    if "level" in fields:
        return "heading", None
    if any(k in fields for k in ("src", "url", "imageUrl", "image_url")):
        return "image", None
    if any(k in fields for k in ("option", "options", "chartOption")):
        return "chart", None
    return None, None


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


# kind → (required, optional) wire fields besides ``id`` and ``type``
_BLOCK_FIELDS: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    "heading": (frozenset({"level", "text"}), frozenset({"textStyle"})),
    "paragraph": (frozenset({"text"}), frozenset({"textStyle"})),
    "divider": (frozenset(), frozenset()),
    "image": (frozenset({"src"}), frozenset({"alt", "caption", "widthPercent"})),
    "chart": (frozenset({"option"}), frozenset({"title", "height"})),
}


def _is_canonical_block(value: Any) -> bool:
    """True when a nested block can be handed to the validator untouched.

    ``rich`` and ``columns`` only need a kind and an id; they are never
    reassembled.  Other kinds must carry exactly their own wire fields.
    """
    if not (
        isinstance(value, dict)
        and value.get("type") in BLOCK_KINDS
        and isinstance(value.get("id"), str)
        and value["id"].strip()
    ):
        return False
    if value["type"] not in _BLOCK_FIELDS:
        return True
    required, optional = _BLOCK_FIELDS[value["type"]]
    keys = set(value) - {"id", "type"}
    if not required <= keys <= required | optional:
        return False
    style = value.get("textStyle")
    if style is not None and (
        normalize_text_style(style) != style or isinstance(style.get("fontSize"), float)
    ):
        return False
    return True


def _assemble_block(fields: dict[str, Any], block_id: str | None) -> dict[str, Any] | None:
    """Build a canonical block dict from flattened *fields*, or ``None``."""
    kind, level_hint = _infer_kind(fields)
    if kind is None:
        return None

    if kind == "chart":
        option = _first_present(fields, ("option", "options", "chartOption", "chart_option", "config"))
        if not isinstance(option, dict) or not option:
            return None
        block: dict[str, Any] = {
            "id": block_id or f"chart-{uuid.uuid4().hex[:8]}",
            "type": "chart",
            "option": option,
        }
        title = _first_present(fields, ("title", "chartTitle"))
        if isinstance(title, str):
            block["title"] = title
        height = _coerce_int(fields.get("height"))
        if height is not None and 0 < height <= 1200:
            block["height"] = height
        return block

    if not block_id:
        return None

    if kind == "divider":
        return {"id": block_id, "type": "divider"}

    if kind in ("heading", "paragraph"):
        text = _first_text(fields, (("text",), ("content",), ("value",)))
        if text is None:
            return None
        block = {"id": block_id, "type": kind, "text": text}
        if kind == "heading":
            level = _coerce_int(_first_present(fields, ("level", "headingLevel", "heading_level")))
            if level is None:
                level = level_hint
            if level not in (1, 2, 3):
                return None
            block["level"] = level
        style = _recover_style(fields)
        if style:
            block["textStyle"] = style
        return block

    if kind == "image":
        src = _first_string(fields, (("src",), ("url",), ("imageUrl",), ("image_url",)))
        if not src:
            return None
        block = {"id": block_id, "type": "image", "src": src}
        for key in ("alt", "caption"):
            if isinstance(fields.get(key), str):
                block[key] = fields[key]
        width = _coerce_int(_first_present(fields, ("widthPercent", "width_percent", "width")))
        if width is not None and 10 <= width <= 100:
            block["widthPercent"] = width
        return block

    # rich / columns are only accepted as well-formed nested objects.
    return None


def _nested_block(raw: dict[str, Any]) -> dict[str, Any] | None:
    for key in _NESTED_BLOCK_KEYS:
        if isinstance(raw.get(key), dict):
            return raw[key]
    return None


def _recover_block(raw: dict[str, Any], op_name: str, target: str | None) -> dict[str, Any] | None:
    """Recover the new block for a replace/insert op."""
    nested = _nested_block(raw)
    if _is_canonical_block(nested):
        return nested

    # Nested fields win over flattened op-level fields.
    fields = {k: v for k, v in raw.items() if k not in _NESTED_BLOCK_KEYS}
    if _op_name_from_type(raw):
        fields.pop("type", None)
    if nested:
        fields.update(nested)

    if op_name == PatchOpType.REPLACE_BLOCK.value:
        block_id = _first_string(nested or {}, (("id",), ("blockId",))) or target
    else:
        block_id = _first_string(
            nested or {}, (("id",), ("blockId",))
        ) or _first_string(raw, (("id",), ("blockId",), ("block_id",), ("newId",), ("new_id",)))
        if block_id == target:
            block_id = None
    return _assemble_block(fields, block_id)


# ── Per-op normalization ─────────────────────────────────────


def _op_name_from_type(raw: dict[str, Any]) -> bool:
    """True when ``type`` carries the op name (no op/operation/action key)."""
    if any(key in raw for key in _OP_NAME_KEYS):
        return False
    value = raw.get("type")
    if not isinstance(value, str):
        return False
    kind, _ = _normalize_kind(value)
    return kind is None


def _raw_op_name(raw: dict[str, Any]) -> Any:
    for key in _OP_NAME_KEYS:
        if key in raw:
            return raw[key]
    if _op_name_from_type(raw):
        return raw["type"]
    return None


def _downgrade(target: str | None, reason: str) -> dict[str, Any]:
    logger.warning("Downgrading provider op to update_content (target=%s): %s", target, reason)
    op: dict[str, Any] = {"op": PatchOpType.UPDATE_CONTENT.value, "content": DOWNGRADE_MESSAGE}
    if target:
        op["id"] = target
    return op


def normalize_op(raw: Any) -> Any:
    """Normalize one raw op dict; non-dicts are returned unchanged."""
    if not isinstance(raw, dict):
        return raw

    name = normalize_op_name(_raw_op_name(raw))

    if name == PatchOpType.UPDATE_CONTENT.value:
        op: dict[str, Any] = {"op": name}
        target = _first_string(raw, _TARGET_ID_PATHS)
        if target:
            op["id"] = target
        content = _first_text(raw, _CONTENT_PATHS)
        if content is not None:
            op["content"] = content
        style = _recover_style(raw)
        if style:
            op["textStyle"] = style
        return op

    if name == PatchOpType.DELETE_BLOCK.value:
        op = {"op": name}
        target = _first_string(raw, _TARGET_ID_PATHS)
        if target:
            op["id"] = target
        return op

    if name == PatchOpType.REPLACE_BLOCK.value:
        target = _first_string(raw, _TARGET_ID_PATHS)
        block = _recover_block(raw, name, target)
        if block is None:
            return _downgrade(target, "replace_block without a reconstructable block")
        op = {"op": name, "block": block}
        if target:
            op["id"] = target
        return op

    if name == PatchOpType.INSERT_AFTER.value:
        paths = _AFTER_ID_PATHS
        if _nested_block(raw) is not None:
            paths = paths + _AFTER_ID_FALLBACK_PATHS
        target = _first_string(raw, paths)
        block = _recover_block(raw, name, target)
        if block is None:
            return _downgrade(target, "insert_after without a reconstructable block")
        op = {"op": name, "block": block}
        if target:
            op["afterId"] = target
        return op

    # Unknown op: canonical name but otherwise untouched, so it fails validation.
    passthrough = dict(raw)
    if name is not None:
        passthrough["op"] = name
        for key in _OP_NAME_KEYS:
            if key != "op":
                passthrough.pop(key, None)
    return passthrough


# ── Envelope ─────────────────────────────────────────────────

_OPS_LIST_KEYS = ("ops", "operations", "changes", "edits", "patches")


def _extract_ops(raw: Any) -> list[Any] | None:
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, dict):
        return None
    for key in _OPS_LIST_KEYS:
        if isinstance(raw.get(key), list):
            return raw[key]
    inner = raw.get("patch")
    if isinstance(inner, (dict, list)):
        return _extract_ops(inner)
    if _raw_op_name(raw) is not None:
        return [raw]
    return None


def normalize_patch_candidate(raw: Any) -> Any:
    """Reshape raw decoded provider output into ``{"ops": [...]}``.

    Strings are decoded first (see :func:`extract_json_payload`).  Input
    whose envelope cannot be recognized is returned unchanged so the
    validator reports it.
    """
    if isinstance(raw, str):
        try:
            raw = extract_json_payload(raw)
        except ValueError:
            logger.warning("Patch candidate text is not JSON: %.120s", raw)
            return raw

    ops = _extract_ops(raw)
    if ops is None:
        return raw
    return {"ops": [normalize_op(op) for op in ops]}


# ── Raw text decoding ────────────────────────────────────────


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # opening fence, possibly ```json
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def extract_json_payload(text: str) -> Any:
    """Decode provider text into JSON, tolerating fences and prose around it.

    Raises:
        ValueError: no JSON object or array could be decoded.
    """
    body = _strip_code_fences(text)
    if not body:
        raise ValueError("empty provider output")
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    for index, char in enumerate(body):
        if char not in "{[":
            continue
        try:
            value, _ = decoder.raw_decode(body, index)
        except json.JSONDecodeError:
            continue
        return value
    raise ValueError("provider output is not valid JSON")
