"""Document model: the recursive block tree.

A :class:`Document` owns an ordered list of blocks.  Blocks are a closed,
``type``-tagged union; the only recursion point is :class:`ColumnsBlock`,
whose columns each hold a full nested block list (which may contain further
columns blocks).

Patch operations address blocks by bare id, so every block and column id
must be unique across the whole document tree, enforced whenever a
Document is constructed or decoded.

Decoding never coerces: unknown fields and string-encoded numbers are
rejected, so a drifted page file or model-written block fails validation.
"""

from __future__ import annotations

from typing import Annotated, Any, Iterator, Literal, Union

from pydantic import AliasChoices, Field, model_validator

from models.base import StrictCamelModel


class TextStyle(StrictCamelModel):
    """Optional presentation hints for heading / paragraph / rich text."""

    font_size: int | None = Field(default=None, ge=8, le=96, strict=True)
    font_weight: Literal["normal", "bold"] | None = None
    text_align: Literal["left", "center", "right", "justify"] | None = None
    color: str | None = None

    def merged_with(self, overrides: TextStyle | None) -> TextStyle:
        """Return a new style: *self* as base, *overrides* wins on set fields."""
        if overrides is None:
            return self.model_copy()
        base = self.model_dump(exclude_none=True)
        base.update(overrides.model_dump(exclude_none=True))
        return TextStyle(**base)


# ── Blocks ───────────────────────────────────────────────────


class HeadingBlock(StrictCamelModel):
    id: str
    type: Literal["heading"] = "heading"
    level: Literal[1, 2, 3]
    text: str
    text_style: TextStyle | None = None


class ParagraphBlock(StrictCamelModel):
    id: str
    type: Literal["paragraph"] = "paragraph"
    text: str
    text_style: TextStyle | None = None


class DividerBlock(StrictCamelModel):
    id: str
    type: Literal["divider"] = "divider"


class ImageBlock(StrictCamelModel):
    id: str
    type: Literal["image"] = "image"
    src: str
    alt: str | None = None
    caption: str | None = None
    width_percent: int | None = Field(default=None, ge=10, le=100, strict=True)


class ChartBlock(StrictCamelModel):
    """Chart whose ``option`` is an opaque charting-library config object."""

    id: str
    type: Literal["chart"] = "chart"
    title: str | None = None
    height: int | None = Field(default=None, gt=0, le=1200, strict=True)
    option: dict[str, Any] = Field(min_length=1)


# ── Rich block items (no ids; not addressable by patches) ────


class RichTextItem(StrictCamelModel):
    type: Literal["text"] = "text"
    text: str
    text_style: TextStyle | None = None


class RichImageItem(StrictCamelModel):
    type: Literal["image"] = "image"
    src: str
    alt: str | None = None
    caption: str | None = None
    width_percent: int | None = Field(default=None, ge=10, le=100, strict=True)


class RichChartItem(StrictCamelModel):
    type: Literal["chart"] = "chart"
    title: str | None = None
    height: int | None = Field(default=None, gt=0, le=1200, strict=True)
    option: dict[str, Any] = Field(min_length=1)


RichItem = Annotated[
    Union[RichTextItem, RichImageItem, RichChartItem],
    Field(discriminator="type"),
]


class RichBlock(StrictCamelModel):
    """Mixed content group: text, images and charts in order."""

    id: str
    type: Literal["rich"] = "rich"
    items: list[RichItem] = Field(default_factory=list)


# ── Columns (recursion point) ────────────────────────────────


class Column(StrictCamelModel):
    id: str
    blocks: list[Block] = Field(
        default_factory=list,
        validation_alias=AliasChoices("blocks", "nodes"),
    )


class ColumnsBlock(StrictCamelModel):
    id: str
    type: Literal["columns"] = "columns"
    gap: int | None = Field(default=None, ge=0, le=80, strict=True)
    columns: list[Column] = Field(default_factory=list)


Block = Annotated[
    Union[
        HeadingBlock,
        ParagraphBlock,
        DividerBlock,
        ImageBlock,
        ChartBlock,
        RichBlock,
        ColumnsBlock,
    ],
    Field(discriminator="type"),
]

# Page served from the built-in seed when nothing is stored under it.
DEMO_DOCUMENT_ID = "demo"

BLOCK_KINDS: frozenset[str] = frozenset({
    "heading", "paragraph", "divider", "image", "chart", "rich", "columns",
})


def iter_tree_ids(blocks: list[Block]) -> Iterator[str]:
    """Yield every block and column id in depth-first document order."""
    for block in blocks:
        yield block.id
        if isinstance(block, ColumnsBlock):
            for column in block.columns:
                yield column.id
                yield from iter_tree_ids(column.blocks)


class Document(StrictCamelModel):
    """A page: id, title and the top-level block sequence."""

    id: str
    title: str
    blocks: list[Block] = Field(
        default_factory=list,
        validation_alias=AliasChoices("blocks", "nodes"),
    )

    @model_validator(mode="after")
    def _ids_unique_across_tree(self) -> Document:
        seen: set[str] = set()
        for block_id in iter_tree_ids(self.blocks):
            if block_id in seen:
                raise ValueError(f"Duplicate block id in document tree: {block_id}")
            seen.add(block_id)
        return self


Column.model_rebuild()
ColumnsBlock.model_rebuild()
Document.model_rebuild()
