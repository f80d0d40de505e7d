"""Base models with camelCase wire format.

Documents and patches travel as camelCase JSON (``afterId``,
``widthPercent``, ``textStyle``) while Python code uses snake_case
attributes.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every wire model: camelCase aliases, snake_case names accepted."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """Dump as the camelCase JSON-ready dict persisted and returned by the API."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class StrictCamelModel(CamelModel):
    """CamelModel that rejects unknown fields (document tree, patch ops)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )
