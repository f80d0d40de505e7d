"""Generation parameters for the patch generator model call.

Layers, lowest priority first:

    Settings (GENERATION_MODEL, GENERATION_MAX_TOKENS)
      → PATCH_LLM_CONFIG (temperature 0.2, JSON object output)
      → per-request ``x-llm-model`` header
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Dialects that accept the OpenAI ``response_format`` body field.
JSON_MODE_DIALECTS = frozenset({"openai", "dashscope", "zai"})


class LLMConfig(BaseModel):
    """Sampling and output options; ``None`` leaves the provider default."""

    model: str | None = Field(default=None, description="'provider/model' identifier")
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    seed: int | None = None
    response_format: str | None = Field(
        default=None, description="'json_object' asks for a bare JSON object"
    )

    def merge(self, overrides: LLMConfig) -> LLMConfig:
        """New config with every field *overrides* sets taking precedence."""
        merged = self.model_dump(exclude_none=True)
        merged.update(overrides.model_dump(exclude_none=True))
        return LLMConfig(**merged)

    def for_dialect(self, prefix: str) -> LLMConfig:
        """Drop ``response_format`` for providers that would reject it."""
        if prefix in JSON_MODE_DIALECTS or self.response_format is None:
            return self
        return self.model_copy(update={"response_format": None})

    def to_model_settings(self) -> dict:
        """PydanticAI ``model_settings``; JSON mode travels as ``extra_body``."""
        settings = self.model_dump(
            include={"max_tokens", "temperature", "top_p", "seed"}, exclude_none=True
        )
        if self.response_format:
            settings["extra_body"] = {"response_format": {"type": self.response_format}}
        return settings
