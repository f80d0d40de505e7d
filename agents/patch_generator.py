"""PatchGenerator: turns (document, selection, instruction) into raw patch JSON.

Two implementations share the :class:`PatchGenerator` protocol:

- :class:`LLMPatchGenerator` calls a chat model through PydanticAI with a
  hard timeout and classifies every provider failure into a
  :class:`GenerationServiceError` kind.
- :class:`MockPatchGenerator` is the deterministic offline generator used
  when ``use_mock_ai`` is on.

Both return *raw* decoded JSON.  Nothing here validates or repairs the
patch; that is the pipeline's job (normalizer → validator → scope).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError

from agents.provider import create_model, split_model_name
from config.llm_config import LLMConfig
from config.prompts.patch_generator import (
    PATCH_GENERATOR_SYSTEM_PROMPT,
    build_patch_user_prompt,
)
from config.settings import get_settings
from errors.exceptions import GenerationServiceError
from models.blocks import (
    Block,
    Document,
    HeadingBlock,
    ImageBlock,
    ParagraphBlock,
    RichBlock,
    RichTextItem,
)
from models.errors import GenerationFailureKind
from services.block_tree import find_block, find_node
from services.concurrency import llm_slot
from services.patch_normalizer import extract_json_payload

logger = logging.getLogger(__name__)

# Structured output, low temperature
PATCH_LLM_CONFIG = LLMConfig(
    temperature=0.2,
    response_format="json_object",
)


class PatchGenerator(Protocol):
    """External generation service contract."""

    async def generate(
        self,
        document: Document,
        selected_ids: list[str],
        instruction: str,
    ) -> Any:
        """Return raw decoded JSON or raise :class:`GenerationServiceError`."""
        ...


@dataclass
class ProviderOverrides:
    """Per-request provider settings sent by the editor client headers."""

    api_key: str = ""
    base_url: str = ""
    model: str = ""


def block_text(block: Block) -> str:
    """Current editable text of a block ('' for kinds without one)."""
    if isinstance(block, (HeadingBlock, ParagraphBlock)):
        return block.text
    if isinstance(block, ImageBlock):
        return block.caption or ""
    if isinstance(block, RichBlock):
        for item in block.items:
            if isinstance(item, RichTextItem):
                return item.text
    return ""


def _classify_provider_error(exc: Exception) -> GenerationServiceError:
    """Map a provider/client exception onto a failure kind."""
    if isinstance(exc, ModelHTTPError):
        if exc.status_code in (401, 403):
            return GenerationServiceError(
                GenerationFailureKind.INVALID_CREDENTIALS,
                "API key is invalid or unauthorized for this provider.",
            )
        if exc.status_code in (408, 504):
            return GenerationServiceError(GenerationFailureKind.TIMEOUT, "LLM request timed out")
        return GenerationServiceError(
            GenerationFailureKind.PROVIDER_ERROR,
            f"LLM request failed ({exc.status_code})",
        )
    if isinstance(exc, httpx.TimeoutException):
        return GenerationServiceError(GenerationFailureKind.TIMEOUT, "LLM request timed out")
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return GenerationServiceError(GenerationFailureKind.NETWORK, f"Failed to reach LLM provider: {exc}")

    # SDK-specific classes (openai.APIConnectionError, anthropic.APITimeoutError, ...)
    name = type(exc).__name__.lower()
    if "timeout" in name:
        return GenerationServiceError(GenerationFailureKind.TIMEOUT, "LLM request timed out")
    if "connection" in name:
        return GenerationServiceError(GenerationFailureKind.NETWORK, f"Failed to reach LLM provider: {exc}")
    if "authentication" in name or "permissiondenied" in name:
        return GenerationServiceError(
            GenerationFailureKind.INVALID_CREDENTIALS,
            "API key is invalid or unauthorized for this provider.",
        )
    return GenerationServiceError(GenerationFailureKind.PROVIDER_ERROR, f"LLM request failed: {exc}")


class LLMPatchGenerator:
    """Generate patches with a chat model through PydanticAI."""

    def __init__(
        self,
        overrides: ProviderOverrides | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self._overrides = overrides or ProviderOverrides()
        base = settings.get_generation_llm_config()
        self._config = base.merge(PATCH_LLM_CONFIG)
        if self._overrides.model:
            self._config = self._config.merge(LLMConfig(model=self._overrides.model))
        self._timeout = timeout if timeout is not None else settings.generation_timeout
        self._api_key = self._overrides.api_key or settings.api_key_for(self.model)

    @property
    def model(self) -> str:
        return self._config.model or get_settings().default_model

    def _model_settings(self) -> dict:
        prefix, _ = split_model_name(self.model)
        return self._config.for_dialect(prefix).to_model_settings()

    async def generate(
        self,
        document: Document,
        selected_ids: list[str],
        instruction: str,
    ) -> Any:
        if not self._api_key:
            raise GenerationServiceError(
                GenerationFailureKind.INVALID_CREDENTIALS,
                "Missing API key. Please set AI Settings first.",
            )

        selected_blocks = [
            node.to_wire()
            for node_id in selected_ids
            if (node := find_node(document.blocks, node_id)) is not None
        ]
        user_prompt = build_patch_user_prompt(
            selected_block_ids=selected_ids,
            selected_blocks=selected_blocks,
            instruction=instruction,
        )

        try:
            agent = Agent(
                model=create_model(
                    self.model,
                    api_key=self._api_key,
                    base_url=self._overrides.base_url or None,
                ),
                output_type=str,
                system_prompt=PATCH_GENERATOR_SYSTEM_PROMPT,
                retries=1,
                defer_model_check=True,
            )
        except Exception as e:
            logger.warning("Model construction failed for %s: %s", self.model, e)
            raise GenerationServiceError(
                GenerationFailureKind.INVALID_CREDENTIALS,
                f"Provider configuration rejected: {e}",
            ) from e

        logger.info(
            "PatchGenerator: model=%s document=%s selected=%d instruction=%.60s",
            self.model,
            document.id,
            len(selected_ids),
            instruction,
        )

        try:
            async with llm_slot():
                result = await asyncio.wait_for(
                    agent.run(user_prompt, model_settings=self._model_settings()),
                    timeout=self._timeout,
                )
        except asyncio.TimeoutError as e:
            logger.warning("PatchGenerator timed out after %.0fs", self._timeout)
            raise GenerationServiceError(
                GenerationFailureKind.TIMEOUT,
                f"LLM request timed out after {self._timeout:.0f}s",
            ) from e
        except GenerationServiceError:
            raise
        except Exception as e:
            logger.exception("PatchGenerator provider call failed")
            raise _classify_provider_error(e) from e

        raw_output = str(result.output or "")
        if not raw_output.strip():
            raise GenerationServiceError(
                GenerationFailureKind.MALFORMED_OUTPUT, "LLM returned empty content"
            )
        try:
            return extract_json_payload(raw_output)
        except ValueError as e:
            logger.warning("PatchGenerator output is not JSON: %.200s", raw_output)
            raise GenerationServiceError(
                GenerationFailureKind.MALFORMED_OUTPUT, "LLM output is not valid JSON"
            ) from e


class MockPatchGenerator:
    """Deterministic offline generator keyed on instruction keywords.

    - "bold" / "加粗" → prefix the first selected block's text with ``[BOLD]``
    - "replace heading" / "替换标题" → replace it with a level-2 heading
    - anything else → append ``(AI edited)`` to its text
    """

    async def generate(
        self,
        document: Document,
        selected_ids: list[str],
        instruction: str,
    ) -> Any:
        target_id = selected_ids[0]
        target = find_block(document.blocks, target_id)
        current = block_text(target) if target is not None else ""
        lowered = instruction.lower()

        if "加粗" in instruction or "bold" in lowered:
            return {
                "ops": [
                    {"op": "update_content", "id": target_id, "content": f"[BOLD] {current}".strip()}
                ]
            }

        if "替换标题" in instruction or "replace heading" in lowered:
            return {
                "ops": [
                    {
                        "op": "replace_block",
                        "id": target_id,
                        "block": {
                            "id": target_id,
                            "type": "heading",
                            "level": 2,
                            "text": "AI Replaced Heading",
                        },
                    }
                ]
            }

        content = f"{current}\n(AI edited)" if current else "(AI edited)"
        return {"ops": [{"op": "update_content", "id": target_id, "content": content}]}


def get_patch_generator(overrides: ProviderOverrides | None = None) -> PatchGenerator:
    """Mock generator when ``use_mock_ai`` is set, otherwise the LLM generator."""
    if get_settings().use_mock_ai:
        return MockPatchGenerator()
    return LLMPatchGenerator(overrides)
