"""Agent provider: builds PydanticAI model instances for patch generation.

Parses ``"provider/model"`` names and wires the right PydanticAI provider,
honouring per-request API key / base URL overrides sent by the editor
client (``x-llm-api-key`` / ``x-llm-base-url``).
"""

from __future__ import annotations

import logging

from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.alibaba import AlibabaProvider
from pydantic_ai.providers.openai import OpenAIProvider

from config.settings import get_settings

logger = logging.getLogger(__name__)

# Provider prefix → default OpenAI-compatible base_url
_PROVIDER_BASE_URLS: dict[str, str] = {
    "dashscope": "https://dashscope.aliyuncs.com/compatible-mode/v1",
    "zai": "https://open.bigmodel.cn/api/paas/v4/",
}


def split_model_name(name: str) -> tuple[str, str]:
    """``"anthropic/claude-x"`` → ``("anthropic", "claude-x")``; bare names are OpenAI."""
    if "/" in name:
        prefix, model_id = name.split("/", 1)
        return prefix, model_id
    return "openai", name


def _openai_base_url(base_url: str) -> str:
    """Editor clients send the bare host (``https://api.openai.com``); append ``/v1``."""
    trimmed = base_url.strip().rstrip("/")
    if trimmed.endswith("/v1") or "/v1/" in trimmed or "/compatible-mode/" in trimmed:
        return trimmed
    return f"{trimmed}/v1"


def create_model(
    model_name: str | None = None,
    *,
    api_key: str | None = None,
    base_url: str | None = None,
):
    """Resolve a ``"provider/model"`` name to a PydanticAI model for the patch agent.

    - ``anthropic/*`` → native :class:`AnthropicModel`
    - ``gemini/*`` → native :class:`GoogleModel`
    - ``dashscope/*`` → :class:`OpenAIChatModel` via :class:`AlibabaProvider`
    - ``zai/*``, ``openai/*`` or bare name → :class:`OpenAIChatModel`

    Args:
        model_name: ``"provider/model"`` name, e.g. ``"zai/glm-4.7"``.
                    Defaults to ``settings.default_model``.
        api_key: Overrides the key configured for the provider.
        base_url: Overrides the provider endpoint.

    Returns:
        A model to hand to ``Agent(model=...)``.
    """
    settings = get_settings()
    name = model_name or settings.default_model
    prefix, model_id = split_model_name(name)
    key = api_key or settings.api_key_for(name)
    url = base_url or settings.llm_base_url

    if prefix == "anthropic":
        from pydantic_ai.models.anthropic import AnthropicModel
        from pydantic_ai.providers.anthropic import AnthropicProvider

        kwargs: dict = {"api_key": key}
        if url:
            kwargs["base_url"] = url.rstrip("/")
        return AnthropicModel(model_id, provider=AnthropicProvider(**kwargs))

    if prefix == "gemini":
        from pydantic_ai.models.google import GoogleModel
        from pydantic_ai.providers.google import GoogleProvider

        return GoogleModel(model_id, provider=GoogleProvider(api_key=key))

    # AlibabaProvider applies the Qwen model profile (schema transformer).
    if prefix == "dashscope":
        provider = AlibabaProvider(
            api_key=key,
            base_url=_openai_base_url(url) if url else _PROVIDER_BASE_URLS[prefix],
        )
        return OpenAIChatModel(model_id, provider=provider)

    if url:
        provider = OpenAIProvider(api_key=key, base_url=_openai_base_url(url))
    elif prefix in _PROVIDER_BASE_URLS:
        provider = OpenAIProvider(api_key=key, base_url=_PROVIDER_BASE_URLS[prefix])
    else:
        provider = OpenAIProvider(api_key=key)
    logger.debug("Created OpenAI-compatible model %s (prefix=%s)", model_id, prefix)
    return OpenAIChatModel(model_id, provider=provider)
