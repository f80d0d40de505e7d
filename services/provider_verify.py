"""Provider API-key verification.

Probes a provider's model-listing endpoint(s) with the user's key and
classifies the outcome, so the editor can validate its AI settings before
the first edit request.  Each provider type has its own endpoint list and
auth header:

- ``openai_compatible``: ``{base}/v1/models`` then ``{base}/models``, Bearer auth
- ``anthropic``: ``{base}/v1/models``, ``x-api-key`` + ``anthropic-version``
- ``gemini``: ``{base}/v1beta/models`` then ``{base}/v1/models``,
  ``x-goog-api-key`` (Bearer when the base URL is the ``/openai`` shim)
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlsplit

import httpx

from config.settings import get_settings
from models.provider import (
    ProviderType,
    ProviderVerifyResult,
    VerifyErrorCode,
)

logger = logging.getLogger(__name__)

MIN_TIMEOUT = 8.0
MAX_TIMEOUT = 40.0
ANTHROPIC_VERSION = "2023-06-01"

_INVALID_KEY_MARKERS = (
    "api key not valid",
    "invalid api key",
    "invalid authentication",
    "permission denied",
    "unauthorized",
)


DEFAULT_BASE_URLS: dict[ProviderType, str] = {
    ProviderType.OPENAI_COMPATIBLE: "https://api.openai.com",
    ProviderType.GEMINI: "https://generativelanguage.googleapis.com",
    ProviderType.ANTHROPIC: "https://api.anthropic.com",
}


# ── URL helpers ──────────────────────────────────────────────


def normalize_base_url(raw: str) -> str | None:
    """Strip query/fragment and trailing slashes; ``None`` if not http(s)."""
    raw = raw.strip()
    if not raw:
        return None
    try:
        parts = urlsplit(raw)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    origin = f"{parts.scheme}://{parts.netloc}"
    return f"{origin}{parts.path}".rstrip("/") or origin


def resolve_base_url(base_url: str | None, provider: ProviderType) -> str | None:
    provided = (base_url or "").strip()
    if not provided:
        return DEFAULT_BASE_URLS[provider]
    return normalize_base_url(provided)


def _is_gemini_openai_shim(url: str) -> bool:
    return "/openai" in url.lower()


def build_model_endpoints(base_url: str, provider: ProviderType) -> list[str]:
    """Ordered, de-duplicated model-listing URLs to probe."""
    base = base_url.rstrip("/")
    has_v1 = base.lower().endswith("/v1")
    endpoints: list[str] = []

    if provider == ProviderType.ANTHROPIC:
        endpoints.append(f"{base}/models" if has_v1 else f"{base}/v1/models")
    elif provider == ProviderType.GEMINI and not _is_gemini_openai_shim(base):
        endpoints.extend([f"{base}/v1beta/models", f"{base}/v1/models"])
    else:
        endpoints.append(f"{base}/models" if has_v1 else f"{base}/v1/models")
        endpoints.append(f"{base}/models")

    return list(dict.fromkeys(endpoints))


def build_headers(url: str, api_key: str, provider: ProviderType) -> dict[str, str]:
    if provider == ProviderType.ANTHROPIC:
        return {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Accept": "application/json",
        }
    if provider == ProviderType.GEMINI and not _is_gemini_openai_shim(url):
        return {"x-goog-api-key": api_key, "Accept": "application/json"}
    return {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}


def clamp_timeout(timeout: float | None) -> float:
    """Below the floor (or unset) means the configured default."""
    if timeout is None or timeout < MIN_TIMEOUT:
        return get_settings().provider_verify_timeout
    return min(timeout, MAX_TIMEOUT)


# ── Response interpretation ──────────────────────────────────


def extract_models(payload: Any) -> list[str]:
    """Model ids from ``data[]`` (OpenAI/Anthropic) or ``models[]`` (Gemini)."""
    if not isinstance(payload, dict):
        return []
    data = payload.get("data") if isinstance(payload.get("data"), list) else []
    listed = payload.get("models") if isinstance(payload.get("models"), list) else []
    rows = data or listed

    models: list[str] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        for key in ("id", "name"):
            value = row.get(key)
            if isinstance(value, str) and value.strip():
                models.append(value.strip())
                break
    return list(dict.fromkeys(models))


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message.strip():
                return message.strip()
    return f"Provider returned HTTP {response.status_code}."


def looks_like_invalid_key(status_code: int, message: str) -> bool:
    if status_code in (401, 403):
        return True
    text = message.lower()
    return any(marker in text for marker in _INVALID_KEY_MARKERS)


# ── Entry point ──────────────────────────────────────────────


async def verify_provider_api_key(
    api_key: str,
    *,
    base_url: str | None = None,
    provider: ProviderType = ProviderType.OPENAI_COMPATIBLE,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderVerifyResult:
    """Probe the provider's model listing and classify the outcome.

    Endpoints are tried in order; 404/405 and empty listings move on to
    the next one.  Any other answer (success, bad key, other HTTP error,
    timeout, network failure) ends the probe immediately.
    """
    resolved = resolve_base_url(base_url, provider)
    api_key = (api_key or "").strip()
    if not resolved or not api_key:
        return ProviderVerifyResult.failure(
            VerifyErrorCode.INVALID_REQUEST,
            "apiKey is required; baseUrl must use http/https when provided.",
        )

    timeout = clamp_timeout(timeout)
    saw_incompatible = False

    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport) as client:
        for endpoint in build_model_endpoints(resolved, provider):
            try:
                response = await client.get(
                    endpoint, headers=build_headers(endpoint, api_key, provider)
                )
            except httpx.TimeoutException:
                logger.warning("Provider verify timed out: %s", endpoint)
                return ProviderVerifyResult.failure(
                    VerifyErrorCode.TIMEOUT,
                    f"Provider request timed out after {timeout:.0f}s.",
                )
            except httpx.HTTPError as e:
                logger.warning("Provider verify network error: %s (%s)", endpoint, e)
                return ProviderVerifyResult.failure(
                    VerifyErrorCode.NETWORK_ERROR,
                    str(e) or "Failed to reach provider endpoint.",
                )

            message = "" if response.is_success else _error_message(response)
            if looks_like_invalid_key(response.status_code, message):
                return ProviderVerifyResult.failure(
                    VerifyErrorCode.INVALID_API_KEY,
                    "API key is invalid or unauthorized for this provider.",
                )
            if response.status_code in (404, 405):
                saw_incompatible = True
                continue
            if not response.is_success:
                return ProviderVerifyResult.failure(VerifyErrorCode.UNKNOWN_ERROR, message)

            try:
                models = extract_models(response.json())
            except ValueError:
                models = []
            if not models:
                saw_incompatible = True
                continue

            logger.info("Provider verified at %s (%d models)", endpoint, len(models))
            return ProviderVerifyResult(ok=True, models=models)

    if saw_incompatible:
        return ProviderVerifyResult.failure(
            VerifyErrorCode.INCOMPATIBLE_ENDPOINT,
            "Provider models endpoint is incompatible or baseUrl is incorrect.",
        )
    return ProviderVerifyResult.failure(
        VerifyErrorCode.UNKNOWN_ERROR, "Unable to verify provider API key."
    )
