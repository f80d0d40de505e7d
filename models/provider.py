"""Provider key verification models."""

from __future__ import annotations

from enum import Enum

from models.base import CamelModel


class ProviderType(str, Enum):
    OPENAI_COMPATIBLE = "openai_compatible"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


class VerifyErrorCode(str, Enum):
    INVALID_REQUEST = "invalid_request"
    INVALID_API_KEY = "invalid_api_key"
    INCOMPATIBLE_ENDPOINT = "incompatible_endpoint"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    UNKNOWN_ERROR = "unknown_error"


class VerifyError(CamelModel):
    code: VerifyErrorCode
    message: str


class ProviderVerifyResult(CamelModel):
    """``ok=True`` carries ``models``; ``ok=False`` carries ``error``."""

    ok: bool
    models: list[str] | None = None
    error: VerifyError | None = None

    @classmethod
    def failure(cls, code: VerifyErrorCode, message: str) -> ProviderVerifyResult:
        return cls(ok=False, error=VerifyError(code=code, message=message))
