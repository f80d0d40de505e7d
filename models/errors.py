"""Structured error codes for the block patch API.

Every failure the edit pipeline can report maps onto one of these codes so
the HTTP layer and clients can branch on a stable token instead of parsing
messages. Error payloads follow the format::

    {ERROR_CODE}: {human_readable_detail}
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Canonical error codes returned in ``{"ok": false, "code": ...}``."""

    INVALID_REQUEST = "INVALID_REQUEST"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    STRUCTURAL_ERROR = "STRUCTURAL_ERROR"
    BLOCK_NOT_FOUND = "BLOCK_NOT_FOUND"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    OUT_OF_SCOPE = "OUT_OF_SCOPE"
    GENERATION_FAILED = "GENERATION_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class GenerationFailureKind(str, Enum):
    """Why the external patch generator did not produce usable output."""

    INVALID_CREDENTIALS = "invalid_credentials"
    TIMEOUT = "timeout"
    NETWORK = "network"
    MALFORMED_OUTPUT = "malformed_output"
    PROVIDER_ERROR = "provider_error"


def format_error(code: ErrorCode, detail: str) -> str:
    """Format an error for logs and response bodies.

    Returns:
        ``{ERROR_CODE}: {detail}``
    """
    return f"{code.value}: {detail}"
