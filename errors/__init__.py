"""Custom exception hierarchy for the block patch engine."""

from errors.exceptions import (
    BlockNotFoundError,
    BlockPatchError,
    DocumentNotFoundError,
    DocumentStoreError,
    GenerationServiceError,
    InvalidRequestError,
    OutOfScopeError,
    PatchStructuralError,
    UnsupportedOperationError,
)

__all__ = [
    "BlockNotFoundError",
    "BlockPatchError",
    "DocumentNotFoundError",
    "DocumentStoreError",
    "GenerationServiceError",
    "InvalidRequestError",
    "OutOfScopeError",
    "PatchStructuralError",
    "UnsupportedOperationError",
]
