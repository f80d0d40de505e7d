"""Domain-specific exceptions for the block patch engine.

These exceptions let the edit pipeline and the API layer distinguish the
failure modes of one edit request (bad patch shape, missing target, scope
violation, generator failure, storage failure) and answer with the right
error code and HTTP status. None of them leave stored state modified.
"""

from __future__ import annotations

from models.errors import ErrorCode, GenerationFailureKind


class BlockPatchError(Exception):
    """Base class for every failure of an edit request."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidRequestError(BlockPatchError):
    """The edit request itself is malformed (empty selection, bad page id)."""

    code = ErrorCode.INVALID_REQUEST


class PatchStructuralError(BlockPatchError):
    """A candidate patch failed structural validation.

    ``path`` is the dotted location of the first offending field, e.g.
    ``ops.0.block.level``; an empty path means the candidate as a whole.
    """

    code = ErrorCode.STRUCTURAL_ERROR

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        prefix = f"{path}: " if path else ""
        super().__init__(f"Invalid patch: {prefix}{message}")


class BlockNotFoundError(BlockPatchError):
    """A target or anchor id does not exist anywhere in the document tree."""

    code = ErrorCode.BLOCK_NOT_FOUND

    def __init__(self, block_id: str) -> None:
        self.block_id = block_id
        super().__init__(f"Block id not found: {block_id}")


class UnsupportedOperationError(BlockPatchError):
    """``update_content`` was aimed at a block kind without editable content."""

    code = ErrorCode.UNSUPPORTED_OPERATION

    def __init__(self, block_id: str, kind: str) -> None:
        self.block_id = block_id
        self.kind = kind
        super().__init__(
            f'Block "{block_id}" of type "{kind}" does not support content updates'
        )


class OutOfScopeError(BlockPatchError):
    """The patch targets blocks outside the user's selection."""

    code = ErrorCode.OUT_OF_SCOPE

    def __init__(self, target_ids: list[str]) -> None:
        self.target_ids = target_ids
        joined = ", ".join(target_ids) if target_ids else "(none)"
        super().__init__(f"Patch target out of selected scope: {joined}")


class GenerationServiceError(BlockPatchError):
    """The external generator failed; no mutation was attempted."""

    code = ErrorCode.GENERATION_FAILED

    def __init__(self, kind: GenerationFailureKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)


class DocumentNotFoundError(BlockPatchError):
    """No document (or no decodable document) exists for the id."""

    code = ErrorCode.DOCUMENT_NOT_FOUND

    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        super().__init__(f"Page not found: {document_id}")


class DocumentStoreError(BlockPatchError):
    """Writing the new document to storage failed."""

    code = ErrorCode.STORAGE_ERROR

    def __init__(self, document_id: str, detail: str) -> None:
        self.document_id = document_id
        super().__init__(f"Failed to save page {document_id}: {detail}")
