from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from docrev.utils.error_codes import ErrorCode, ERROR_MESSAGES


def _normalize_error_code(value: ErrorCode | str | None) -> ErrorCode:
    if value is None:
        return ErrorCode.E010
    if isinstance(value, ErrorCode):
        return value
    try:
        return ErrorCode(str(value))
    except ValueError:
        return ErrorCode.E010


class DocRevException(Exception):
    """Base exception for docrev.

    Callers branch on the concrete subclass (or on `code`), never on the message.
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | str = ErrorCode.E010,
        details: Optional[dict[str, Any]] = None,
    ):
        normalized = _normalize_error_code(code)
        if message is None:
            message = ERROR_MESSAGES.get(normalized, ERROR_MESSAGES[ErrorCode.E010])

        self.message = message
        self.code = normalized.value
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


class ConcurrencyConflictException(DocRevException):
    """The proposed revision did not exceed the stored one: another writer won.

    Recoverable by re-reading the document and retrying.
    """

    def __init__(self, document_id: UUID, *, details: Optional[dict[str, Any]] = None):
        self.document_id = document_id
        merged = {"document_id": str(document_id), **(details or {})}
        super().__init__(
            f"The record with Id {document_id} has already been updated by another user.",
            code=ErrorCode.E001,
            details=merged,
        )


class NotFoundException(DocRevException):
    def __init__(self, message: str | None = None, *, document_id: UUID | None = None, details: Optional[dict[str, Any]] = None):
        self.document_id = document_id
        merged = dict(details or {})
        if document_id is not None:
            merged.setdefault("document_id", str(document_id))
            message = message or f"Document {document_id} not found"
        super().__init__(message, code=ErrorCode.E002, details=merged)


class AlreadyExistsException(DocRevException):
    def __init__(self, message: str | None = None, *, document_id: UUID | None = None, details: Optional[dict[str, Any]] = None):
        self.document_id = document_id
        merged = dict(details or {})
        if document_id is not None:
            merged.setdefault("document_id", str(document_id))
            message = message or f"Document {document_id} already exists"
        super().__init__(message, code=ErrorCode.E003, details=merged)


class InvalidRevisionException(DocRevException):
    def __init__(self, message: str | None = None, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code=ErrorCode.E004, details=details)


class BackendUnavailableException(DocRevException):
    """Transport-level failure talking to the storage backend.

    Unlike a conflict, the outcome of an in-flight write is unknown.
    The original driver error is available as `__cause__`.
    """

    def __init__(self, message: str | None = None, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code=ErrorCode.E005, details=details)
