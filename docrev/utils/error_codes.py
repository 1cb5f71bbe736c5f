from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable docrev error codes."""

    E001 = "E001"  # Concurrency: Document updated by another writer
    E002 = "E002"  # Lookup: Document not found
    E003 = "E003"  # Insert: Document already exists
    E004 = "E004"  # Validation: Invalid revision
    E005 = "E005"  # Backend: Storage backend unavailable
    E010 = "E010"  # Internal: Internal error


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.E001: "Concurrency conflict",
    ErrorCode.E002: "Document not found",
    ErrorCode.E003: "Document already exists",
    ErrorCode.E004: "Invalid revision",
    ErrorCode.E005: "Storage backend unavailable",
    ErrorCode.E010: "Internal error",
}
