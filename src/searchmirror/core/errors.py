"""searchmirror error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Index (3xxx)
    DOCUMENT_NOT_FOUND = 3001
    DUPLICATE_DOCUMENT = 3002
    DOCUMENT_NOT_INDEXED = 3003
    INVALID_QUERY = 3004


@dataclass(frozen=True, slots=True)
class SearchMirrorError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'DOCUMENT_NOT_FOUND')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SearchMirrorError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class DocumentNotFoundError(SearchMirrorError):
    """No mirrored document exists for an identity.

    Raised by the sync engine, which is the only layer holding the payload
    needed to remove a document by identity alone.
    """

    @classmethod
    def for_identity(cls, identity: Any) -> "DocumentNotFoundError":
        return cls(
            code=ErrorCode.DOCUMENT_NOT_FOUND,
            message=f"Document with id {identity!r} does not exist in the index",
            details={"id": identity},
        )


class IndexOperationError(SearchMirrorError):
    """Errors raised by the index service itself.

    The sync engine propagates these unchanged.
    """

    @classmethod
    def duplicate_document(cls, identity: Any) -> "IndexOperationError":
        return cls(
            code=ErrorCode.DUPLICATE_DOCUMENT,
            message=f"Duplicate id {identity!r}: a document with this id is already indexed",
            details={"id": identity},
        )

    @classmethod
    def document_not_indexed(cls, identity: Any) -> "IndexOperationError":
        return cls(
            code=ErrorCode.DOCUMENT_NOT_INDEXED,
            message=f"Cannot remove document with id {identity!r}: it is not in the index",
            details={"id": identity},
        )

    @classmethod
    def invalid_query(cls, query: str, reason: str) -> "IndexOperationError":
        return cls(
            code=ErrorCode.INVALID_QUERY,
            message=f"Invalid query {query!r}: {reason}",
            details={"query": query, "reason": reason},
        )
