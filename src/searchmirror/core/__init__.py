"""Core module exports."""

from searchmirror.core.errors import (
    ConfigError,
    DocumentNotFoundError,
    ErrorCode,
    IndexOperationError,
    SearchMirrorError,
)
from searchmirror.core.logging import configure_logging, get_logger

__all__ = [
    # Errors
    "ConfigError",
    "DocumentNotFoundError",
    "ErrorCode",
    "IndexOperationError",
    "SearchMirrorError",
    # Logging
    "configure_logging",
    "get_logger",
]
