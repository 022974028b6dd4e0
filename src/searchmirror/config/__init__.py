"""Config module exports."""

from searchmirror.config.loader import load_config
from searchmirror.config.models import (
    IndexConfig,
    LoggingConfig,
    LogOutputConfig,
    SearchMirrorConfig,
    SearchOptions,
)

__all__ = [
    "load_config",
    "IndexConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "SearchMirrorConfig",
    "SearchOptions",
]
