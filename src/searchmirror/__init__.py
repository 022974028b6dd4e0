"""searchmirror - a full-text index bound to observable search state.

The SyncEngine keeps an identity -> document mirror coherent with a Tantivy
index, turns raw hits back into caller documents and publishes results,
suggestions and indexing state to subscribers.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from searchmirror.config import SearchMirrorConfig, load_config
from searchmirror.core.errors import DocumentNotFoundError, IndexOperationError
from searchmirror.core.logging import configure_logging
from searchmirror.index.identity import FieldExtractor
from searchmirror.sync import SearchSnapshot, SyncEngine

__version__ = "0.1.0"


def create_search(
    documents: Iterable[Any] | None = None,
    *,
    config: SearchMirrorConfig | None = None,
    config_path: Path | None = None,
    extract_field: FieldExtractor | None = None,
) -> SyncEngine:
    """Build a SyncEngine from resolved configuration and index documents.

    Without an explicit config, one is loaded from ``config_path`` (if given)
    and SEARCHMIRROR__* environment variables. Logging is configured from the
    resolved ``logging`` section before any document is indexed.
    """
    if config is None:
        config = load_config(config_path)
    configure_logging(config=config.logging)
    return SyncEngine(documents, config.index, extract_field=extract_field)


__all__ = [
    "DocumentNotFoundError",
    "IndexOperationError",
    "SearchSnapshot",
    "SyncEngine",
    "create_search",
    "__version__",
]
