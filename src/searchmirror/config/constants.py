"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
For configurable values, see models.py (IndexConfig, SearchOptions).
"""

# =============================================================================
# Identity
# =============================================================================

DEFAULT_ID_FIELD = "id"
"""Field read for document identity when none is configured."""

FIELD_PATH_SEPARATOR = "."
"""Separator for nested field paths (e.g. ``meta.id``)."""

# =============================================================================
# Indexing
# =============================================================================

DEFAULT_CHUNK_SIZE = 10
"""Documents per chunk for asynchronous bulk adds."""

WRITER_HEAP_MIN = 15_000_000
"""Tantivy refuses writer heaps smaller than this (bytes)."""

# =============================================================================
# Search
# =============================================================================

SEARCH_MAX_LIMIT = 1000
"""Maximum hits returned by a single search."""

FUZZY_MAX_DISTANCE = 2
"""Maximum Levenshtein distance supported by the fuzzy term query."""
