"""Index module - identity-keyed full-text index and its mirror.

This module provides:
- IdentityExtractor: pluggable document -> identity strategy
- MirrorStore: identity -> document side table
- IndexService: the contract the sync engine drives
- LexicalIndex: Tantivy-backed IndexService implementation
"""

from searchmirror.index.identity import (
    FieldExtractor,
    Identity,
    IdentityExtractor,
    default_extract_field,
)
from searchmirror.index.lexical import LexicalIndex, tokenize
from searchmirror.index.mirror import MirrorStore
from searchmirror.index.models import SearchHit, Suggestion
from searchmirror.index.service import HitFilter, IndexService

__all__ = [
    # Identity
    "FieldExtractor",
    "Identity",
    "IdentityExtractor",
    "default_extract_field",
    # Mirror
    "MirrorStore",
    # Index
    "HitFilter",
    "IndexService",
    "LexicalIndex",
    "tokenize",
    # Results
    "SearchHit",
    "Suggestion",
]
