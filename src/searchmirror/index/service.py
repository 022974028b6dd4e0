"""Contract the sync engine expects from a full-text index."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from searchmirror.config.models import SearchOptions
    from searchmirror.index.identity import Identity, IdentityExtractor
    from searchmirror.index.models import SearchHit, Suggestion

HitFilter = Callable[["SearchHit"], bool]


@runtime_checkable
class IndexService(Protocol):
    """Identity-keyed full-text index.

    Implementations rank and tokenize however they like. They must key
    documents with the shared ``extract_id`` and raise
    ``IndexOperationError`` for rejected mutations.
    """

    extract_id: IdentityExtractor

    def add(self, document: Any) -> None: ...

    def add_all(self, documents: Sequence[Any]) -> None: ...

    async def add_all_async(self, documents: Sequence[Any], chunk_size: int) -> None: ...

    def remove(self, document: Any) -> None: ...

    def remove_all(self, documents: Sequence[Any] | None = None) -> None: ...

    def search(
        self,
        query: str,
        options: SearchOptions,
        filter: HitFilter | None = None,
    ) -> list[SearchHit]: ...

    def auto_suggest(self, query: str, options: SearchOptions) -> list[Suggestion]: ...

    def has(self, identity: Identity) -> bool: ...

    @property
    def document_count(self) -> int: ...
