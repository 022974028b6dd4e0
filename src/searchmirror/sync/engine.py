"""Sync engine keeping the index and its document mirror coherent.

Every mutation goes through SyncEngine so the mirror (identity -> document)
and the index agree on the set of indexed identities at the boundary of each
public operation. Queries run against the index and are materialized back
into caller documents through the mirror.

Concurrency model: single-threaded and cooperative. All operations run to
completion synchronously except ``add_all_async``, which merges the mirror
immediately and populates the index in chunks on the event loop. While it is
in flight the mirror leads the index: searches may not yet find documents
that are already mirrored.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog

from searchmirror.config.models import IndexConfig, SearchOptions
from searchmirror.core.errors import DocumentNotFoundError
from searchmirror.index.identity import FieldExtractor, Identity, IdentityExtractor
from searchmirror.index.lexical import LexicalIndex
from searchmirror.index.mirror import MirrorStore
from searchmirror.index.models import SearchHit, Suggestion
from searchmirror.index.service import HitFilter, IndexService
from searchmirror.sync.projection import Listener, SearchProjection, SearchSnapshot

logger = structlog.get_logger()

_MISSING = object()


class SyncEngine:
    """
    Owns a full-text index, its document mirror and the query projection.

    Usage::

        engine = SyncEngine(documents, IndexConfig(fields=["title", "text"]))
        engine.subscribe(lambda snapshot: render(snapshot.results))

        engine.search("fox")
        engine.remove_by_id(1)

        await engine.add_all_async(more_documents, chunk_size=100)

    Duplicate identities are rejected by the index. ``add`` calls the index
    before writing the mirror, so a rejected add leaves the mirror untouched.
    Batch adds merge the mirror first; if the index then fails the two are
    left incoherent and the error propagates unchanged. Use ``replace`` to
    update an indexed document.

    Identities are compared by Python equality and hashing, never coerced to
    strings: a document added with ``id=1`` is found by ``remove_by_id(1)``
    but not by ``remove_by_id("1")``. Normalize identities in
    ``extract_field`` when callers mix representations.
    """

    def __init__(
        self,
        documents: Iterable[Any] | None = None,
        config: IndexConfig | None = None,
        *,
        extract_field: FieldExtractor | None = None,
        index: IndexService | None = None,
    ):
        """
        Initialize the engine and index the initial documents.

        Args:
            documents: Documents to index immediately
            config: Index configuration (identity field, indexed fields, defaults)
            extract_field: Field extraction hook shared by identity and indexing
            index: Pre-built index service. Its extractor is used for identity.
        """
        self.config = config or IndexConfig()
        if index is None:
            self._extract_id = IdentityExtractor(self.config.id_field, extract_field)
            self._index: IndexService = LexicalIndex(self.config, self._extract_id)
        else:
            self._extract_id = index.extract_id
            self._index = index
        self._mirror = MirrorStore()
        self._projection = SearchProjection()
        self._indexing_tasks: set[asyncio.Task[None]] = set()

        if documents is not None:
            self.add_all(list(documents))

    # =========================================================================
    # Projection
    # =========================================================================

    @property
    def snapshot(self) -> SearchSnapshot:
        return self._projection.snapshot

    @property
    def results(self) -> list[Any] | None:
        return self._projection.snapshot.results

    @property
    def raw_results(self) -> list[SearchHit] | None:
        return self._projection.snapshot.raw_results

    @property
    def suggestions(self) -> list[Suggestion] | None:
        return self._projection.snapshot.suggestions

    @property
    def is_indexing(self) -> bool:
        return self._projection.snapshot.is_indexing

    @property
    def index(self) -> IndexService:
        """The underlying index, for direct advanced use.

        Mutating it directly bypasses the mirror.
        """
        return self._index

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._projection.subscribe(listener)

    # =========================================================================
    # Queries
    # =========================================================================

    def _resolve_options(self, options: SearchOptions | Mapping[str, Any] | None) -> SearchOptions:
        if options is None:
            return self.config.search
        if isinstance(options, SearchOptions):
            return options
        return SearchOptions.model_validate({**self.config.search.model_dump(), **options})

    def _materialize(self, hit: SearchHit) -> Any:
        document = self._mirror.get(hit.id, _MISSING)
        if document is _MISSING:
            logger.warning("mirror_miss", id=hit.id)
            return None
        return document

    def search(
        self,
        query: str,
        options: SearchOptions | Mapping[str, Any] | None = None,
        *,
        filter: HitFilter | None = None,
    ) -> list[Any]:
        """
        Search the index and publish materialized results.

        Args:
            query: Search text
            options: Overrides for the configured search defaults
            filter: Predicate over raw hits, applied before the limit

        Returns:
            Documents in hit order. A hit whose identity is not mirrored
            yields None in its slot.
        """
        hits = self._index.search(query, self._resolve_options(options), filter)
        results = [self._materialize(hit) for hit in hits]
        self._projection.publish(results=results, raw_results=hits)
        return results

    def auto_suggest(
        self,
        query: str,
        options: SearchOptions | Mapping[str, Any] | None = None,
    ) -> list[Suggestion]:
        suggestions = self._index.auto_suggest(query, self._resolve_options(options))
        self._projection.publish(suggestions=suggestions)
        return suggestions

    def clear_results(self) -> None:
        self._projection.publish(results=None, raw_results=None)

    def clear_suggestions(self) -> None:
        self._projection.publish(suggestions=None)

    def has(self, identity: Identity) -> bool:
        return identity in self._mirror

    def get_document(self, identity: Identity) -> Any:
        """Return the mirrored document for an identity, or None."""
        return self._mirror.get(identity)

    @property
    def document_count(self) -> int:
        return len(self._mirror)

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, document: Any) -> None:
        identity = self._extract_id(document)
        self._index.add(document)
        self._mirror.set(identity, document)
        logger.debug("document_added", id=identity)

    def add_all(self, documents: Iterable[Any]) -> None:
        """Add documents with a single mirror merge and one index batch add."""
        documents = list(documents)
        self._mirror.merge(self._extract_id.gather(documents))
        try:
            self._index.add_all(documents)
        except Exception as e:
            logger.error("batch_add_failed", count=len(documents), error=str(e))
            raise
        logger.info("documents_added", count=len(documents), total=len(self._mirror))

    def add_all_async(
        self,
        documents: Iterable[Any],
        *,
        chunk_size: int | None = None,
    ) -> asyncio.Task[None]:
        """
        Merge documents into the mirror now and index them in the background.

        The mirror merge and the indexing flag happen before this returns.
        The returned task populates the index chunk by chunk, yielding to the
        event loop in between. The flag resets once every pending task is
        done, whether it finished, failed or was cancelled. Index failures
        propagate to whoever awaits the task.

        Must be called with a running event loop.
        """
        loop = asyncio.get_running_loop()
        size = chunk_size if chunk_size is not None else self.config.chunk_size
        if size < 1:
            raise ValueError(f"chunk_size must be positive, got {size}")

        documents = list(documents)
        self._mirror.merge(self._extract_id.gather(documents))
        self._projection.publish(is_indexing=True)
        logger.info("async_indexing_started", count=len(documents), chunk_size=size)

        task = loop.create_task(self._populate(documents, size))
        self._indexing_tasks.add(task)
        task.add_done_callback(self._on_populate_done)
        return task

    async def _populate(self, documents: list[Any], chunk_size: int) -> None:
        try:
            await self._index.add_all_async(documents, chunk_size)
        except Exception as e:
            logger.error("async_indexing_failed", count=len(documents), error=str(e))
            raise
        logger.info("async_indexing_finished", count=len(documents), total=len(self._mirror))

    def _on_populate_done(self, task: asyncio.Task[None]) -> None:
        # Runs for cancelled tasks too, including ones that never started
        self._indexing_tasks.discard(task)
        if task.cancelled():
            logger.warning("async_indexing_cancelled", total=len(self._mirror))
        if not self._indexing_tasks:
            self._projection.publish(is_indexing=False)

    def replace(self, document: Any) -> None:
        """Swap the indexed document that shares this document's identity.

        Raises:
            DocumentNotFoundError: If no document with that identity is mirrored.
        """
        identity = self._extract_id(document)
        if identity not in self._mirror:
            raise DocumentNotFoundError.for_identity(identity)

        self._index.remove(self._mirror.get(identity))
        self._index.add(document)
        self._mirror.set(identity, document)
        logger.debug("document_replaced", id=identity)

    def remove(self, document: Any) -> None:
        identity = self._extract_id(document)
        self._index.remove(document)
        self._mirror.delete_one(identity)
        logger.debug("document_removed", id=identity)

    def remove_by_id(self, identity: Identity) -> None:
        """Remove the mirrored document with this identity.

        Raises:
            DocumentNotFoundError: If the identity is not mirrored. Nothing
                is changed in that case.
        """
        if identity not in self._mirror:
            raise DocumentNotFoundError.for_identity(identity)

        self._index.remove(self._mirror.get(identity))
        self._mirror.delete_one(identity)
        logger.debug("document_removed", id=identity)

    def remove_all(
        self,
        documents: Iterable[Any] | None = None,
        *,
        ignore_if_missing: bool = False,
    ) -> None:
        """
        Remove documents from the index and the mirror.

        Args:
            documents: Documents to remove. None clears everything.
            ignore_if_missing: Skip documents whose identity is not mirrored
                instead of letting the index reject them.
        """
        if documents is None:
            self._index.remove_all()
            self._mirror.clear()
            logger.info("documents_cleared")
            return

        documents = list(documents)
        if ignore_if_missing:
            documents = [doc for doc in documents if self._extract_id(doc) in self._mirror]

        self._index.remove_all(documents)
        self._mirror.delete_many(self._extract_id(doc) for doc in documents)
        logger.info("documents_removed", count=len(documents), total=len(self._mirror))
