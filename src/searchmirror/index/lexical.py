"""In-memory full-text index via Tantivy.

This module provides the identity-keyed index the sync engine drives. It
supports:
- Single, batch and chunked asynchronous document adds
- Removal by document and full clears
- Term, prefix and fuzzy search with OR/AND term combination
- Auto-suggestions grouped by matched terms
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import structlog
import tantivy
from rapidfuzz.distance import OSA

from searchmirror.config.models import IndexConfig, SearchOptions
from searchmirror.core.errors import IndexOperationError
from searchmirror.index.identity import Identity, IdentityExtractor
from searchmirror.index.models import SearchHit, Suggestion

if TYPE_CHECKING:
    from searchmirror.index.service import HitFilter

logger = structlog.get_logger()

# Mirrors Tantivy's default tokenizer: split on non-alphanumerics, lowercase,
# drop tokens longer than 40 characters.
_TOKEN_RE = re.compile(r"[^\W_]+")
_MAX_TOKEN_LEN = 40

_KEY_FIELD = "key"


def tokenize(text: str) -> list[str]:
    return [t for t in _TOKEN_RE.findall(text.lower()) if len(t) <= _MAX_TOKEN_LEN]


def _term_matches(query_term: str, doc_term: str, options: SearchOptions) -> bool:
    if doc_term == query_term:
        return True
    if options.prefix and doc_term.startswith(query_term):
        return True
    if options.fuzzy:
        candidate = doc_term[: len(query_term)] if options.prefix else doc_term
        return OSA.distance(query_term, candidate, score_cutoff=options.fuzzy) <= options.fuzzy
    return False


class LexicalIndex:
    """
    Identity-keyed full-text index backed by an in-RAM Tantivy index.

    Documents are keyed by the identity the shared extractor returns. Each
    document gets an internal key stored in Tantivy so hits can be mapped back
    to the original identity value (ints stay ints).

    Usage::

        index = LexicalIndex(IndexConfig(fields=["title", "text"]))

        index.add({"id": 1, "title": "Fox", "text": "red fox"})
        hits = index.search("fox", SearchOptions())

        await index.add_all_async(documents, chunk_size=100)
    """

    def __init__(
        self,
        config: IndexConfig | None = None,
        extract_id: IdentityExtractor | None = None,
    ):
        self.config = config or IndexConfig()
        self.extract_id = extract_id or IdentityExtractor(self.config.id_field)
        # Tantivy field names are positional so arbitrary document field
        # names (dots, leading underscores) never reach the schema.
        self._field_names = {name: f"f{i}" for i, name in enumerate(self.config.fields)}
        self._index: Any = None
        self._writer: Any = None
        self._schema: Any = None
        self._initialized = False
        self._key_by_id: dict[Identity, str] = {}
        self._id_by_key: dict[str, Identity] = {}
        self._stored: dict[str, dict[str, Any]] = {}
        self._next_key = 0

    def _ensure_initialized(self) -> None:
        """Lazily initialize the Tantivy index and its single writer."""
        if self._initialized:
            return

        schema_builder = tantivy.SchemaBuilder()
        # Raw tokenizer for exact key matching (used for deletion)
        schema_builder.add_text_field(_KEY_FIELD, stored=True, tokenizer_name="raw")
        for name in self._field_names.values():
            schema_builder.add_text_field(name, stored=True, tokenizer_name="default")
        self._schema = schema_builder.build()

        self._index = tantivy.Index(self._schema)
        # One long-lived writer: chunked async adds interleave with other
        # mutations and Tantivy allows a single writer per index.
        self._writer = self._index.writer(heap_size=self.config.writer_heap_size, num_threads=1)
        self._initialized = True

    def _field_text(self, document: Any, field_name: str) -> str:
        value = self.extract_id.extract_field(document, field_name)
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return " ".join(str(v) for v in value)
        return str(value)

    def _assign_key(self, identity: Identity, document: Any) -> str:
        key = str(self._next_key)
        self._next_key += 1
        self._key_by_id[identity] = key
        self._id_by_key[key] = identity
        if self.config.store_fields:
            self._stored[key] = {
                name: self.extract_id.extract_field(document, name)
                for name in self.config.store_fields
            }
        return key

    def _release_key(self, identity: Identity) -> str:
        key = self._key_by_id.pop(identity)
        del self._id_by_key[key]
        self._stored.pop(key, None)
        return key

    def _write(self, key: str, document: Any) -> None:
        doc = tantivy.Document()
        doc.add_text(_KEY_FIELD, key)
        for field_name, name in self._field_names.items():
            text = self._field_text(document, field_name)
            if text:
                doc.add_text(name, text)
        self._writer.add_document(doc)

    def _commit(self) -> None:
        self._writer.commit()
        self._index.reload()

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, document: Any) -> None:
        """Add a single document.

        Raises:
            IndexOperationError: If a document with the same identity is indexed.
        """
        self._ensure_initialized()

        identity = self.extract_id(document)
        if identity in self._key_by_id:
            raise IndexOperationError.duplicate_document(identity)

        self._write(self._assign_key(identity, document), document)
        self._commit()

    def add_all(self, documents: Sequence[Any]) -> None:
        """Add a batch of documents in a single commit.

        The whole batch is checked for duplicate identities (against the index
        and within itself) before anything is written.
        """
        self._ensure_initialized()

        identities = [self.extract_id(doc) for doc in documents]
        seen: set[Identity] = set()
        for identity in identities:
            if identity in self._key_by_id or identity in seen:
                raise IndexOperationError.duplicate_document(identity)
            seen.add(identity)

        for identity, document in zip(identities, documents):
            self._write(self._assign_key(identity, document), document)
        self._commit()
        logger.debug("index_batch_added", count=len(documents), total=self.document_count)

    async def add_all_async(self, documents: Sequence[Any], chunk_size: int) -> None:
        """Add documents in chunks, yielding to the event loop before each chunk."""
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        for start in range(0, len(documents), chunk_size):
            await asyncio.sleep(0)
            self.add_all(documents[start : start + chunk_size])

    def remove(self, document: Any) -> None:
        """Remove a document.

        Raises:
            IndexOperationError: If the document's identity is not indexed.
        """
        self._ensure_initialized()

        identity = self.extract_id(document)
        if identity not in self._key_by_id:
            raise IndexOperationError.document_not_indexed(identity)

        self._writer.delete_documents(_KEY_FIELD, self._release_key(identity))
        self._commit()

    def remove_all(self, documents: Sequence[Any] | None = None) -> None:
        """Remove the given documents, or every document when None.

        Every identity is checked before anything is deleted.
        """
        self._ensure_initialized()

        if documents is None:
            self._writer.delete_all_documents()
            self._key_by_id.clear()
            self._id_by_key.clear()
            self._stored.clear()
            self._commit()
            return

        identities = [self.extract_id(doc) for doc in documents]
        for identity in identities:
            if identity not in self._key_by_id:
                raise IndexOperationError.document_not_indexed(identity)

        for identity in dict.fromkeys(identities):
            self._writer.delete_documents(_KEY_FIELD, self._release_key(identity))
        self._commit()

    # =========================================================================
    # Queries
    # =========================================================================

    def _term_query(self, field: str, term: str, options: SearchOptions) -> Any:
        if options.prefix or options.fuzzy:
            return tantivy.Query.fuzzy_term_query(
                self._schema,
                field,
                term,
                distance=options.fuzzy,
                transposition_cost_one=True,
                prefix=options.prefix,
            )
        return tantivy.Query.term_query(self._schema, field, term)

    def _build_query(self, terms: list[str], fields: list[str], options: SearchOptions) -> Any:
        """One sub-query per term, each matching the term in any field."""
        term_occur = tantivy.Occur.Must if options.combine_with == "AND" else tantivy.Occur.Should
        term_queries = []
        for term in terms:
            per_field = [
                (tantivy.Occur.Should, self._term_query(self._field_names[f], term, options))
                for f in fields
            ]
            term_queries.append((term_occur, tantivy.Query.boolean_query(per_field)))
        return tantivy.Query.boolean_query(term_queries)

    def _match_metadata(
        self,
        doc: Any,
        terms: list[str],
        fields: list[str],
        options: SearchOptions,
    ) -> dict[str, list[str]]:
        """Map each matched document term to the fields it was found in."""
        match: dict[str, list[str]] = {}
        for field_name in fields:
            doc_terms = dict.fromkeys(tokenize(doc.get_first(self._field_names[field_name]) or ""))
            for query_term in terms:
                for doc_term in doc_terms:
                    if _term_matches(query_term, doc_term, options):
                        hit_fields = match.setdefault(doc_term, [])
                        if field_name not in hit_fields:
                            hit_fields.append(field_name)
        return match

    def search(
        self,
        query: str,
        options: SearchOptions | None = None,
        filter: HitFilter | None = None,
    ) -> list[SearchHit]:
        """
        Search the index.

        Args:
            query: Free text. Tokenized the same way documents are.
            options: Fields, prefix/fuzzy matching, term combination and limit.
            filter: Optional predicate applied to hits before the limit.

        Returns:
            Hits ordered by descending score.

        Raises:
            IndexOperationError: If options name a field that is not indexed.
        """
        options = options or self.config.search
        return self._collect(query, options, filter, options.limit)

    def _collect(
        self,
        query: str,
        options: SearchOptions,
        filter: HitFilter | None,
        limit: int | None,
    ) -> list[SearchHit]:
        """Run a query and build hits. A limit of None keeps every hit."""
        self._ensure_initialized()
        start = time.monotonic()

        fields = options.fields or list(self.config.fields)
        unknown = [f for f in fields if f not in self._field_names]
        if unknown:
            raise IndexOperationError.invalid_query(query, f"fields not indexed: {unknown}")

        terms = list(dict.fromkeys(tokenize(query)))
        if not terms:
            return []

        searcher = self._index.searcher()
        # A filter may reject hits, so fetch everything and cut afterwards
        fetch_all = limit is None or filter is not None
        doc_limit = max(searcher.num_docs, 1) if fetch_all else limit
        top_docs = searcher.search(self._build_query(terms, fields, options), doc_limit).hits

        hits: list[SearchHit] = []
        for score, doc_addr in top_docs:
            doc = searcher.doc(doc_addr)
            key = doc.get_first(_KEY_FIELD)
            if key not in self._id_by_key:
                continue
            match = self._match_metadata(doc, terms, fields, options)
            hit = SearchHit(
                id=self._id_by_key[key],
                score=score,
                terms=list(match),
                match=match,
                stored=dict(self._stored.get(key, {})),
            )
            if filter is not None and not filter(hit):
                continue
            hits.append(hit)
            if limit is not None and len(hits) >= limit:
                break

        logger.debug(
            "index_searched",
            query=query,
            hits=len(hits),
            query_time_ms=int((time.monotonic() - start) * 1000),
        )
        return hits

    def auto_suggest(self, query: str, options: SearchOptions | None = None) -> list[Suggestion]:
        """Suggest completions for a partial query.

        Prefix matching is always on. Every matching document is grouped by its
        matched terms into one suggestion whose score is the sum of theirs.
        The limit applies to suggestions, not hits.
        """
        options = (options or self.config.search).model_copy(update={"prefix": True})

        grouped: dict[str, Suggestion] = {}
        for hit in self._collect(query, options, None, None):
            phrase = " ".join(hit.terms)
            suggestion = grouped.get(phrase)
            if suggestion is not None:
                suggestion.score += hit.score
                suggestion.count += 1
            else:
                grouped[phrase] = Suggestion(suggestion=phrase, terms=list(hit.terms), score=hit.score)

        ranked = sorted(grouped.values(), key=lambda s: s.score, reverse=True)
        return ranked[: options.limit]

    # =========================================================================
    # Introspection
    # =========================================================================

    def has(self, identity: Identity) -> bool:
        return identity in self._key_by_id

    @property
    def document_count(self) -> int:
        return len(self._key_by_id)

    def identities(self) -> set[Identity]:
        return set(self._key_by_id)
