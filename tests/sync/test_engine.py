"""Tests for the sync engine (engine.py).

Covers:
- Mirror/index coherence across mutations
- Materialization of hits into caller documents
- NotFound and ignore_if_missing contracts
- Error propagation from the index without rollback
- Projection state published by queries
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, call

import pytest
from pydantic import ValidationError

from searchmirror.config.models import IndexConfig, SearchOptions
from searchmirror.core.errors import DocumentNotFoundError, ErrorCode, IndexOperationError
from searchmirror.index.identity import IdentityExtractor
from searchmirror.index.models import SearchHit, Suggestion
from searchmirror.sync.engine import SyncEngine


def assert_coherent(engine: SyncEngine) -> None:
    """Mirror and index agree on the set of identities."""
    assert engine._mirror.identities() == engine.index.identities()


@pytest.fixture
def mock_index() -> MagicMock:
    index = MagicMock()
    index.extract_id = IdentityExtractor()
    return index


class TestConstruction:
    """Tests for engine construction."""

    def test_initial_documents_indexed(self, animal_docs: list[dict[str, Any]]) -> None:
        engine = SyncEngine(animal_docs)

        assert engine.document_count == 2
        assert_coherent(engine)

    def test_starts_with_empty_projection(self, engine: SyncEngine) -> None:
        assert engine.results is None
        assert engine.raw_results is None
        assert engine.suggestions is None
        assert engine.is_indexing is False

    def test_extract_field_hook_resolved_once(self) -> None:
        class Note:
            def __init__(self, key: str, text: str) -> None:
                self.key = key
                self.text = text

        note = Note("n1", "shopping list")
        engine = SyncEngine(
            [note],
            IndexConfig(id_field="key"),
            extract_field=lambda doc, name: getattr(doc, name, None),
        )

        assert engine.search("shopping") == [note]
        assert engine.get_document("n1") is note

    def test_custom_index_extractor_used(self, mock_index: MagicMock) -> None:
        mock_index.extract_id = IdentityExtractor("slug")
        engine = SyncEngine(index=mock_index)

        engine.add({"slug": "intro", "text": "hi"})

        assert engine.has("intro")
        assert engine.index is mock_index


class TestScenario:
    """End-to-end scenario over the real index."""

    def test_red_fox_blue_dog(self, animal_docs: list[dict[str, Any]]) -> None:
        # Given
        engine = SyncEngine()
        for doc in animal_docs:
            engine.add(doc)

        # When
        results = engine.search("fox")

        # Then
        assert results == [{"id": 1, "text": "red fox"}]
        assert results[0] is animal_docs[0]
        assert [hit.id for hit in engine.raw_results or []] == [1]

        # When
        engine.remove_by_id(1)

        # Then
        assert engine.search("fox") == []
        assert_coherent(engine)


class TestAdd:
    """Tests for add / add_all / replace."""

    def test_round_trip_materialization(self, engine: SyncEngine) -> None:
        doc = {"id": "a", "text": "quick brown fox"}

        engine.add(doc)

        results = engine.search("brown")
        assert results == [doc]
        assert results[0] is doc
        assert_coherent(engine)

    def test_duplicate_add_leaves_mirror_untouched(self, engine: SyncEngine) -> None:
        original = {"id": 1, "text": "original"}
        engine.add(original)

        with pytest.raises(IndexOperationError) as exc_info:
            engine.add({"id": 1, "text": "impostor"})

        assert exc_info.value.code == ErrorCode.DUPLICATE_DOCUMENT
        assert engine.get_document(1) is original
        assert engine.search("original") == [original]
        assert_coherent(engine)

    def test_add_calls_index_before_mirror(self, mock_index: MagicMock) -> None:
        mock_index.add.side_effect = IndexOperationError.duplicate_document(1)
        engine = SyncEngine(index=mock_index)

        with pytest.raises(IndexOperationError):
            engine.add({"id": 1})

        assert engine.document_count == 0

    def test_add_all(self, engine: SyncEngine, book_docs: list[dict[str, Any]]) -> None:
        engine.add_all(book_docs)

        assert engine.document_count == 4
        assert_coherent(engine)

    def test_add_all_merges_mirror_once_then_calls_index(self, mock_index: MagicMock) -> None:
        engine = SyncEngine(index=mock_index)
        docs = [{"id": 1}, {"id": 2}]

        engine.add_all(docs)

        mock_index.add_all.assert_called_once_with(docs)
        assert engine.has(1) and engine.has(2)

    def test_add_all_failure_propagates_without_rollback(self, mock_index: MagicMock) -> None:
        error = IndexOperationError.duplicate_document(2)
        mock_index.add_all.side_effect = error
        engine = SyncEngine(index=mock_index)

        with pytest.raises(IndexOperationError) as exc_info:
            engine.add_all([{"id": 1}, {"id": 2}])

        assert exc_info.value is error
        assert engine.has(1) and engine.has(2)

    def test_replace_swaps_document(self, engine: SyncEngine) -> None:
        engine.add({"id": 1, "text": "old words"})
        updated = {"id": 1, "text": "new words"}

        engine.replace(updated)

        assert engine.search("new") == [updated]
        assert engine.search("old") == []
        assert_coherent(engine)

    def test_replace_unknown_raises_not_found(self, engine: SyncEngine) -> None:
        with pytest.raises(DocumentNotFoundError):
            engine.replace({"id": 404, "text": "nothing"})

        assert engine.document_count == 0


class TestRemove:
    """Tests for remove / remove_by_id / remove_all."""

    def test_remove(self, book_engine: SyncEngine, book_docs: list[dict[str, Any]]) -> None:
        book_engine.remove(book_docs[0])

        assert not book_engine.has("b1")
        assert book_engine.search("moby") == []
        assert_coherent(book_engine)

    def test_remove_passes_full_document_to_index(self, mock_index: MagicMock) -> None:
        engine = SyncEngine(index=mock_index)
        doc = {"id": 1, "text": "payload"}
        engine.add(doc)

        engine.remove_by_id(1)

        mock_index.remove.assert_called_once_with(doc)
        assert not engine.has(1)

    def test_remove_unknown_propagates_index_error(self, engine: SyncEngine) -> None:
        with pytest.raises(IndexOperationError) as exc_info:
            engine.remove({"id": "ghost"})

        assert exc_info.value.code == ErrorCode.DOCUMENT_NOT_INDEXED

    def test_remove_by_id_not_found(self, book_engine: SyncEngine) -> None:
        # Given
        before = book_engine._mirror.identities()

        # When / Then
        with pytest.raises(DocumentNotFoundError) as exc_info:
            book_engine.remove_by_id("never-added")

        assert exc_info.value.code == ErrorCode.DOCUMENT_NOT_FOUND
        assert book_engine._mirror.identities() == before
        assert book_engine.index.identities() == before

    def test_remove_by_id_not_found_never_reaches_index(self, mock_index: MagicMock) -> None:
        engine = SyncEngine(index=mock_index)

        with pytest.raises(DocumentNotFoundError):
            engine.remove_by_id(1)

        mock_index.remove.assert_not_called()

    def test_remove_by_id_matches_by_equality_not_string_form(self, engine: SyncEngine) -> None:
        # Given
        engine.add({"id": 1, "text": "integer identity"})

        # When / Then - the string form is a different identity
        with pytest.raises(DocumentNotFoundError):
            engine.remove_by_id("1")
        assert engine.has(1)

        engine.remove_by_id(1)
        assert engine.document_count == 0
        assert_coherent(engine)

    def test_remove_by_falsy_identity(self, engine: SyncEngine) -> None:
        engine.add({"id": 0, "text": "zero"})

        engine.remove_by_id(0)

        assert engine.document_count == 0
        assert_coherent(engine)

    def test_remove_all_without_documents_clears(self, book_engine: SyncEngine) -> None:
        book_engine.remove_all()

        assert book_engine.search("zen") == []
        assert book_engine.document_count == 0
        assert_coherent(book_engine)

    def test_remove_all_is_idempotent(self, book_engine: SyncEngine) -> None:
        book_engine.remove_all()
        book_engine.remove_all()

        assert book_engine.search("the") == []
        assert book_engine.document_count == 0

    def test_remove_all_documents(
        self, book_engine: SyncEngine, book_docs: list[dict[str, Any]]
    ) -> None:
        book_engine.remove_all(book_docs[1:3])

        assert book_engine._mirror.identities() == {"b1", "b4"}
        assert_coherent(book_engine)

    def test_remove_all_ignore_if_missing(self, engine: SyncEngine) -> None:
        # Given
        doc_a = {"id": "a", "text": "alpha"}
        doc_b = {"id": "b", "text": "beta"}
        engine.add(doc_a)

        # When
        engine.remove_all([doc_a, doc_b], ignore_if_missing=True)

        # Then
        assert engine.document_count == 0
        assert_coherent(engine)

    def test_remove_all_missing_without_flag_raises(self, engine: SyncEngine) -> None:
        doc_a = {"id": "a", "text": "alpha"}
        engine.add(doc_a)

        with pytest.raises(IndexOperationError):
            engine.remove_all([doc_a, {"id": "b"}])

        assert engine.has("a")
        assert_coherent(engine)

    def test_remove_all_filter_keeps_falsy_identities(self, mock_index: MagicMock) -> None:
        engine = SyncEngine(index=mock_index)
        zero = {"id": 0}
        engine.add(zero)

        engine.remove_all([zero, {"id": 5}], ignore_if_missing=True)

        mock_index.remove_all.assert_called_once_with([zero])


class TestQueries:
    """Tests for search / auto_suggest / projection clearing."""

    def test_search_publishes_results(self, book_engine: SyncEngine) -> None:
        results = book_engine.search("archery")

        assert book_engine.results is results
        assert [doc["id"] for doc in results] == ["b4"]
        assert isinstance((book_engine.raw_results or [None])[0], SearchHit)

    def test_search_preserves_hit_order(self, mock_index: MagicMock) -> None:
        engine = SyncEngine(index=mock_index)
        engine.add_all([{"id": 1}, {"id": 2}, {"id": 3}])
        mock_index.search.return_value = [
            SearchHit(id=3, score=3.0),
            SearchHit(id=1, score=2.0),
            SearchHit(id=2, score=1.0),
        ]

        results = engine.search("anything")

        assert [doc["id"] for doc in results] == [3, 1, 2]

    def test_search_unmirrored_hit_yields_none(self, mock_index: MagicMock) -> None:
        engine = SyncEngine(index=mock_index)
        engine.add({"id": 1})
        mock_index.search.return_value = [SearchHit(id=1, score=2.0), SearchHit(id=99, score=1.0)]

        results = engine.search("anything")

        assert results == [{"id": 1}, None]

    def test_search_options_mapping_merges_defaults(self, mock_index: MagicMock) -> None:
        config = IndexConfig(search=SearchOptions(prefix=True, limit=5))
        engine = SyncEngine(config=config, index=mock_index)
        mock_index.search.return_value = []

        engine.search("q", {"fuzzy": 1})

        options = mock_index.search.call_args.args[1]
        assert options.prefix is True
        assert options.limit == 5
        assert options.fuzzy == 1

    def test_misspelt_option_key_rejected_before_search(self, mock_index: MagicMock) -> None:
        engine = SyncEngine(index=mock_index)

        with pytest.raises(ValidationError):
            engine.search("q", {"prefx": True})

        mock_index.search.assert_not_called()

    def test_search_filter_forwarded(self, mock_index: MagicMock) -> None:
        engine = SyncEngine(index=mock_index)
        mock_index.search.return_value = []

        def only_even(hit: SearchHit) -> bool:
            return hit.id % 2 == 0

        engine.search("q", filter=only_even)

        assert mock_index.search.call_args == call("q", engine.config.search, only_even)

    def test_search_index_error_propagates(self, book_engine: SyncEngine) -> None:
        with pytest.raises(IndexOperationError):
            book_engine.search("zen", {"fields": ["author"]})

        assert book_engine.results is None

    def test_auto_suggest_publishes_suggestions(self, book_engine: SyncEngine) -> None:
        suggestions = book_engine.auto_suggest("zen ar")

        assert book_engine.suggestions is suggestions
        assert all(isinstance(s, Suggestion) for s in suggestions)
        assert book_engine.results is None

    def test_clear_results_keeps_data(self, book_engine: SyncEngine) -> None:
        book_engine.search("zen")
        book_engine.auto_suggest("ze")

        book_engine.clear_results()

        assert book_engine.results is None
        assert book_engine.raw_results is None
        assert book_engine.suggestions is not None
        assert book_engine.document_count == 4
        assert_coherent(book_engine)

    def test_clear_suggestions_keeps_results(self, book_engine: SyncEngine) -> None:
        book_engine.search("zen")
        book_engine.auto_suggest("ze")

        book_engine.clear_suggestions()

        assert book_engine.suggestions is None
        assert book_engine.results is not None


class TestCoherence:
    """Mirror/index coherence over mixed operation sequences."""

    def test_mixed_sequence(self, engine: SyncEngine) -> None:
        docs = [{"id": i, "text": f"item {i} color{i % 3}"} for i in range(12)]

        engine.add_all(docs[:6])
        assert_coherent(engine)
        engine.add(docs[6])
        assert_coherent(engine)
        engine.remove(docs[0])
        assert_coherent(engine)
        engine.remove_by_id(3)
        assert_coherent(engine)
        engine.add_all(docs[7:])
        assert_coherent(engine)
        engine.remove_all(docs[8:10])
        assert_coherent(engine)
        engine.replace({"id": 4, "text": "replaced"})
        assert_coherent(engine)
        engine.remove_all(docs[:3], ignore_if_missing=True)
        assert_coherent(engine)

        assert engine._mirror.identities() == {4, 5, 6, 7, 10, 11}
        assert engine.search("replaced") == [{"id": 4, "text": "replaced"}]
