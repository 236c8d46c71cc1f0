"""Retrieval engine behaviour over both storage backends."""

import pytest

from commonbase.core.errors import (
    EmbeddingProviderError,
    EmbeddingUnavailable,
    StoreError,
    ValidationError,
)
from commonbase.retrieval import RetrievalDefaults, RetrievalEngine, VectorIndex

from conftest import FakeEmbeddingProvider, vec


def test_add_entry_round_trips_data(engine: RetrievalEngine) -> None:
    entry = engine.add_entry("machine learning basics", {})
    fetched = engine.get_entry(entry.id)
    assert entry.data == "machine learning basics"
    assert fetched.data == entry.data
    assert fetched.created == fetched.updated
    assert engine.index.get(entry.id) is not None


@pytest.mark.parametrize("data", ["", "   ", "\n\t"])
def test_add_entry_rejects_blank_data(engine: RetrievalEngine, provider: FakeEmbeddingProvider, data: str) -> None:
    with pytest.raises(ValidationError):
        engine.add_entry(data, {})
    assert engine.list_entries() == []
    assert provider.calls == []


def test_add_entry_uses_precomputed_vector(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    vector = vec(0.0, 1.0)
    entry = engine.add_entry("precomputed", {}, vector=vector)
    assert engine.index.get(entry.id) == vector
    assert provider.calls == []


def test_add_entry_regenerates_wrong_length_vector(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.script("short vector", vec(1.0))
    entry = engine.add_entry("short vector", {}, vector=[1.0, 2.0, 3.0])
    assert provider.calls == ["short vector"]
    assert engine.index.get(entry.id) == vec(1.0)


def test_add_entry_survives_embedding_failure(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.fail_with()
    entry = engine.add_entry("captured anyway", {"source": "test"})
    assert engine.get_entry(entry.id).data == "captured anyway"
    assert engine.index.get(entry.id) is None

    provider.recover()
    provider.script("captured anyway", vec(1.0))
    provider.script("anything", vec(1.0))
    assert engine.semantic_search("anything", threshold=0.0) == []


def test_add_entry_survives_unexpected_provider_error(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.fail_with(RuntimeError("boom"))
    entry = engine.add_entry("still stored", {})
    assert engine.get_entry(entry.id) is not None


def test_add_entry_survives_provider_dimension_mismatch(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.script("bad dims", [1.0, 0.0])
    entry = engine.add_entry("bad dims", {})
    assert engine.get_entry(entry.id) is not None
    assert engine.index.get(entry.id) is None


def test_update_entry_changes_data_and_reembeds(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.script("old text", vec(1.0))
    provider.script("new text", vec(0.0, 1.0))
    entry = engine.add_entry("old text", {"title": "t"})
    updated = engine.update_entry(entry.id, data="new text")
    fetched = engine.get_entry(entry.id)
    assert fetched.data == "new text"
    assert fetched.metadata == {"title": "t"}
    assert fetched.updated > fetched.created
    assert updated.updated == fetched.updated
    assert engine.index.get(entry.id) == vec(0.0, 1.0)


def test_update_metadata_only_skips_embedding(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    entry = engine.add_entry("stable text", {})
    provider.calls.clear()
    engine.update_entry(entry.id, metadata={"title": "renamed"})
    engine.update_entry(entry.id, data="stable text")
    assert provider.calls == []
    assert engine.get_entry(entry.id).metadata == {"title": "renamed"}


def test_update_embedding_failure_keeps_stale_vector(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.script("original", vec(1.0))
    entry = engine.add_entry("original", {})
    provider.fail_with()
    updated = engine.update_entry(entry.id, data="rewritten")
    assert updated.data == "rewritten"
    assert engine.index.get(entry.id) == vec(1.0)


def test_update_missing_entry_returns_none(engine: RetrievalEngine) -> None:
    assert engine.update_entry("missing", data="x") is None
    entry = engine.add_entry("text", {})
    with pytest.raises(ValidationError):
        engine.update_entry(entry.id, data="  ")


def test_delete_entry_is_idempotent_and_cascades(engine: RetrievalEngine) -> None:
    entry = engine.add_entry("to delete", {})
    assert engine.index.get(entry.id) is not None
    assert engine.delete_entry(entry.id) is True
    assert engine.delete_entry(entry.id) is False
    assert engine.get_entry(entry.id) is None
    assert engine.index.get(entry.id) is None


def test_list_entries_paginates(engine: RetrievalEngine) -> None:
    created = [engine.add_entry(f"entry {idx}", {}) for idx in range(5)]
    pages = engine.list_entries(0, 2) + engine.list_entries(2, 2) + engine.list_entries(4, 2)
    assert [entry.id for entry in pages] == [entry.id for entry in reversed(created)]
    with pytest.raises(ValidationError):
        engine.list_entries(-1, 2)
    with pytest.raises(ValidationError):
        engine.list_entries(0, 0)


def test_search_entries_is_lexical(engine: RetrievalEngine) -> None:
    first = engine.add_entry("Deep learning fundamentals", {})
    engine.add_entry("Cooking pasta", {"title": "Recipes"})
    second = engine.add_entry("Gardening", {"title": "Learning to grow"})
    results = engine.search_entries("LEARNING")
    assert [entry.id for entry in results] == [second.id, first.id]
    with pytest.raises(ValidationError):
        engine.search_entries("   ")


def test_semantic_search_ranks_near_identical_vectors(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.script("machine learning basics", vec(1.0, 0.1))
    provider.script("deep learning fundamentals", vec(1.0, 0.2))
    provider.script("learning", vec(1.0, 0.11))
    e1 = engine.add_entry("machine learning basics", {})
    e2 = engine.add_entry("deep learning fundamentals", {})

    results = engine.semantic_search("learning", threshold=0.5)

    assert [item.entry.id for item in results] == [e1.id, e2.id]
    assert results[0].similarity > results[1].similarity
    assert all(item.similarity >= 0.5 for item in results)


def test_semantic_search_respects_threshold_and_limit(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.script("near", vec(1.0, 0.0))
    provider.script("far", vec(0.0, 1.0))
    provider.script("closer", vec(1.0, 0.05))
    provider.script("query", vec(1.0, 0.0))
    near = engine.add_entry("near", {})
    engine.add_entry("far", {})
    closer = engine.add_entry("closer", {})

    results = engine.semantic_search("query")
    assert [item.entry.id for item in results] == [near.id, closer.id]
    assert [item.entry.id for item in engine.semantic_search("query", limit=1)] == [near.id]
    assert len(engine.semantic_search("query", threshold=0.0)) == 3
    with pytest.raises(ValidationError):
        engine.semantic_search("query", threshold=1.5)
    with pytest.raises(ValidationError):
        engine.semantic_search("query", limit=0)


def test_semantic_search_surfaces_embedding_errors(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    engine.add_entry("some content", {})
    provider.fail_with(EmbeddingUnavailable("no key"))
    with pytest.raises(EmbeddingUnavailable):
        engine.semantic_search("content")
    provider.fail_with(EmbeddingProviderError("rate limited"))
    with pytest.raises(EmbeddingProviderError):
        engine.semantic_search("content")


def test_semantic_search_skips_entries_deleted_behind_the_index(
    engine: RetrievalEngine, provider: FakeEmbeddingProvider, monkeypatch: pytest.MonkeyPatch
) -> None:
    provider.script("kept", vec(1.0))
    provider.script("gone", vec(1.0, 0.01))
    provider.script("query", vec(1.0))
    kept = engine.add_entry("kept", {})
    gone = engine.add_entry("gone", {})
    original_get = engine.entries.get
    # the entry row disappears between the index scan and hydration
    monkeypatch.setattr(
        engine.entries, "get", lambda entry_id: None if entry_id == gone.id else original_get(entry_id)
    )
    results = engine.semantic_search("query", threshold=0.0)
    assert [item.entry.id for item in results] == [kept.id]


def test_similar_entries_excludes_self(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.script("a", vec(1.0, 0.0))
    provider.script("b", vec(1.0, 0.1))
    provider.script("c", vec(0.0, 1.0))
    a = engine.add_entry("a", {})
    b = engine.add_entry("b", {})
    engine.add_entry("c", {})
    provider.calls.clear()

    results = engine.get_similar_entries(a.id)

    assert [item.entry.id for item in results] == [b.id]
    assert a.id not in {item.entry.id for item in engine.get_similar_entries(a.id, threshold=0.0)}
    assert provider.calls == []


def test_similar_entries_without_vector_is_empty(engine: RetrievalEngine, provider: FakeEmbeddingProvider) -> None:
    provider.fail_with()
    entry = engine.add_entry("no vector", {})
    provider.recover()
    assert engine.get_similar_entries(entry.id) == []
    assert engine.get_similar_entries("missing") == []


def test_link_entries_is_bidirectional_and_idempotent(engine: RetrievalEngine) -> None:
    parent = engine.add_entry("parent", {"links": ["existing"]})
    child = engine.add_entry("child", {})
    engine.link_entries(parent.id, child.id)
    engine.link_entries(parent.id, child.id)

    assert engine.get_entry(parent.id).metadata["links"] == ["existing", child.id]
    assert engine.get_entry(child.id).metadata["backlinks"] == [parent.id]


def test_link_entries_skips_only_missing_side(engine: RetrievalEngine) -> None:
    child = engine.add_entry("child", {})
    engine.link_entries("ghost", child.id)
    assert engine.get_entry(child.id).backlinks == ["ghost"]

    parent = engine.add_entry("parent", {})
    engine.link_entries(parent.id, "ghost")
    assert engine.get_entry(parent.id).links == ["ghost"]


def test_delete_leaves_dangling_links(engine: RetrievalEngine) -> None:
    parent = engine.add_entry("parent", {})
    child = engine.add_entry("child", {})
    engine.link_entries(parent.id, child.id)
    engine.delete_entry(child.id)
    assert engine.get_entry(parent.id).links == [child.id]


def test_random_entries(engine: RetrievalEngine) -> None:
    for idx in range(12):
        engine.add_entry(f"entry {idx}", {})
    assert len(engine.get_random_entries()) == engine.defaults.random_limit
    assert len(engine.get_random_entries(3)) == 3


def test_defaults_drive_omitted_arguments(stores) -> None:
    entry_store, vector_store = stores
    provider = FakeEmbeddingProvider()
    engine = RetrievalEngine(
        entries=entry_store,
        index=VectorIndex(vector_store, dim=provider.dim),
        embedder=provider,
        defaults=RetrievalDefaults(threshold=0.0, search_limit=2, list_limit=3),
    )
    for idx in range(4):
        engine.add_entry(f"entry {idx}", {})
    assert len(engine.list_entries()) == 3
    assert len(engine.semantic_search("entry")) == 2


def test_store_errors_propagate(engine: RetrievalEngine, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(*args, **kwargs):
        raise StoreError("disk full")

    monkeypatch.setattr(engine.entries, "insert", broken)
    with pytest.raises(StoreError):
        engine.add_entry("will fail", {})

    assert engine.list_entries() == []
