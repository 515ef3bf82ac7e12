"""
Vector store tests: upserts, lookups, brute-force search and stats.
"""

import asyncio
import json

import pytest

from devstore.core import utils
from devstore.core.errors import StorageValidationError
from devstore.core.models import VectorSearchParams, VectorUpsertParams
from devstore.vector.embeddings import simple_embedding

DOCUMENTS = [
    {"key": "fox", "document": "the quick brown fox jumps over the lazy dog", "metadata": {"kind": "animal"}},
    {"key": "pasta", "document": "boil the pasta in salted water for ten minutes", "metadata": {"kind": "recipe"}},
    {"key": "stars", "document": "a telescope reveals distant galaxies and stars", "metadata": {"kind": "science"}},
]


def test_upsert_returns_keys_and_ids(services):
    results = asyncio.run(services.vector.upsert("docs", *DOCUMENTS))

    assert [r.key for r in results] == ["fox", "pasta", "stars"]
    assert len({r.id for r in results}) == 3


def test_upsert_by_text_stores_pseudo_embedding(services):
    asyncio.run(services.vector.upsert("docs", DOCUMENTS[0]))
    result = asyncio.run(services.vector.get("docs", "fox"))

    assert result.exists is True
    assert result.data.embeddings == pytest.approx(simple_embedding(DOCUMENTS[0]["document"]))
    assert result.data.document == DOCUMENTS[0]["document"]
    assert result.data.metadata == {"kind": "animal"}
    assert result.data.similarity == 1.0


def test_upsert_with_explicit_embeddings(services):
    doc = VectorUpsertParams(key="v1", embeddings=[0.1, 0.2, 0.3], metadata={"a": 1})
    asyncio.run(services.vector.upsert("vectors", doc))
    result = asyncio.run(services.vector.get("vectors", "v1"))

    assert result.data.embeddings == [0.1, 0.2, 0.3]
    assert result.data.document is None


def test_repeated_upsert_keeps_stored_id(services, db, project_path, monkeypatch):
    clock = {"now": 1_000}
    monkeypatch.setattr(utils, "now_ms", lambda: clock["now"])
    store = services.vector

    first = asyncio.run(store.upsert("docs", {"key": "k", "document": "first version"}))
    clock["now"] = 2_000
    second = asyncio.run(store.upsert("docs", {"key": "k", "document": "second version", "metadata": {"v": 2}}))

    current = asyncio.run(store.get("docs", "k"))
    assert second[0].id == first[0].id == current.data.id

    rows = db.open().execute(
        "SELECT * FROM vector_storage WHERE project_path = ? AND name = 'docs' AND key = 'k'",
        (project_path,)
    ).fetchall()
    assert len(rows) == 1
    assert rows[0]["document"] == "second version"
    assert json.loads(rows[0]["metadata"]) == {"v": 2}
    assert rows[0]["created_at"] == 1_000
    assert rows[0]["updated_at"] == 2_000


@pytest.mark.parametrize("doc", [
    {"key": "", "document": "text"},
    {"key": "   ", "document": "text"},
    {"key": "k"},
    {"key": "k", "embeddings": []},
    {"key": "k", "document": "   "},
    {"document": "no key"},
])
def test_upsert_validation(services, doc):
    with pytest.raises(StorageValidationError):
        asyncio.run(services.vector.upsert("docs", doc))


def test_upsert_requires_name_and_documents(services):
    with pytest.raises(StorageValidationError):
        asyncio.run(services.vector.upsert("", DOCUMENTS[0]))
    with pytest.raises(StorageValidationError):
        asyncio.run(services.vector.upsert("docs"))


def test_partial_batch_is_not_rolled_back(services):
    with pytest.raises(StorageValidationError):
        asyncio.run(services.vector.upsert("docs", DOCUMENTS[0], {"key": "bad"}))

    assert asyncio.run(services.vector.get("docs", "fox")).exists is True


def test_get_missing(services):
    assert asyncio.run(services.vector.get("docs", "nope")).exists is False


def test_get_many_omits_misses(services):
    asyncio.run(services.vector.upsert("docs", *DOCUMENTS))
    found = asyncio.run(services.vector.get_many("docs", "fox", "missing", "stars"))

    assert set(found) == {"fox", "stars"}
    assert found["fox"].key == "fox"
    assert asyncio.run(services.vector.get_many("docs")) == {}


def test_search_orders_by_similarity(services):
    asyncio.run(services.vector.upsert("docs", *DOCUMENTS))
    results = asyncio.run(services.vector.search("docs", {"query": DOCUMENTS[1]["document"]}))

    assert len(results) == 3
    assert results[0].key == "pasta"
    assert results[0].similarity == pytest.approx(1.0)
    similarities = [r.similarity for r in results]
    assert similarities == sorted(similarities, reverse=True)
    assert results[0].metadata == {"kind": "recipe"}


def test_search_similarity_floor(services):
    asyncio.run(services.vector.upsert("docs", *DOCUMENTS))

    assert asyncio.run(services.vector.search("docs", {"query": "stars", "similarity": 1.01})) == []

    results = asyncio.run(services.vector.search(
        "docs", {"query": DOCUMENTS[2]["document"], "similarity": 0.999}
    ))
    assert results[0].key == "stars"
    assert all(r.similarity >= 0.999 for r in results)


def test_search_metadata_filter(services):
    asyncio.run(services.vector.upsert("docs", *DOCUMENTS))
    params = VectorSearchParams(query="anything", metadata={"kind": "science"})
    results = asyncio.run(services.vector.search("docs", params))

    assert [r.key for r in results] == ["stars"]

    params = VectorSearchParams(query="anything", metadata={"kind": "science", "missing": None})
    assert asyncio.run(services.vector.search("docs", params)) == []


def test_search_limit(services):
    docs = [{"key": f"doc-{i}", "document": f"document number {i}"} for i in range(15)]
    asyncio.run(services.vector.upsert("many", *docs))

    assert len(asyncio.run(services.vector.search("many", {"query": "document"}))) == 10
    assert len(asyncio.run(services.vector.search("many", {"query": "document", "limit": 3}))) == 3


def test_search_empty_collection(services):
    assert asyncio.run(services.vector.search("empty", {"query": "anything"})) == []


def test_search_requires_query(services):
    with pytest.raises(StorageValidationError):
        asyncio.run(services.vector.search("docs", {"query": "  "}))
    with pytest.raises(StorageValidationError):
        asyncio.run(services.vector.search("docs", None))


def test_search_uses_collection_dimension(services):
    store = services.vector
    asyncio.run(store.upsert("small", {"key": "axis", "embeddings": [1.0, 0.0, 0.0]}))
    asyncio.run(store.upsert("small", {"key": "text", "document": "three dimensions"}))

    assert len(asyncio.run(store.get("small", "text")).data.embeddings) == 3

    results = asyncio.run(store.search("small", {"query": "three dimensions"}))
    assert results[0].key == "text"
    assert results[0].similarity == pytest.approx(1.0)


def test_delete_and_exists(services):
    store = services.vector
    asyncio.run(store.upsert("docs", *DOCUMENTS))

    assert asyncio.run(store.exists("docs")) is True
    assert asyncio.run(store.delete("docs", "fox", "pasta", "missing")) == 2
    assert asyncio.run(store.delete("docs")) == 0
    assert asyncio.run(store.delete("docs", "stars")) == 1
    assert asyncio.run(store.exists("docs")) is False


def test_stats_exact_for_small_collection(services, monkeypatch):
    clock = {"now": 10}
    monkeypatch.setattr(utils, "now_ms", lambda: clock["now"])
    store = services.vector

    asyncio.run(store.upsert("stats", {"key": "a", "embeddings": [0.5, 0.25], "document": "héllo"}))
    clock["now"] = 20
    asyncio.run(store.upsert("stats", {"key": "b", "embeddings": [1.0, 2.0]}))

    stats = asyncio.run(store.get_stats("stats"))
    expected = len("[0.5, 0.25]") + len("héllo".encode("utf-8")) + len("[1.0, 2.0]")
    assert stats.count == 2
    assert stats.sum == expected
    assert stats.estimated is False
    assert stats.created_at == 10
    assert stats.last_used == 20


def test_stats_extrapolate_from_sample(services):
    docs = [{"key": f"k{i:02d}", "embeddings": [0.5, 0.5]} for i in range(25)]
    asyncio.run(services.vector.upsert("big", *docs))

    stats = asyncio.run(services.vector.get_stats("big"))
    assert stats.count == 25
    assert stats.sampled == 20
    assert stats.estimated is True
    assert stats.sum == 25 * len("[0.5, 0.5]")


def test_stats_of_empty_collection(services):
    stats = asyncio.run(services.vector.get_stats("nothing"))
    assert stats.count == 0
    assert stats.sum == 0
    assert stats.created_at is None


def test_all_stats(services):
    asyncio.run(services.vector.upsert("one", {"key": "a", "embeddings": [1.0]}))
    asyncio.run(services.vector.upsert("two", {"key": "a", "embeddings": [1.0]}, {"key": "b", "embeddings": [2.0]}))

    all_stats = asyncio.run(services.vector.get_all_stats())
    assert set(all_stats) == {"one", "two"}
    assert all_stats["two"].count == 2


def test_projects_are_isolated(services, other_services):
    asyncio.run(services.vector.upsert("docs", *DOCUMENTS))

    assert asyncio.run(other_services.vector.exists("docs")) is False
    assert asyncio.run(other_services.vector.search("docs", {"query": "fox"})) == []
    assert asyncio.run(other_services.vector.get_all_stats()) == {}
    assert asyncio.run(other_services.vector.delete("docs", "fox")) == 0


def test_first_vector_of_batch_fixes_dimension(services):
    store = services.vector
    asyncio.run(store.upsert(
        "mixed",
        {"key": "axis", "embeddings": [1.0, 0.0, 0.0]},
        {"key": "text", "document": "hello"},
    ))

    assert len(asyncio.run(store.get("mixed", "text")).data.embeddings) == 3
    results = asyncio.run(store.search("mixed", {"query": "hello"}))
    assert {r.key for r in results} == {"axis", "text"}
