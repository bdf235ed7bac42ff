"""
Exact vector index tests: schema, mutation and brute-force cosine search.
"""

import pytest

from vectorcore.core.errors import ConfigurationError, DimensionError, NotFoundError, SchemaError
from vectorcore.vector.index import VectorIndex, matches, rank
from vectorcore.vector.types import SearchResult


def record(id, embedding, **extra):
    obj = {"id": id, "name": f"item {id}", "embedding": embedding}
    obj.update(extra)
    return obj


@pytest.fixture
def index():
    return VectorIndex([
        record("a", [1.0, 0.0, 0.0]),
        record("b", [0.0, 1.0, 0.0]),
        record("c", [0.7, 0.7, 0.0]),
    ])


def test_initial_objects_fix_schema(index):
    """The first object fixes the key set and dimension."""
    assert index.size() == 3
    assert len(index) == 3
    assert index.dimension == 3


def test_add_rejects_missing_embedding():
    index = VectorIndex()

    with pytest.raises(SchemaError):
        index.add({"id": "x"})


def test_add_rejects_non_numeric_embedding():
    index = VectorIndex()

    with pytest.raises(SchemaError):
        index.add({"id": "x", "embedding": ["a", "b"]})
    with pytest.raises(SchemaError):
        index.add({"id": "x", "embedding": [float("nan"), 1.0]})


def test_add_rejects_empty_embedding():
    """A zero-length embedding cannot fix the index dimension."""
    index = VectorIndex()

    with pytest.raises(SchemaError):
        index.add({"id": "a", "embedding": []})
    with pytest.raises(SchemaError):
        VectorIndex([{"id": "a", "embedding": ()}])

    assert index.dimension is None
    assert index.size() == 0


def test_add_rejects_different_properties(index):
    with pytest.raises(SchemaError):
        index.add({"id": "d", "embedding": [1.0, 0.0, 0.0]})

    with pytest.raises(SchemaError):
        index.add(record("d", [1.0, 0.0, 0.0], extra="field"))

    assert index.size() == 3


def test_add_rejects_dimension_mismatch(index):
    with pytest.raises(DimensionError):
        index.add(record("d", [1.0, 0.0]))


@pytest.mark.asyncio
async def test_search_orders_by_similarity(index):
    """Results are ordered by cosine similarity, highest first."""
    results = await index.search([1.0, 0.0, 0.0], top_k=3)

    assert [r.object["id"] for r in results] == ["a", "c", "b"]
    assert results[0].similarity == 1.0
    assert results[-1].similarity == 0.0
    assert all(isinstance(r, SearchResult) for r in results)


@pytest.mark.asyncio
async def test_search_top_k_limits(index):
    assert len(await index.search([1.0, 0.0, 0.0], top_k=1)) == 1
    assert len(await index.search([1.0, 0.0, 0.0], top_k=10)) == 3
    assert await index.search([1.0, 0.0, 0.0], top_k=0) == []


@pytest.mark.asyncio
async def test_search_default_top_k():
    index = VectorIndex([record(str(i), [1.0, float(i)]) for i in range(5)])

    results = await index.search([1.0, 0.0])

    assert len(results) == 3


@pytest.mark.asyncio
async def test_search_negative_top_k_rejected(index):
    with pytest.raises(ConfigurationError):
        await index.search([1.0, 0.0, 0.0], top_k=-1)


@pytest.mark.asyncio
async def test_search_unknown_backend_rejected(index):
    with pytest.raises(ConfigurationError):
        await index.search([1.0, 0.0, 0.0], backend="redis")


@pytest.mark.asyncio
async def test_search_with_filter(index):
    """Filters narrow the candidate set before ranking."""
    results = await index.search([1.0, 0.0, 0.0], top_k=3, filter={"id": "b"})

    assert len(results) == 1
    assert results[0].object["id"] == "b"


@pytest.mark.asyncio
async def test_search_ties_keep_insertion_order():
    index = VectorIndex([
        record("first", [1.0, 0.0]),
        record("second", [2.0, 0.0]),
        record("third", [3.0, 0.0]),
    ])

    results = await index.search([1.0, 0.0], top_k=3)

    assert [r.object["id"] for r in results] == ["first", "second", "third"]


@pytest.mark.asyncio
async def test_search_empty_index():
    assert await VectorIndex().search([1.0, 0.0], top_k=3) == []


@pytest.mark.asyncio
async def test_search_query_dimension_mismatch(index):
    with pytest.raises(DimensionError):
        await index.search([1.0, 0.0], top_k=1)


def test_update_replaces_in_place(index):
    """Updating keeps the size and the position of the object."""
    index.update({"id": "b"}, record("b", [0.0, 0.0, 1.0]))

    assert index.size() == 3
    assert index.objects[1]["embedding"] == [0.0, 0.0, 1.0]


def test_update_missing_raises(index):
    with pytest.raises(NotFoundError):
        index.update({"id": "zzz"}, record("zzz", [1.0, 0.0, 0.0]))


def test_update_validates_replacement(index):
    with pytest.raises(DimensionError):
        index.update({"id": "a"}, record("a", [1.0]))

    assert index.get({"id": "a"})["embedding"] == [1.0, 0.0, 0.0]


def test_remove(index):
    index.remove({"id": "a"})

    assert index.size() == 2
    assert index.get({"id": "a"}) is None


def test_remove_missing_raises(index):
    with pytest.raises(NotFoundError):
        index.remove({"id": "missing"})


def test_remove_batch_skips_missing(index):
    index.remove_batch([{"id": "a"}, {"id": "missing"}, {"id": "c"}])

    assert [o["id"] for o in index.objects] == ["b"]


def test_get_first_match():
    index = VectorIndex([
        record("a", [1.0, 0.0], group="x"),
        record("b", [0.0, 1.0], group="x"),
    ])

    assert index.get({"group": "x"})["id"] == "a"
    assert index.get({"group": "y"}) is None


def test_clear_keeps_schema(index):
    index.clear()

    assert index.size() == 0
    with pytest.raises(DimensionError):
        index.add(record("d", [1.0, 0.0]))


def test_matches_and_rank_helpers():
    obj = {"id": "a", "tag": "docs"}

    assert matches(obj, None)
    assert matches(obj, {"tag": "docs"})
    assert not matches(obj, {"tag": "docs", "id": "b"})
    assert not matches(obj, {"missing": None})

    results = [SearchResult(0.2, {"id": 1}), SearchResult(0.9, {"id": 2}), SearchResult(0.2, {"id": 3})]
    assert [r.object["id"] for r in rank(results, 3)] == [2, 1, 3]


@pytest.mark.asyncio
async def test_components_query_end_to_end():
    """A stored chunk embedded with the query's own vector comes back at similarity 1.0."""
    index = VectorIndex([{
        "id": "components-0",
        "title": "Components",
        "url": "/components",
        "content": "components",
        "embedding": [0.1] * 384,
    }])

    results = await index.search([0.1] * 384, top_k=1)

    assert len(results) == 1
    assert results[0].object["id"] == "components-0"
    assert results[0].similarity == 1.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
