"""
Exact vector index - brute-force cosine search over chunk records.
Records live in an in-memory list; search can also stream candidates from
the durable store instead.
"""

import math
from numbers import Real
from typing import Any, Dict, Iterable, List, Optional

from .distance import cosine_similarity
from .types import SearchResult
from ..core import config
from ..core.db import SqliteCollectionStore
from ..core.errors import ConfigurationError, DimensionError, NotFoundError, PersistenceError, SchemaError
from ..util.logging import logger

MEMORY_BACKEND = "memory"
SQLITE_BACKEND = "sqlite"
SUPPORTED_BACKENDS = (MEMORY_BACKEND, SQLITE_BACKEND)


def matches(record: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    """Conjunctive equality match of every filter key against the record."""
    if not filter:
        return True
    return all(key in record and record[key] == value for key, value in filter.items())


def rank(results: List[SearchResult], top_k: int) -> List[SearchResult]:
    """Sort by similarity, highest first; ties keep insertion order."""
    return sorted(results, key=lambda r: r.similarity, reverse=True)[:top_k]


class VectorIndex:
    """In-memory collection of objects carrying an ``embedding`` field.

    The first object fixes both the key set and the embedding dimension;
    every later insertion must match them.
    """

    def __init__(self, initial_objects: Optional[Iterable[Dict[str, Any]]] = None):
        self._objects: List[Dict[str, Any]] = []
        self._keys: Optional[frozenset] = None
        self._dimension: Optional[int] = None

        for obj in initial_objects or []:
            self.add(obj)

    @property
    def objects(self) -> List[Dict[str, Any]]:
        return list(self._objects)

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _validate(self, obj: Dict[str, Any]) -> None:
        if not isinstance(obj, dict):
            raise SchemaError("Object must be a mapping of fields")

        embedding = obj.get("embedding")
        if (not isinstance(embedding, (list, tuple)) or not embedding
                or not all(isinstance(v, Real) and not isinstance(v, bool) and math.isfinite(v)
                           for v in embedding)):
            raise SchemaError("Object must have a non-empty embedding property of finite numbers")

        if self._keys is not None and frozenset(obj.keys()) != self._keys:
            raise SchemaError("Object must have the same properties as the initial objects")

        if self._dimension is not None and len(embedding) != self._dimension:
            raise DimensionError(
                f"Embedding dimension {len(embedding)} does not match index dimension {self._dimension}"
            )

    def _find(self, filter: Dict[str, Any]) -> int:
        for position, obj in enumerate(self._objects):
            if matches(obj, filter):
                return position
        return -1

    def add(self, obj: Dict[str, Any]) -> None:
        """Validate and append an object."""
        self._validate(obj)
        if self._keys is None:
            self._keys = frozenset(obj.keys())
            self._dimension = len(obj["embedding"])
        self._objects.append(obj)

    def update(self, filter: Dict[str, Any], obj: Dict[str, Any]) -> None:
        """Replace the first object matching ``filter``."""
        position = self._find(filter)
        if position == -1:
            raise NotFoundError(f"Vector not found for filter {filter}")
        self._validate(obj)
        self._objects[position] = obj

    def remove(self, filter: Dict[str, Any]) -> None:
        """Remove the first object matching ``filter``."""
        position = self._find(filter)
        if position == -1:
            raise NotFoundError(f"Vector not found for filter {filter}")
        del self._objects[position]

    def remove_batch(self, filters: Iterable[Dict[str, Any]]) -> None:
        """Remove the first match of each filter; filters without a match are skipped."""
        for filter in filters:
            position = self._find(filter)
            if position != -1:
                del self._objects[position]

    def get(self, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        position = self._find(filter)
        return self._objects[position] if position != -1 else None

    def size(self) -> int:
        return len(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def clear(self) -> None:
        """Remove all objects; the schema stays fixed."""
        self._objects = []

    async def search(self, query_vector: List[float], top_k: Optional[int] = None,
                     filter: Optional[Dict[str, Any]] = None, backend: str = MEMORY_BACKEND,
                     store_name: Optional[str] = None,
                     collection_name: Optional[str] = None) -> List[SearchResult]:
        """Return the ``top_k`` most similar objects to ``query_vector``.

        Args:
            query_vector: Query embedding
            top_k: Maximum number of results, defaults to DEFAULT_TOP_K
            filter: Equality filter applied before ranking
            backend: "memory" searches this index, "sqlite" streams the durable store
            store_name: Durable store name (sqlite backend only)
            collection_name: Durable collection name (sqlite backend only)

        Returns:
            SearchResult list, highest similarity first
        """
        top_k = config.DEFAULT_TOP_K if top_k is None else top_k
        if top_k < 0:
            raise ConfigurationError("top_k must be >= 0")

        if backend == SQLITE_BACKEND:
            store = config.get_vector_store(store_name, collection_name)
            return await self._search_store(store, query_vector, top_k, filter)
        if backend != MEMORY_BACKEND:
            raise ConfigurationError(
                f"Unsupported backend: {backend}. Supported backends: {', '.join(SUPPORTED_BACKENDS)}"
            )

        results = [
            SearchResult(similarity=cosine_similarity(query_vector, obj["embedding"]), object=obj)
            for obj in self._objects
            if matches(obj, filter)
        ]
        return rank(results, top_k)

    async def _search_store(self, store: SqliteCollectionStore, query_vector: List[float],
                            top_k: int, filter: Optional[Dict[str, Any]]) -> List[SearchResult]:
        results = []
        async with store.stream() as records:
            async for record in records:
                if matches(record, filter):
                    similarity = cosine_similarity(query_vector, record["embedding"])
                    results.append(SearchResult(similarity=similarity, object=record))
                    # Bound memory to the best top_k seen so far
                    if len(results) > top_k:
                        results = rank(results, top_k)
        return rank(results, top_k)

    async def save(self, backend: str = SQLITE_BACKEND, store_name: Optional[str] = None,
                   collection_name: Optional[str] = None) -> None:
        """Write every object to the durable store in one transaction."""
        if backend != SQLITE_BACKEND:
            raise ConfigurationError(
                f"Unsupported storage type: {backend}. Supported storage types: {SQLITE_BACKEND}"
            )
        if not self._objects:
            raise PersistenceError("Index is empty. Nothing to save")

        store = config.get_vector_store(store_name, collection_name)
        await store.add(self._objects)
        logger.log_vector_operation("save", details={
            "store": store.store_name,
            "collection": store.collection_name,
            "records": len(self._objects),
        })

    @classmethod
    async def load(cls, store_name: Optional[str] = None,
                   collection_name: Optional[str] = None) -> 'VectorIndex':
        """Rebuild an index from a durable collection."""
        store = config.get_vector_store(store_name, collection_name)
        index = cls()
        async with store.stream() as records:
            async for record in records:
                index.add(record)
        logger.log_vector_operation("load", details={
            "store": store.store_name,
            "collection": store.collection_name,
            "records": index.size(),
        })
        return index

    async def delete_collection(self, store_name: Optional[str] = None,
                                collection_name: Optional[str] = None) -> None:
        await config.get_vector_store(store_name, collection_name).delete_collection()

    async def delete_store(self, store_name: Optional[str] = None) -> None:
        await config.get_vector_store(store_name).delete_store()
