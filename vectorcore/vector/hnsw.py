"""
Approximate nearest-neighbor index - layered proximity graph (HNSW-style).

Layers are stored coarsest first; the last layer is the base layer and holds
every inserted vector. Each node points at its copy in the next finer layer
through ``layer_below``.
"""

import bisect
import heapq
import json
import math
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import msgpack

from .distance import euclidean_distance
from ..core.errors import ConfigurationError, DimensionError, SchemaError

Neighbor = Tuple[float, int]


@dataclass
class LayerNode:
    vector: List[float]
    connections: List[int] = field(default_factory=list)
    layer_below: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vector": list(self.vector),
            "connections": list(self.connections),
            "layerBelow": self.layer_below,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LayerNode':
        return cls(
            vector=[float(v) for v in data["vector"]],
            connections=[int(c) for c in data["connections"]],
            layer_below=data["layerBelow"],
        )


Layer = List[LayerNode]


def get_insert_layer(num_layers: int, ml: float, rng: Callable[[], float] = random.random) -> int:
    """Draw an insertion depth: min(floor(-ln(U) * mL), L - 1)."""
    u = rng()
    while u <= 0.0:
        u = rng()
    return min(math.floor(-math.log(u) * ml), num_layers - 1)


def search_layer(graph: Layer, entry: int, query: Sequence[float], ef: int) -> List[Neighbor]:
    """Bounded beam search over one layer.

    Keeps at most ``ef`` best results sorted by distance, expanding the
    closest unvisited candidate until it is worse than the worst kept result.
    """
    if entry < 0 or entry >= len(graph):
        raise IndexError(f"Invalid entry index: {entry}")

    best = (euclidean_distance(graph[entry].vector, query), entry)
    nearest = [best]
    visited = {entry}
    candidates = [best]

    while candidates:
        current = heapq.heappop(candidates)
        if nearest[-1][0] < current[0]:
            break

        for neighbor in graph[current[1]].connections:
            if neighbor in visited:
                continue
            visited.add(neighbor)

            dist = euclidean_distance(graph[neighbor].vector, query)
            if dist < nearest[-1][0] or len(nearest) < ef:
                heapq.heappush(candidates, (dist, neighbor))
                bisect.insort(nearest, (dist, neighbor))
                if len(nearest) > ef:
                    nearest.pop()

    return nearest


def best_neighbor_hop(graph: Layer, entry: int, query: Sequence[float]) -> int:
    """Closest of the entry node and its direct neighbors; no further expansion."""
    best_dist = euclidean_distance(graph[entry].vector, query)
    best = entry
    for neighbor in graph[entry].connections:
        dist = euclidean_distance(graph[neighbor].vector, query)
        if dist < best_dist:
            best_dist, best = dist, neighbor
    return best


class ApproximateIndex:
    """Multi-layer proximity graph for approximate nearest-neighbor search."""

    def __init__(self, L: int = 5, mL: float = 0.62, efc: int = 10,
                 rng: Callable[[], float] = random.random):
        if not isinstance(L, int) or L < 1:
            raise ConfigurationError("L must be an integer >= 1")
        if mL <= 0:
            raise ConfigurationError("mL must be > 0")
        if not isinstance(efc, int) or efc < 1:
            raise ConfigurationError("efc must be an integer >= 1")

        self.L = L
        self.mL = mL
        self.efc = efc
        self._rng = rng
        self.index: List[Layer] = [[] for _ in range(L)]

    @property
    def dimension(self) -> Optional[int]:
        base = self.index[-1]
        return len(base[0].vector) if base else None

    def __len__(self) -> int:
        return len(self.index[-1])

    def set_index(self, index: List[Layer]) -> None:
        if len(index) != self.L:
            raise ConfigurationError(f"Expected {self.L} layers, got {len(index)}")
        self.index = index

    def _next_layer_size(self, n: int) -> Optional[int]:
        # Position the new node will take in the next finer layer
        return len(self.index[n + 1]) if n < self.L - 1 else None

    def insert(self, vec: Sequence[float]) -> None:
        """Insert a vector at a randomly drawn depth."""
        vector = [float(v) for v in vec]
        if not vector or not all(math.isfinite(v) for v in vector):
            raise SchemaError("Vector must be a non-empty sequence of finite numbers")
        if self.dimension is not None and len(vector) != self.dimension:
            raise DimensionError(
                f"Vector dimension {len(vector)} does not match index dimension {self.dimension}"
            )

        level = get_insert_layer(self.L, self.mL, self._rng)
        entry = 0

        for n in range(self.L):
            graph = self.index[n]

            if not graph:
                graph.append(LayerNode(vector=vector, layer_below=self._next_layer_size(n)))
                continue

            if n < level:
                hop = best_neighbor_hop(graph, entry, vector)
                entry = graph[hop].layer_below
                continue

            node = LayerNode(vector=vector, layer_below=self._next_layer_size(n))
            nearest = search_layer(graph, entry, vector, self.efc)
            new_index = len(graph)
            for _, neighbor in nearest:
                node.connections.append(neighbor)
                graph[neighbor].connections.append(new_index)
            graph.append(node)

            entry = graph[nearest[0][1]].layer_below

    def search(self, query: Sequence[float], ef: int = 1) -> List[Neighbor]:
        """Return up to ``ef`` (distance, node_index) pairs from the base layer, nearest first."""
        if not self.index[-1]:
            return []
        if ef < 1:
            raise ConfigurationError("ef must be >= 1")

        entry = 0
        for graph in self.index[:-1]:
            if not graph:
                continue
            best = search_layer(graph, entry, query, 1)[0][1]
            entry = graph[best].layer_below

        return search_layer(self.index[-1], entry, query, ef)

    def get_vector(self, node_index: int) -> List[float]:
        """Vector stored at a base-layer node."""
        return list(self.index[-1][node_index].vector)

    def to_json(self) -> Dict[str, Any]:
        return {
            "L": self.L,
            "mL": self.mL,
            "efc": self.efc,
            "index": [[node.to_dict() for node in layer] for layer in self.index],
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'ApproximateIndex':
        hnsw = cls(data["L"], data["mL"], data["efc"])
        hnsw.set_index([[LayerNode.from_dict(node) for node in layer] for layer in data["index"]])
        return hnsw

    def dumps(self) -> str:
        return json.dumps(self.to_json())

    @classmethod
    def loads(cls, text: str) -> 'ApproximateIndex':
        return cls.from_json(json.loads(text))

    def to_binary(self) -> bytes:
        return msgpack.packb(self.to_json(), use_bin_type=True)

    @classmethod
    def from_binary(cls, binary: bytes) -> 'ApproximateIndex':
        return cls.from_json(msgpack.unpackb(binary, raw=False))
