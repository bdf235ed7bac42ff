"""
Bounded LRU cache for text -> vector lookups.
"""

import time
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

from ..core.errors import ConfigurationError


def normalize_key(text: str) -> str:
    """Collapse whitespace so equivalent texts share one cache entry."""
    return " ".join(text.split())


class EmbeddingCache:
    """In-memory LRU cache with a maximum entry count and maximum age.

    Bounds are fixed at construction. The cache only affects latency: a miss
    simply sends the text to the embedding model.
    """

    def __init__(self, max_entries: int = 10000, max_age: float = 600.0,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ConfigurationError("max_entries must be >= 1")
        if max_age <= 0:
            raise ConfigurationError("max_age must be > 0")
        self._max_entries = max_entries
        self._max_age = max_age
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, List[float]]]" = OrderedDict()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def max_age(self) -> float:
        return self._max_age

    def get(self, key: str) -> Optional[List[float]]:
        """Return the cached vector, or None on a miss or an expired entry."""
        key = normalize_key(key)
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, value = entry
        if self._clock() - stored_at > self._max_age:
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return list(value)

    def set(self, key: str, value: List[float]) -> None:
        key = normalize_key(key)
        self._entries[key] = (self._clock(), list(value))
        self._entries.move_to_end(key)

        # Evict least recently used
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        # Membership does not count as a use
        entry = self._entries.get(normalize_key(key))
        return entry is not None and self._clock() - entry[0] <= self._max_age
