"""
Test doubles and builders shared across test modules.
"""

from typing import List

from vectorcore.vector.embeddings import IEmbeddingProvider
from vectorcore.vector.types import Chunk, make_chunk_id


def make_chunk(index: int, content: str = None, source_file: str = "docs/guide.njk",
               title: str = "Guide") -> Chunk:
    """Build a chunk with a stable id for the given ordinal."""
    return Chunk(
        id=make_chunk_id(source_file, index),
        content=content if content is not None else f"chunk number {index}",
        title=title,
        url=f"/guide#{index}",
        source_file=source_file,
        chunk_index=index,
    )


class ConstantProvider(IEmbeddingProvider):
    """Returns the same vector for every text and records calls."""

    def __init__(self, value: float = 0.1, dimension: int = 384):
        self.value = value
        self.dimension = dimension
        self.calls: List[str] = []

    async def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        return [self.value] * self.dimension

    def get_dimension(self) -> int:
        return self.dimension


class FlakyProvider(ConstantProvider):
    """Always fails for texts containing 'error'; otherwise fails the first ``failures`` calls."""

    def __init__(self, failures: int = 0, dimension: int = 384):
        super().__init__(dimension=dimension)
        self.failures = failures

    async def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        if "error" in text:
            raise RuntimeError("Mock embedding error")
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("backend unavailable")
        return [self.value] * self.dimension
