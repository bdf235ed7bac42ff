"""
Embedding providers. The model itself is an external capability; these
classes adapt it to a single async text -> vector call.
"""

from abc import ABC, abstractmethod
import asyncio
import hashlib

import numpy as np
from sentence_transformers import SentenceTransformer


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    async def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    The SHA-256 digest of the text seeds a random generator, so the same
    text always maps to the same vector without any model download.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    async def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using hash function."""
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        seed = int.from_bytes(digest[:8], "big")
        rng = np.random.default_rng(seed)

        # Map to [-1, 1] for cosine similarity
        return rng.uniform(-1.0, 1.0, self.dimension).tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Defaults to gte-small (384 dimensions) with mean pooling and no
    normalization. Output values are rounded to ``precision`` decimals so
    stored vectors are stable across runs.
    """

    def __init__(self, model_name: str = "thenlper/gte-small", precision: int = 7):
        self.model_name = model_name
        self.precision = precision
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def _encode(self, text: str) -> list[float]:
        embedding = self.model.encode(text, convert_to_tensor=False, normalize_embeddings=False)
        return [round(float(v), self.precision) for v in embedding]

    async def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        # encode() blocks; keep the event loop responsive
        return await asyncio.to_thread(self._encode, text)

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension
