"""
Batch embedding pipeline.

Drives an embedding provider over many chunks: sequential batches, cache
lookups, linear-backoff retries, sentinel zero-vectors for chunks that keep
failing, and an explicit quality report instead of exceptions.
"""

import asyncio
import math
import time
from typing import Any, Dict, List, Optional, Sequence

from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_incrementing

from .cache import EmbeddingCache
from .embeddings import IEmbeddingProvider
from .index import VectorIndex
from .types import Chunk, EmbeddingData, EmbeddingStats, SearchResult, SourceDocument, ValidationReport
from ..core import config
from ..core.errors import ConfigurationError, TransientEmbeddingError
from ..util.logging import logger


def is_sentinel(embedding: Sequence[float]) -> bool:
    """True for the all-zero vector substituted after a failed chunk."""
    return all(v == 0 for v in embedding)


class BatchEmbeddingPipeline:
    """Generates embeddings for chunks in throttled, sequential batches."""

    def __init__(self, provider: IEmbeddingProvider, batch_size: int = None,
                 max_retries: int = None, retry_delay: float = None,
                 dimension: int = None, cache: Optional[EmbeddingCache] = None,
                 throttle_base: float = None, throttle_step: float = None,
                 throttle_max: float = None):
        """
        Initialize the pipeline.

        Args:
            provider: Embedding model adapter
            batch_size: Chunks per batch, defaults to config BATCH_SIZE
            max_retries: Attempts per chunk before falling back, defaults to config MAX_RETRIES
            retry_delay: Base backoff in seconds; attempt n waits n * retry_delay
            dimension: Expected vector length, defaults to the provider's dimension
            cache: Optional pre-built cache; otherwise one is built on first use
            throttle_base: Inter-batch delay base in seconds
            throttle_step: Inter-batch delay added per batch number
            throttle_max: Inter-batch delay ceiling
        """
        self.provider = provider
        self.batch_size = batch_size if batch_size is not None else config.BATCH_SIZE
        self.max_retries = max_retries if max_retries is not None else config.MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else config.RETRY_DELAY_SEC
        self.dimension = dimension if dimension is not None else provider.get_dimension()
        self.throttle_base = throttle_base if throttle_base is not None else config.THROTTLE_BASE_SEC
        self.throttle_step = throttle_step if throttle_step is not None else config.THROTTLE_STEP_SEC
        self.throttle_max = throttle_max if throttle_max is not None else config.THROTTLE_MAX_SEC
        self._cache = cache

        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be >= 1")
        if self.max_retries < 1:
            raise ConfigurationError("max_retries must be >= 1")
        if self.retry_delay < 0:
            raise ConfigurationError("retry_delay must be >= 0")
        if self.dimension < 1:
            raise ConfigurationError("dimension must be >= 1")

    @property
    def cache(self) -> EmbeddingCache:
        """Lazy-built embedding cache; bounds are read from config once."""
        if self._cache is None:
            self._cache = EmbeddingCache(config.CACHE_MAX_ENTRIES, config.CACHE_MAX_AGE_SEC)
        return self._cache

    async def _sleep(self, seconds: float) -> None:
        # Backoff and throttle pauses both go through here
        await asyncio.sleep(seconds)

    def throttle_delay(self, batch_number: int) -> float:
        """Pause after a batch, growing with the batch number up to a cap."""
        return min(self.throttle_base + batch_number * self.throttle_step, self.throttle_max)

    async def generate_embeddings(self, chunks: List[Chunk]) -> EmbeddingData:
        """Embed every chunk; the result is aligned 1:1 with the input."""
        start_time = time.perf_counter()
        chunks = list(chunks)
        total_batches = math.ceil(len(chunks) / self.batch_size)
        logger.log_operation("embedding.generate", "started", {
            "chunks": len(chunks),
            "batch_size": self.batch_size,
        })

        embeddings: List[List[float]] = []
        successful = 0
        failed = 0

        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start:start + self.batch_size]
            batch_number = start // self.batch_size + 1
            logger.log_batch_progress(batch_number, total_batches, len(batch))

            for chunk in batch:
                embedding = await self.embed_with_retry(chunk)
                embeddings.append(embedding)
                if is_sentinel(embedding):
                    failed += 1
                else:
                    successful += 1

            await self._sleep(self.throttle_delay(batch_number))

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.log_operation("embedding.generate", "success", {
            "embeddings": len(embeddings),
            "successful": successful,
            "failed": failed,
        }, duration_ms=elapsed_ms)

        return EmbeddingData(chunks=chunks, embeddings=embeddings)

    async def generate_embeddings_for_documents(self, documents: List[SourceDocument]) -> EmbeddingData:
        """Flatten the chunks of every document and embed them."""
        chunks = [chunk for document in documents for chunk in document.chunks]
        return await self.generate_embeddings(chunks)

    async def _embed_once(self, text: str) -> List[float]:
        try:
            embedding = await self.provider.embed_text(text)
        except Exception as e:
            raise TransientEmbeddingError(f"Embedding call failed: {e}") from e

        if embedding is None or len(embedding) == 0:
            raise TransientEmbeddingError("Empty embedding returned")
        return [float(v) for v in embedding]

    async def embed_text(self, text: str, label: str = "query") -> Optional[List[float]]:
        """Embed text through the cache with retries; None when every attempt failed."""
        cached = self.cache.get(text)
        if cached is not None:
            return cached

        def before_sleep(retry_state):
            logger.log_embedding_retry(label, retry_state.attempt_number, self.max_retries,
                                       retry_state.outcome.exception())

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientEmbeddingError),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_incrementing(start=self.retry_delay, increment=self.retry_delay),
            before_sleep=before_sleep,
            sleep=self._sleep,
        )
        try:
            embedding = await retrying(self._embed_once, text)
        except RetryError as e:
            logger.log_embedding_fallback(label, self.max_retries, e.last_attempt.exception())
            return None

        self.cache.set(text, embedding)
        return embedding

    async def embed_with_retry(self, chunk: Chunk) -> List[float]:
        """Embed one chunk, substituting the sentinel vector on final failure."""
        embedding = await self.embed_text(chunk.content, label=chunk.id)
        if embedding is None:
            return [0.0] * self.dimension
        return embedding

    def validate_embeddings(self, data: EmbeddingData) -> ValidationReport:
        """Check counts, dimensions, empty vectors and non-finite values."""
        issues = []
        embeddings = data.embeddings
        chunks = data.chunks

        if len(embeddings) != len(chunks):
            issues.append(f"Mismatch: {len(chunks)} chunks but {len(embeddings)} embeddings")

        invalid_dimensions = [e for e in embeddings if len(e) != self.dimension]
        if invalid_dimensions:
            issues.append(f"{len(invalid_dimensions)} embeddings have incorrect dimensions")

        empty_embeddings = [e for e in embeddings if is_sentinel(e)]
        if empty_embeddings:
            issues.append(f"{len(empty_embeddings)} embeddings are empty (all zeros)")

        invalid_values = [e for e in embeddings if any(not math.isfinite(v) for v in e)]
        if invalid_values:
            issues.append(f"{len(invalid_values)} embeddings contain invalid values")

        if issues:
            logger.log_operation("embedding.validate", "warning", {"issues": issues})

        return ValidationReport(
            is_valid=not issues,
            issues=issues,
            stats=self.get_stats(data, 0),
        )

    def get_stats(self, data: EmbeddingData, elapsed_ms: float) -> EmbeddingStats:
        failed = sum(1 for e in data.embeddings if is_sentinel(e))
        total = len(data.chunks)
        return EmbeddingStats(
            total_chunks=total,
            successful_embeddings=len(data.embeddings) - failed,
            failed_embeddings=failed,
            processing_time=elapsed_ms,
            average_time_per_chunk=elapsed_ms / total if total else 0.0,
        )

    def create_index(self, data: EmbeddingData) -> VectorIndex:
        """Build an exact index from chunks and their embeddings."""
        index = VectorIndex(
            chunk.to_record(embedding)
            for chunk, embedding in zip(data.chunks, data.embeddings)
        )
        logger.log_vector_operation("create_index", details={"records": index.size()})
        return index

    async def test_search(self, index: VectorIndex, query: str, top_k: int = 3) -> List[SearchResult]:
        """Smoke-test an index with a text query; failures are logged, not raised."""
        query_embedding = await self.embed_text(query)
        if query_embedding is None:
            logger.error(f"Test search failed: could not embed query '{query}'")
            return []

        try:
            results = await index.search(query_embedding, top_k=top_k)
        except ValueError as e:
            logger.error(f"Test search failed for '{query}': {e}")
            return []

        logger.log_vector_operation("test_search", details={
            "query": query,
            "results": [summarize_result(rank, r) for rank, r in enumerate(results, start=1)],
        })
        return results


def summarize_result(rank: int, result: SearchResult) -> Dict[str, Any]:
    obj = result.object
    content = obj.get("content") or ""
    return {
        "rank": rank,
        "id": obj.get("id"),
        "title": obj.get("title"),
        "similarity": result.similarity,
        "content": content[:100] + "..." if len(content) > 100 else content,
    }
