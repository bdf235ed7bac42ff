"""
Text-query retrieval over an exact index.
Queries go through the same embedding path as ingested chunks.
"""

from typing import Any, Dict, List, Optional

from .errors import TransientEmbeddingError
from ..vector.index import MEMORY_BACKEND, VectorIndex
from ..vector.pipeline import BatchEmbeddingPipeline
from ..util.logging import logger


async def semantic_search(query: str, index: VectorIndex, pipeline: BatchEmbeddingPipeline,
                          top_k: int = 3, filter: Optional[Dict[str, Any]] = None,
                          backend: str = MEMORY_BACKEND, **storage_options) -> List[Dict[str, Any]]:
    """
    Embed a text query and return ranked chunk hits ready for rendering.

    Args:
        query: The search query string
        index: Exact index to search
        pipeline: Pipeline whose provider and cache embed the query
        top_k: Maximum number of results to return
        filter: Optional equality filter over record fields
        backend: "memory" or "sqlite"
        **storage_options: store_name / collection_name for the sqlite backend

    Returns:
        List of dicts with 'type', 'id', 'title', 'url', 'content', 'score', 'explanation'

    Raises:
        TransientEmbeddingError: the query could not be embedded
    """
    query_embedding = await pipeline.embed_text(query)
    if query_embedding is None:
        raise TransientEmbeddingError(f"Could not embed query: {query[:50]}")

    hits = await index.search(query_embedding, top_k=top_k, filter=filter,
                              backend=backend, **storage_options)

    results = []
    for hit in hits:
        obj = hit.object
        results.append({
            "type": "semantic",
            "id": obj.get("id"),
            "title": obj.get("title"),
            "url": obj.get("url"),
            "content": obj.get("content"),
            "score": hit.similarity,
            "explanation": f"Matched via cosine similarity at {hit.similarity:.2f}",
        })

    logger.log_vector_operation("semantic_search", details={
        "query": query[:50],
        "backend": backend,
        "results": len(results),
    })
    return results
