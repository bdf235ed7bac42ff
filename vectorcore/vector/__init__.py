"""
Vector layer: data model, providers, cache, pipeline and indexes.
"""

# Package initialization for vector module
from .types import Chunk, EmbeddingData, EmbeddingStats, SearchResult, SourceDocument, ValidationReport, make_chunk_id
from .cache import EmbeddingCache
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding
from .distance import cosine_similarity, euclidean_distance
from .index import VectorIndex
from .hnsw import ApproximateIndex, LayerNode
from .pipeline import BatchEmbeddingPipeline
from .metadata import IngestionMetadata, MetadataComparison, MetadataGenerator, ProcessingStats

__all__ = [
    'Chunk',
    'EmbeddingData',
    'EmbeddingStats',
    'SearchResult',
    'SourceDocument',
    'ValidationReport',
    'make_chunk_id',
    'EmbeddingCache',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'cosine_similarity',
    'euclidean_distance',
    'VectorIndex',
    'ApproximateIndex',
    'LayerNode',
    'BatchEmbeddingPipeline',
    'IngestionMetadata',
    'MetadataComparison',
    'MetadataGenerator',
    'ProcessingStats',
]
