"""
Runtime configuration for the vector search core.
Values come from environment variables; every setting has a working default.
"""

import os
from pathlib import Path

# Storage configuration
DATA_DIR = os.getenv("DATA_DIR", "./data")
VECTOR_STORE_NAME = os.getenv("VECTOR_STORE_NAME", "clientVectorDB")
VECTOR_COLLECTION_NAME = os.getenv("VECTOR_COLLECTION_NAME", "ClientEmbeddingStore")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Embedding model configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence_transformers
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "thenlper/gte-small")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))
EMBED_PRECISION = int(os.getenv("EMBED_PRECISION", "7"))

# Batch pipeline configuration
BATCH_SIZE = int(os.getenv("BATCH_SIZE", "5"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
RETRY_DELAY_SEC = float(os.getenv("RETRY_DELAY_SEC", "1.0"))
THROTTLE_BASE_SEC = float(os.getenv("THROTTLE_BASE_SEC", "0.1"))
THROTTLE_STEP_SEC = float(os.getenv("THROTTLE_STEP_SEC", "0.01"))
THROTTLE_MAX_SEC = float(os.getenv("THROTTLE_MAX_SEC", "0.5"))

# Embedding cache bounds (frozen once a cache is built)
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "10000"))
CACHE_MAX_AGE_SEC = float(os.getenv("CACHE_MAX_AGE_SEC", "600"))

# Approximate index configuration
HNSW_LAYERS = int(os.getenv("HNSW_LAYERS", "5"))
HNSW_ML = float(os.getenv("HNSW_ML", "0.62"))
HNSW_EFC = int(os.getenv("HNSW_EFC", "10"))

DEFAULT_TOP_K = int(os.getenv("DEFAULT_TOP_K", "3"))

# Version string
VERSION = "1.0.0"


def get_embedding_provider():
    """Get configured embedding provider implementation."""
    if EMBED_PROVIDER == "sentence_transformers":
        from vectorcore.vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME, precision=EMBED_PRECISION)
    # hash is the default and the fallback for unknown providers
    from vectorcore.vector.embeddings import DeterministicHashEmbedding
    return DeterministicHashEmbedding(dimension=EMBED_DIM)


def get_vector_store(store_name: str = None, collection_name: str = None):
    """Get the durable collection store for the given (or configured) names."""
    from vectorcore.core.db import SqliteCollectionStore
    return SqliteCollectionStore(
        store_name or VECTOR_STORE_NAME,
        collection_name or VECTOR_COLLECTION_NAME,
        data_dir=get_data_dir(),
    )


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def get_data_dir() -> Path:
    """Get the configured data directory."""
    return Path(DATA_DIR)


def ensure_data_directory(data_dir=None) -> Path:
    """Ensure the data directory exists."""
    path = Path(data_dir) if data_dir is not None else get_data_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if EMBED_PROVIDER not in ["hash", "sentence_transformers"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if EMBED_DIM < 1:
        issues.append("EMBED_DIM must be >= 1")

    if BATCH_SIZE < 1:
        issues.append("BATCH_SIZE must be >= 1")

    if MAX_RETRIES < 1:
        issues.append("MAX_RETRIES must be >= 1")

    if RETRY_DELAY_SEC < 0:
        issues.append("RETRY_DELAY_SEC must be >= 0")

    if THROTTLE_MAX_SEC < THROTTLE_BASE_SEC:
        issues.append("THROTTLE_MAX_SEC must be >= THROTTLE_BASE_SEC")

    if CACHE_MAX_ENTRIES < 1:
        issues.append("CACHE_MAX_ENTRIES must be >= 1")

    if CACHE_MAX_AGE_SEC <= 0:
        issues.append("CACHE_MAX_AGE_SEC must be > 0")

    if HNSW_LAYERS < 1:
        issues.append("HNSW_LAYERS must be >= 1")

    if HNSW_ML <= 0:
        issues.append("HNSW_ML must be > 0")

    if HNSW_EFC < 1:
        issues.append("HNSW_EFC must be >= 1")

    return issues
