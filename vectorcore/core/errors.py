"""
Error taxonomy for the vector search core.
Each failure class maps to one propagation policy (retried, aborted or fatal).
"""


class VectorCoreError(Exception):
    """Base exception for all vector core failures."""
    pass


class ConfigurationError(VectorCoreError, ValueError):
    """Bad constructor parameters or an unsupported backend."""
    pass


class SchemaError(VectorCoreError, ValueError):
    """Object shape does not match the index schema."""
    pass


class DimensionError(VectorCoreError, ValueError):
    """Vector lengths differ where they must match."""
    pass


class NotFoundError(VectorCoreError, LookupError):
    """No record matched the given filter."""
    pass


class TransientEmbeddingError(VectorCoreError):
    """A single embedding call failed; the caller may retry."""
    pass


class PersistenceError(VectorCoreError):
    """Durable store could not be opened or a transaction failed."""
    pass


class MetadataError(VectorCoreError, ValueError):
    """Ingestion metadata could not be parsed."""
    pass
