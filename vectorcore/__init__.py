"""
Embedded vector similarity search: exact and approximate indexes, durable
collections and a resilient batch embedding pipeline.
"""

from .core.config import VERSION

__version__ = VERSION
