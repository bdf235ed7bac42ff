"""
Data model shared by the ingestion pipeline and the indexes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator

Vector = List[float]

TEMPLATE_SUFFIXES = (".njk", ".md", ".html")


def make_chunk_id(source_file: str, chunk_index: int) -> str:
    """Derive a stable chunk id from its source path and ordinal position."""
    base = source_file
    for suffix in TEMPLATE_SUFFIXES:
        if base.endswith(suffix):
            base = base[:-len(suffix)]
            break
    return f"{base}-{chunk_index}"


class Chunk(BaseModel):
    """A bounded unit of source text with stable identity."""

    id: str
    content: str
    title: str
    url: str
    source_file: str
    chunk_index: int
    section: Optional[str] = None

    @field_validator('id')
    @classmethod
    def id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('id cannot be empty')
        return v

    @field_validator('chunk_index')
    @classmethod
    def chunk_index_must_be_positive(cls, v):
        if v < 0:
            raise ValueError('chunk_index must be >= 0')
        return v

    def to_record(self, embedding: Vector) -> Dict[str, Any]:
        """Build an index object from this chunk and its embedding."""
        record = self.model_dump()
        record['embedding'] = [float(v) for v in embedding]
        return record


class SourceDocument(BaseModel):
    """A chunked source document, as produced by the external chunker."""

    source_file: str
    title: str
    content: str
    last_modified: datetime
    chunks: List[Chunk] = []


@dataclass
class EmbeddingData:
    """Chunks and their embeddings, aligned 1:1."""

    chunks: List[Chunk] = field(default_factory=list)
    embeddings: List[Vector] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chunks": [chunk.model_dump() for chunk in self.chunks],
            "embeddings": [list(e) for e in self.embeddings],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EmbeddingData':
        return cls(
            chunks=[Chunk(**c) for c in data.get("chunks", [])],
            embeddings=[list(e) for e in data.get("embeddings", [])],
        )


@dataclass
class EmbeddingStats:
    """Outcome counts and timing of an embedding run."""

    total_chunks: int
    successful_embeddings: int
    failed_embeddings: int
    processing_time: float
    """Elapsed wall time in milliseconds"""

    average_time_per_chunk: float


@dataclass
class ValidationReport:
    """Quality report for a batch of embeddings."""

    is_valid: bool
    issues: List[str]
    stats: EmbeddingStats


@dataclass
class SearchResult:
    """Represents an exact-search hit."""

    similarity: float
    """Cosine similarity rounded to 6 decimals"""

    object: Dict[str, Any]
    """The stored index object"""
