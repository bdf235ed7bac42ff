"""
Ingestion metadata: corpus version, per-source hashes and counts used to
decide whether a corpus must be re-ingested.
"""

import hashlib
import json
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ValidationError

from .types import EmbeddingData, EmbeddingStats, SourceDocument
from .pipeline import is_sentinel
from ..core.errors import MetadataError


class EmbeddingRunStats(BaseModel):
    successful_embeddings: int
    failed_embeddings: int
    average_time_per_embedding: float


class ProcessingStats(BaseModel):
    total_processing_time: float
    average_time_per_document: float
    average_time_per_chunk: float
    embedding_stats: Optional[EmbeddingRunStats] = None


class IngestionMetadata(BaseModel):
    version: str
    last_generated: str
    total_chunks: int
    total_documents: int
    file_hashes: Dict[str, str] = {}
    processing_stats: Optional[ProcessingStats] = None


class MetadataComparison(BaseModel):
    has_changes: bool
    changes: List[str]
    is_compatible: bool


class MetadataGenerator:
    """Builds, validates and compares ingestion metadata snapshots."""

    def __init__(self, include_file_hashes: bool = True, include_content_hash: bool = True,
                 include_processing_stats: bool = True, version_prefix: str = "1.0.0"):
        self.include_file_hashes = include_file_hashes
        self.include_content_hash = include_content_hash
        self.include_processing_stats = include_processing_stats
        self.version_prefix = version_prefix

    def generate_metadata(self, documents: List[SourceDocument], data: EmbeddingData,
                          processing_stats: Optional[ProcessingStats] = None) -> IngestionMetadata:
        """Create a metadata snapshot for one generation run."""
        file_hashes = self.generate_file_hashes(documents) if self.include_file_hashes else {}
        content_hash = (self.generate_content_hash(documents) if self.include_content_hash
                        else self.generate_timestamp_hash())

        metadata = IngestionMetadata(
            version=f"{self.version_prefix}-{content_hash}",
            last_generated=datetime.now(timezone.utc).isoformat(),
            total_chunks=len(data.chunks),
            total_documents=len(documents),
            file_hashes=file_hashes,
        )
        if self.include_processing_stats and processing_stats is not None:
            metadata.processing_stats = processing_stats
        return metadata

    @staticmethod
    def generate_file_hashes(documents: List[SourceDocument]) -> Dict[str, str]:
        """SHA-256 of each source's content and modification time."""
        file_hashes = {}
        for document in documents:
            hasher = hashlib.sha256()
            hasher.update(document.content.encode("utf-8"))
            hasher.update(document.last_modified.isoformat().encode("utf-8"))
            file_hashes[document.source_file] = hasher.hexdigest()
        return file_hashes

    @staticmethod
    def generate_content_hash(documents: List[SourceDocument]) -> str:
        all_content = "\n".join(f"{doc.source_file}:{doc.content}" for doc in documents)
        return hashlib.sha256(all_content.encode("utf-8")).hexdigest()[:8]

    @staticmethod
    def generate_timestamp_hash() -> str:
        return hashlib.sha256(str(time.time_ns()).encode("utf-8")).hexdigest()[:8]

    def validate_metadata(self, metadata: IngestionMetadata, documents: List[SourceDocument],
                          data: EmbeddingData) -> tuple:
        """Check metadata against the documents and embeddings it describes.

        Returns:
            (is_valid, issues)
        """
        issues = []

        if not metadata.version:
            issues.append("Missing version field")
        if not metadata.last_generated:
            issues.append("Missing last_generated field")

        if metadata.total_chunks != len(data.chunks):
            issues.append(
                f"Chunk count mismatch: metadata says {metadata.total_chunks}, actual is {len(data.chunks)}"
            )
        if metadata.total_documents != len(documents):
            issues.append(
                f"Document count mismatch: metadata says {metadata.total_documents}, actual is {len(documents)}"
            )

        if metadata.file_hashes:
            expected = self.generate_file_hashes(documents)
            for file, expected_hash in expected.items():
                if metadata.file_hashes.get(file) != expected_hash:
                    issues.append(f"Hash mismatch for file {file}")
            for file in metadata.file_hashes:
                if file not in expected:
                    issues.append(f"Extra hash for non-existent file {file}")

        return not issues, issues

    @staticmethod
    def compare_metadata(old: IngestionMetadata, new: IngestionMetadata) -> MetadataComparison:
        """Report changes between two runs; count or file changes need full re-ingestion."""
        changes = []
        is_compatible = True

        if old.version != new.version:
            changes.append(f"Version changed: {old.version} -> {new.version}")

        if old.total_documents != new.total_documents:
            changes.append(f"Document count changed: {old.total_documents} -> {new.total_documents}")
            is_compatible = False

        if old.total_chunks != new.total_chunks:
            changes.append(f"Chunk count changed: {old.total_chunks} -> {new.total_chunks}")
            is_compatible = False

        if old.file_hashes and new.file_hashes:
            added = [f for f in new.file_hashes if f not in old.file_hashes]
            removed = [f for f in old.file_hashes if f not in new.file_hashes]
            modified = [f for f in old.file_hashes
                        if f in new.file_hashes and old.file_hashes[f] != new.file_hashes[f]]

            if added:
                changes.append(f"Added files: {', '.join(added)}")
            if removed:
                changes.append(f"Removed files: {', '.join(removed)}")
            if modified:
                changes.append(f"Modified files: {', '.join(modified)}")
            if added or removed or modified:
                is_compatible = False

        return MetadataComparison(has_changes=bool(changes), changes=changes, is_compatible=is_compatible)

    @staticmethod
    def generate_processing_stats(documents: List[SourceDocument], data: EmbeddingData,
                                  total_processing_time: float,
                                  embedding_stats: Optional[EmbeddingStats] = None) -> ProcessingStats:
        total_documents = len(documents)
        total_chunks = len(data.chunks)
        stats = ProcessingStats(
            total_processing_time=total_processing_time,
            average_time_per_document=total_processing_time / total_documents if total_documents else 0.0,
            average_time_per_chunk=total_processing_time / total_chunks if total_chunks else 0.0,
        )

        if embedding_stats is not None:
            stats.embedding_stats = EmbeddingRunStats(
                successful_embeddings=embedding_stats.successful_embeddings,
                failed_embeddings=embedding_stats.failed_embeddings,
                average_time_per_embedding=embedding_stats.average_time_per_chunk,
            )
        elif data.embeddings:
            failed = sum(1 for e in data.embeddings if is_sentinel(e))
            stats.embedding_stats = EmbeddingRunStats(
                successful_embeddings=len(data.embeddings) - failed,
                failed_embeddings=failed,
                average_time_per_embedding=total_processing_time / len(data.embeddings),
            )
        return stats

    @staticmethod
    def serialize_metadata(metadata: IngestionMetadata) -> str:
        return json.dumps(metadata.model_dump(exclude_none=True), indent=2)

    @staticmethod
    def deserialize_metadata(text: str) -> IngestionMetadata:
        try:
            return IngestionMetadata.model_validate_json(text)
        except ValidationError as e:
            raise MetadataError(f"Failed to parse metadata JSON: {e}") from e
