"""
Ingestion metadata tests: versioning, file hashes, validation and comparison.
"""

import json
from datetime import datetime, timezone

import pytest

from vectorcore.core.errors import MetadataError
from vectorcore.vector.metadata import IngestionMetadata, MetadataGenerator
from vectorcore.vector.types import EmbeddingData, EmbeddingStats, SourceDocument

from helpers import make_chunk


def document(source_file="docs/guide.njk", content="Guide body", chunk_count=2, day=1):
    return SourceDocument(
        source_file=source_file,
        title="Guide",
        content=content,
        last_modified=datetime(2024, 1, day, tzinfo=timezone.utc),
        chunks=[make_chunk(i, source_file=source_file) for i in range(chunk_count)],
    )


def embed(documents, failed=0):
    chunks = [c for d in documents for c in d.chunks]
    embeddings = [[0.1] * 4 for _ in chunks]
    for i in range(failed):
        embeddings[i] = [0.0] * 4
    return EmbeddingData(chunks=chunks, embeddings=embeddings)


@pytest.fixture
def generator():
    return MetadataGenerator(version_prefix="1.0.0")


def test_generate_metadata_counts_and_version(generator):
    documents = [document(), document("docs/other.md", "Other body", chunk_count=3)]

    metadata = generator.generate_metadata(documents, embed(documents))

    assert metadata.total_documents == 2
    assert metadata.total_chunks == 5
    prefix, content_hash = metadata.version.rsplit("-", 1)
    assert prefix == "1.0.0"
    assert len(content_hash) == 8
    assert set(metadata.file_hashes) == {"docs/guide.njk", "docs/other.md"}
    assert metadata.processing_stats is None


def test_version_depends_only_on_content(generator):
    documents = [document()]

    first = generator.generate_metadata(documents, embed(documents))
    second = generator.generate_metadata(documents, embed(documents))
    changed = generator.generate_metadata([document(content="New body")], embed(documents))

    assert first.version == second.version
    assert first.version != changed.version


def test_timestamp_hash_when_content_hash_disabled():
    generator = MetadataGenerator(include_content_hash=False, include_file_hashes=False)
    documents = [document()]

    metadata = generator.generate_metadata(documents, embed(documents))

    assert metadata.version.startswith("1.0.0-")
    assert metadata.file_hashes == {}


def test_file_hash_tracks_modification_time(generator):
    original = generator.generate_file_hashes([document(day=1)])
    touched = generator.generate_file_hashes([document(day=2)])

    assert len(original["docs/guide.njk"]) == 64
    assert original != touched


def test_validate_matching_metadata(generator):
    documents = [document()]
    data = embed(documents)
    metadata = generator.generate_metadata(documents, data)

    is_valid, issues = generator.validate_metadata(metadata, documents, data)

    assert is_valid
    assert issues == []


def test_validate_detects_mismatches(generator):
    documents = [document()]
    data = embed(documents)
    metadata = generator.generate_metadata(documents, data)
    metadata.total_chunks = 9
    metadata.file_hashes["docs/ghost.njk"] = "abc"

    is_valid, issues = generator.validate_metadata(metadata, [document(content="edited")], data)

    assert not is_valid
    assert "Chunk count mismatch: metadata says 9, actual is 2" in issues
    assert "Hash mismatch for file docs/guide.njk" in issues
    assert "Extra hash for non-existent file docs/ghost.njk" in issues


def test_compare_identical_runs(generator):
    documents = [document()]
    metadata = generator.generate_metadata(documents, embed(documents))

    comparison = generator.compare_metadata(metadata, metadata)

    assert not comparison.has_changes
    assert comparison.is_compatible


def test_compare_detects_file_changes(generator):
    old_docs = [document(), document("docs/removed.njk")]
    new_docs = [document(content="Edited"), document("docs/added.njk")]
    old = generator.generate_metadata(old_docs, embed(old_docs))
    new = generator.generate_metadata(new_docs, embed(new_docs))

    comparison = generator.compare_metadata(old, new)

    assert comparison.has_changes
    assert not comparison.is_compatible
    assert "Added files: docs/added.njk" in comparison.changes
    assert "Removed files: docs/removed.njk" in comparison.changes
    assert "Modified files: docs/guide.njk" in comparison.changes
    assert any(change.startswith("Version changed:") for change in comparison.changes)


def test_compare_count_change_is_incompatible(generator):
    old = IngestionMetadata(version="1.0.0-aaaaaaaa", last_generated="t", total_chunks=2, total_documents=1)
    new = IngestionMetadata(version="1.0.0-aaaaaaaa", last_generated="t", total_chunks=3, total_documents=1)

    comparison = generator.compare_metadata(old, new)

    assert comparison.changes == ["Chunk count changed: 2 -> 3"]
    assert not comparison.is_compatible


def test_processing_stats_from_embedding_stats(generator):
    documents = [document(chunk_count=4)]
    data = embed(documents)
    stats = EmbeddingStats(total_chunks=4, successful_embeddings=3, failed_embeddings=1,
                           processing_time=40.0, average_time_per_chunk=10.0)

    processing = generator.generate_processing_stats(documents, data, 80.0, stats)

    assert processing.average_time_per_document == 80.0
    assert processing.average_time_per_chunk == 20.0
    assert processing.embedding_stats.failed_embeddings == 1
    assert processing.embedding_stats.average_time_per_embedding == 10.0


def test_processing_stats_counts_sentinels(generator):
    documents = [document(chunk_count=4)]

    processing = generator.generate_processing_stats(documents, embed(documents, failed=1), 40.0)

    assert processing.embedding_stats.successful_embeddings == 3
    assert processing.embedding_stats.failed_embeddings == 1


def test_serialize_round_trip(generator):
    documents = [document()]
    data = embed(documents)
    metadata = generator.generate_metadata(
        documents, data, generator.generate_processing_stats(documents, data, 12.0)
    )

    text = generator.serialize_metadata(metadata)
    restored = generator.deserialize_metadata(text)

    assert restored == metadata
    assert json.loads(text)["total_chunks"] == 2


def test_deserialize_invalid_metadata(generator):
    with pytest.raises(MetadataError):
        generator.deserialize_metadata('{"version": "1.0.0"}')


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
