#!/usr/bin/env python3
"""
Index Build Utility
Embeds pre-chunked documents, validates the result, builds the exact and
approximate indexes and writes embeddings, metadata and graph snapshots.

Input is a JSON list of documents:
    [{"source_file": ..., "title": ..., "content": ..., "last_modified": ...,
      "chunks": [{"id": ..., "content": ..., ...}, ...]}, ...]
"""

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path

from vectorcore.core import config
from vectorcore.core.errors import VectorCoreError
from vectorcore.vector import ApproximateIndex, BatchEmbeddingPipeline, MetadataGenerator, SourceDocument


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Build vector indexes from chunked documents")
    parser.add_argument("--chunks", required=True, help="JSON file with chunked documents")
    parser.add_argument("--output", default="./output", help="Output directory")
    parser.add_argument("--batch-size", type=int, default=config.BATCH_SIZE)
    parser.add_argument("--persist", action="store_true", help="Checkpoint the index to SQLite")
    parser.add_argument("--store-name", default=config.VECTOR_STORE_NAME)
    parser.add_argument("--collection-name", default=config.VECTOR_COLLECTION_NAME)
    parser.add_argument("--test-query", action="append", default=[],
                        help="Run a smoke-test search (repeatable)")
    parser.add_argument("--previous-metadata", help="Metadata file from an earlier run to compare against")
    return parser.parse_args(argv)


def load_documents(path: Path):
    raw = json.loads(path.read_text(encoding="utf-8"))
    return [SourceDocument(**doc) for doc in raw]


async def build(args) -> int:
    start_time = time.perf_counter()

    issues = config.validate_config()
    if issues:
        print(f"ERROR: Invalid configuration: {issues}")
        return 1

    chunks_path = Path(args.chunks)
    if not chunks_path.exists():
        print(f"ERROR: Chunk file not found: {chunks_path}")
        return 1

    documents = load_documents(chunks_path)
    if not documents:
        print("ERROR: No documents were provided")
        return 1
    print(f"✓ Loaded {len(documents)} documents")

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    pipeline = BatchEmbeddingPipeline(config.get_embedding_provider(), batch_size=args.batch_size)
    embedding_data = await pipeline.generate_embeddings_for_documents(documents)
    elapsed_ms = (time.perf_counter() - start_time) * 1000

    validation = pipeline.validate_embeddings(embedding_data)
    if not validation.is_valid:
        print(f"WARNING: Embedding validation issues: {validation.issues}")

    index = pipeline.create_index(embedding_data)
    hnsw = ApproximateIndex(config.HNSW_LAYERS, config.HNSW_ML, config.HNSW_EFC)
    for embedding in embedding_data.embeddings:
        hnsw.insert(embedding)
    print(f"✓ Built indexes with {index.size()} records")

    for query in args.test_query:
        results = await pipeline.test_search(index, query)
        print(f"  '{query}': {[r.object.get('id') for r in results]}")

    generator = MetadataGenerator(version_prefix=config.VERSION)
    stats = pipeline.get_stats(embedding_data, elapsed_ms)
    processing_stats = generator.generate_processing_stats(
        documents, embedding_data, (time.perf_counter() - start_time) * 1000, stats
    )
    metadata = generator.generate_metadata(documents, embedding_data, processing_stats)

    is_valid, metadata_issues = generator.validate_metadata(metadata, documents, embedding_data)
    if not is_valid:
        print(f"WARNING: Metadata validation issues: {metadata_issues}")

    if args.previous_metadata:
        previous = generator.deserialize_metadata(Path(args.previous_metadata).read_text(encoding="utf-8"))
        comparison = generator.compare_metadata(previous, metadata)
        for change in comparison.changes:
            print(f"  change: {change}")
        if not comparison.is_compatible:
            print("WARNING: Corpus changed incompatibly; previous snapshots must be regenerated")

    (output_dir / "embeddings.json").write_text(json.dumps(embedding_data.to_dict(), indent=2), encoding="utf-8")
    (output_dir / "metadata.json").write_text(generator.serialize_metadata(metadata), encoding="utf-8")
    (output_dir / "hnsw.msgpack").write_bytes(hnsw.to_binary())
    print(f"✓ Files saved to {output_dir}")

    if args.persist:
        await index.save(store_name=args.store_name, collection_name=args.collection_name)
        print(f"✓ Checkpointed index to store '{args.store_name}' collection '{args.collection_name}'")

    print("Generation Summary:")
    print(f"  • Documents processed: {metadata.total_documents}")
    print(f"  • Chunks created: {metadata.total_chunks}")
    print(f"  • Successful embeddings: {stats.successful_embeddings}")
    print(f"  • Failed embeddings: {stats.failed_embeddings}")
    print(f"  • Version: {metadata.version}")
    return 0


def main(argv=None):
    """Build indexes from a chunk file."""
    args = parse_args(argv)
    try:
        exit_code = asyncio.run(build(args))
    except VectorCoreError as e:
        print(f"ERROR: {e}")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
