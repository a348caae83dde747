"""Command-line access to the configured semsearch collection."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from semsearch.config import CONFIG
from semsearch.core.records import EmbeddingRecord, attach_embedding
from semsearch.core.results import RankedResult
from semsearch.core.store.chromadb_impl import ChromaDocumentCollection
from semsearch.core.store.memory_impl import InMemoryDocumentCollection
from semsearch.embeddings import embed_texts
from semsearch.errors import SemanticSearchError
from semsearch.log_setup import setup_logging
from semsearch.runtime import SearchRuntime, create_runtime


def load_documents(path: Path) -> List[Dict[str, Any]]:
    """Read one JSON document per line; each needs ``_id`` and ``text``."""

    documents = []
    with path.open(encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            document = json.loads(line)
            if "_id" not in document or not str(document.get("text", "")).strip():
                raise ValueError(f"{path}:{line_no}: documents need '_id' and non-empty 'text'")
            documents.append(document)
    return documents


async def ingest(runtime: SearchRuntime, path: Path) -> int:
    documents = load_documents(path)
    vectors = embed_texts([doc["text"] for doc in documents])
    for document, vector in zip(documents, vectors):
        attach_embedding(document, runtime.field, EmbeddingRecord(vector=vector, model=CONFIG.embed_model))
    collection = runtime.collection
    if isinstance(collection, ChromaDocumentCollection):
        await collection.upsert(documents)
    elif isinstance(collection, InMemoryDocumentCollection):
        collection.insert_many(documents)
    else:
        raise SemanticSearchError(f"Cannot ingest into {type(collection).__name__}")
    return len(documents)


def _print_results(results: List[RankedResult]) -> None:
    if not results:
        print("No documents cleared the similarity threshold.")
        return
    for rank, result in enumerate(results, start=1):
        text = str(result.document.get("text", ""))
        snippet = text[:100] + ("…" if len(text) > 100 else "")
        print(f"{rank:>2}. {result.similarity:.4f}  {result.document.get('_id')}  {snippet}")


async def run(args: argparse.Namespace) -> int:
    runtime = create_runtime(CONFIG)
    service = runtime.search_service
    options: Dict[str, Any] = {"limit": args.limit, "threshold": args.threshold}
    if args.filter:
        options["extra_filter"] = json.loads(args.filter)
    if args.strategy:
        options["strategy"] = args.strategy

    if args.command == "ingest":
        count = await ingest(runtime, Path(args.path))
        print(f"Ingested {count} document(s) into '{runtime.collection.name}'.")
        return 0
    if args.command == "query":
        results = await service.search_text(runtime.collection, runtime.field, args.text, **options)
    else:
        matches = await runtime.collection.find({"_id": args.id})
        if not matches:
            print(f"No document with _id {args.id!r}.", file=sys.stderr)
            return 1
        results = await service.find_similar(runtime.collection, runtime.field, matches[0], **options)
    _print_results(results)
    return 0


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Semantic search over the configured collection")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest_parser = subparsers.add_parser("ingest", help="Embed and store documents from a JSONL file")
    ingest_parser.add_argument("path", help="JSONL file with one {'_id', 'text', ...} object per line")

    query_parser = subparsers.add_parser("query", help="Search by natural-language text")
    query_parser.add_argument("text")

    similar_parser = subparsers.add_parser("similar", help="Find documents similar to a stored one")
    similar_parser.add_argument("id", help="_id of the seed document")

    for sub in (query_parser, similar_parser, ingest_parser):
        sub.add_argument("--limit", type=int, default=CONFIG.search.limit)
        sub.add_argument("--threshold", type=float, default=CONFIG.search.threshold)
        sub.add_argument("--filter", help="Extra JSON filter, e.g. '{\"lang\": \"en\"}'")
        sub.add_argument("--strategy", choices=["indexed", "brute-force"], help="Force an execution path")

    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.debug else "INFO")
    logger = logging.getLogger("semsearch.cli")
    try:
        return asyncio.run(run(args))
    except SemanticSearchError as exc:
        logger.error("Search failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
