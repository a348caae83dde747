#!/usr/bin/env python3
"""Example: indexed search with automatic brute-force fallback

Runs entirely in process against an in-memory collection, so it needs neither
a vector database nor an embedding model. Three toy "topics" stand in for
real embeddings.
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from semsearch.config import AppConfig, VectorSearchConfig
from semsearch.core.records import EmbeddingRecord, attach_embedding
from semsearch.core.search import SemanticSearchService
from semsearch.core.store.memory_impl import InMemoryDocumentCollection

TOPICS = {
    "database": [1.0, 0.0, 0.0],
    "search": [0.8, 0.6, 0.0],
    "cooking": [0.0, 0.0, 1.0],
}

ARTICLES = [
    ("a1", "Indexing strategies for document databases", "database"),
    ("a2", "Approximate nearest neighbour search explained", "search"),
    ("a3", "Ten quick weeknight pasta recipes", "cooking"),
]


def toy_embedder(text: str) -> EmbeddingRecord:
    lowered = text.lower()
    for topic, vector in TOPICS.items():
        if topic in lowered:
            return EmbeddingRecord(vector=vector, model="toy-topics")
    return EmbeddingRecord(vector=[0.3, 0.3, 0.3], model="toy-topics")


async def demo() -> None:
    config = AppConfig(vector_search=VectorSearchConfig(index_name="article_embeddings"))
    service = SemanticSearchService(config, embedder=toy_embedder)

    collection = InMemoryDocumentCollection("articles")
    for article_id, title, topic in ARTICLES:
        document = {"_id": article_id, "title": title, "category": topic}
        attach_embedding(document, "ai_embedding", EmbeddingRecord(vector=TOPICS[topic], model="toy-topics"))
        collection.insert_one(document)

    supported = await service.probe.supports_indexed_search(collection)
    print(f"Vector search support: {'YES' if supported else 'NO (brute-force fallback)'}")

    print("\n🔍 Query: 'database search'")
    results = await service.search_text(collection, "ai_embedding", "database search", threshold=0.5)
    for result in results:
        print(f"   {result.similarity:.3f}  {result.document['title']}")

    print("\n🔁 Similar to a1 (forced brute force)")
    seed = (await collection.find({"_id": "a1"}))[0]
    similar = await service.find_similar(collection, "ai_embedding", seed, threshold=0.1, strategy="brute-force")
    for result in similar:
        print(f"   {result.similarity:.3f}  {result.document['title']}")


if __name__ == "__main__":
    asyncio.run(demo())
