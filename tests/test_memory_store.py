"""Tests for the in-memory document collection."""

from __future__ import annotations

import unittest

from semsearch.core.records import EmbeddingRecord, attach_embedding
from semsearch.core.store.base import SearchIndex, parse_version
from semsearch.core.store.memory_impl import InMemoryDocumentCollection
from semsearch.errors import IndexNotReadyError, SearchIndexError, VectorSearchUnavailable

FIELD = "ai_embedding"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _doc(doc_id: str, vector, **fields):
    document = {"_id": doc_id, **fields}
    return attach_embedding(document, FIELD, EmbeddingRecord(vector=vector, model="test"))


def _index_definition(name: str = "vector_index", path: str = f"{FIELD}.embedding", dims: int = 3) -> dict:
    return {
        "name": name,
        "type": "vectorSearch",
        "definition": {"fields": [{"type": "vector", "path": path, "numDimensions": dims, "similarity": "cosine"}]},
    }


def _vector_stage(index: str = "vector_index", vector=(1.0, 0.0, 0.0), limit: int = 10, **extra) -> dict:
    spec = {
        "index": index,
        "path": f"{FIELD}.embedding",
        "queryVector": list(vector),
        "numCandidates": limit,
        "limit": limit,
    }
    spec.update(extra)
    return {"$vectorSearch": spec}


class InMemoryCollectionTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.collection = InMemoryDocumentCollection(
            "articles",
            [
                _doc("d1", [1.0, 0.0, 0.0], category="db"),
                _doc("d2", [0.9, 0.1, 0.0], category="db"),
                _doc("d3", [0.0, 1.0, 0.0], category="cooking"),
                {"_id": "d4", "category": "db"},
            ],
            clock=self.clock,
        )

    async def test_find_returns_copies(self) -> None:
        found = await self.collection.find({"category": "db"})
        self.assertEqual([doc["_id"] for doc in found], ["d1", "d2", "d4"])
        found[0]["category"] = "mutated"
        again = await self.collection.find({"_id": "d1"})
        self.assertEqual(again[0]["category"], "db")

    async def test_insert_assigns_ids_and_replaces_existing(self) -> None:
        new_id = self.collection.insert_one({"title": "no id"})
        self.assertTrue(new_id)
        self.collection.insert_one({"_id": "d1", "category": "replaced"})
        self.assertEqual(len(self.collection), 5)
        self.assertEqual((await self.collection.find({"_id": "d1"}))[0]["category"], "replaced")

    async def test_unknown_index_matches_nothing(self) -> None:
        rows = await self.collection.aggregate([_vector_stage(index="missing")])
        self.assertEqual(rows, [])

    async def test_vector_search_scores_and_orders(self) -> None:
        await self.collection.create_search_index(_index_definition())
        rows = await self.collection.aggregate(
            [_vector_stage(), {"$addFields": {"score": {"$meta": "vectorSearchScore"}}}]
        )
        self.assertEqual([row["_id"] for row in rows], ["d1", "d2", "d3"])
        self.assertAlmostEqual(rows[0]["score"], 1.0)
        self.assertAlmostEqual(rows[1]["score"], 0.9938837, places=6)

    async def test_vector_search_respects_limit_and_filter(self) -> None:
        await self.collection.create_search_index(_index_definition())
        rows = await self.collection.aggregate([_vector_stage(limit=1, filter={"category": "cooking"})])
        self.assertEqual([row["_id"] for row in rows], ["d3"])

    async def test_building_index_not_queryable_until_ready(self) -> None:
        self.collection.index_build_seconds = 30
        await self.collection.create_search_index(_index_definition())
        indexes = await self.collection.list_search_indexes()
        self.assertEqual(indexes[0].status, "BUILDING")
        with self.assertRaises(IndexNotReadyError):
            await self.collection.aggregate([_vector_stage()])

        self.clock.now += 31
        indexes = await self.collection.list_search_indexes()
        self.assertTrue(indexes[0].queryable)
        rows = await self.collection.aggregate([_vector_stage()])
        self.assertEqual(rows[0]["_id"], "d1")

    async def test_dimension_and_path_mismatch(self) -> None:
        await self.collection.create_search_index(_index_definition())
        with self.assertRaises(SearchIndexError):
            await self.collection.aggregate([_vector_stage(vector=[1.0, 0.0])])
        stage = _vector_stage()
        stage["$vectorSearch"]["path"] = "other.embedding"
        with self.assertRaises(SearchIndexError):
            await self.collection.aggregate([stage])

    async def test_num_candidates_below_limit_rejected(self) -> None:
        stage = _vector_stage()
        stage["$vectorSearch"]["numCandidates"] = 2
        with self.assertRaises(ValueError):
            await self.collection.aggregate([stage])

    async def test_vector_search_must_be_first_stage(self) -> None:
        with self.assertRaises(ValueError):
            await self.collection.aggregate([{"$match": {}}, _vector_stage()])

    async def test_duplicate_index_rejected(self) -> None:
        await self.collection.create_search_index(_index_definition())
        with self.assertRaises(SearchIndexError):
            await self.collection.create_search_index(_index_definition())

    async def test_index_management_can_be_disabled(self) -> None:
        collection = InMemoryDocumentCollection(search_index_management=False)
        self.assertFalse(collection.supports_search_indexes)
        with self.assertRaises(SearchIndexError):
            await collection.list_search_indexes()

    async def test_vector_search_disabled(self) -> None:
        collection = InMemoryDocumentCollection(vector_search_enabled=False)
        with self.assertRaises(VectorSearchUnavailable):
            await collection.aggregate([_vector_stage()])

    async def test_plain_pipeline_without_vector_stage(self) -> None:
        rows = await self.collection.aggregate([{"$match": {"category": "db"}}, {"$sort": {"_id": -1}}, {"$limit": 2}])
        self.assertEqual([row["_id"] for row in rows], ["d4", "d2"])


class DetectVectorSearchTests(unittest.IsolatedAsyncioTestCase):
    async def test_supported_deployment(self) -> None:
        collection = InMemoryDocumentCollection()
        self.assertTrue(await collection.detect_vector_search())
        self.assertEqual(collection.call_counts["aggregate"], 1)

    async def test_old_server_skips_probe_query(self) -> None:
        collection = InMemoryDocumentCollection(server_version="5.0.14")
        self.assertFalse(await collection.detect_vector_search())
        self.assertEqual(collection.call_counts["aggregate"], 0)

    async def test_unsupported_deployment_raises(self) -> None:
        collection = InMemoryDocumentCollection(vector_search_enabled=False)
        with self.assertRaises(VectorSearchUnavailable):
            await collection.detect_vector_search()

    async def test_unreadable_version_still_probes(self) -> None:
        class _NoVersion(InMemoryDocumentCollection):
            async def server_version(self):
                raise ConnectionError("buildInfo not permitted")

        collection = _NoVersion()
        self.assertTrue(await collection.detect_vector_search())
        self.assertEqual(collection.call_counts["aggregate"], 1)


class SearchIndexTests(unittest.TestCase):
    def test_from_definition(self) -> None:
        index = SearchIndex.from_definition(_index_definition(dims=384))
        self.assertEqual(index.name, "vector_index")
        self.assertEqual(index.path, "ai_embedding.embedding")
        self.assertEqual(index.num_dimensions, 384)
        self.assertTrue(index.queryable)

    def test_from_definition_requires_vector_field(self) -> None:
        with self.assertRaises(ValueError):
            SearchIndex.from_definition({"name": "x", "definition": {"fields": []}})

    def test_parse_version(self) -> None:
        self.assertEqual(parse_version("7.0.2-rc1"), (7, 0, 2))
        self.assertLess(parse_version("5.0.14"), (6, 0))
        with self.assertRaises(ValueError):
            parse_version("unknown")


if __name__ == "__main__":
    unittest.main()
