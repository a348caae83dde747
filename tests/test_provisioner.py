"""Tests for vector index provisioning."""

from __future__ import annotations

import unittest

from semsearch.config import VectorSearchConfig
from semsearch.core.provisioner import IndexProvisioner, ProvisionOutcome, build_index_definition
from semsearch.core.store.memory_impl import InMemoryDocumentCollection


class _RejectingCollection(InMemoryDocumentCollection):
    async def create_search_index(self, definition):
        self.call_counts["create_search_index"] += 1
        raise PermissionError("not authorized on admin to execute command")


class BuildDefinitionTests(unittest.TestCase):
    def test_definition_targets_vector_sub_path(self) -> None:
        config = VectorSearchConfig(index_name="article_vectors", similarity="dotProduct")
        definition = build_index_definition("ai_embedding", 384, config)
        self.assertEqual(definition["name"], "article_vectors")
        self.assertEqual(definition["type"], "vectorSearch")
        self.assertEqual(
            definition["definition"]["fields"],
            [{"type": "vector", "path": "ai_embedding.embedding", "numDimensions": 384, "similarity": "dotProduct"}],
        )

    def test_config_rejects_unknown_metric(self) -> None:
        with self.assertRaises(ValueError):
            VectorSearchConfig(similarity="manhattan")
        with self.assertRaises(ValueError):
            VectorSearchConfig(index_name="")


class IndexProvisionerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.provisioner = IndexProvisioner()
        self.config = VectorSearchConfig(index_name="vector_index", auto_create_index=True)

    async def test_creates_missing_index_once(self) -> None:
        collection = InMemoryDocumentCollection()
        first = await self.provisioner.ensure_index(collection, "ai_embedding", 3, self.config)
        second = await self.provisioner.ensure_index(collection, "ai_embedding", 3, self.config)
        self.assertIs(first, ProvisionOutcome.CREATED)
        self.assertIs(second, ProvisionOutcome.EXISTS)
        self.assertEqual(collection.call_counts["create_search_index"], 1)
        indexes = await collection.list_search_indexes()
        self.assertEqual([(index.name, index.path, index.num_dimensions) for index in indexes], [
            ("vector_index", "ai_embedding.embedding", 3)
        ])

    async def test_created_index_logged_as_milestone(self) -> None:
        collection = InMemoryDocumentCollection()
        with self.assertLogs("semsearch.provisioner", level="DEBUG") as logs:
            await self.provisioner.ensure_index(collection, "ai_embedding", 3, self.config)
            await self.provisioner.ensure_index(collection, "ai_embedding", 3, self.config)
        tagged = [line for line in logs.output if "[S:IDX]" in line]
        self.assertTrue(any("[S:IDX] ✓ created vector_index" in line for line in tagged))
        self.assertTrue(any("[S:IDX] exists vector_index" in line for line in tagged))

    async def test_ensure_once_tracks_index_names_separately(self) -> None:
        collection = InMemoryDocumentCollection()
        other = VectorSearchConfig(index_name="articles_idx")
        await self.provisioner.ensure_once(collection, "ai_embedding", 3, self.config)
        outcome = await self.provisioner.ensure_once(collection, "ai_embedding", 3, other)
        self.assertIs(outcome, ProvisionOutcome.CREATED)
        self.assertEqual(collection.call_counts["create_search_index"], 2)

    async def test_auto_create_disabled(self) -> None:
        collection = InMemoryDocumentCollection()
        config = VectorSearchConfig(auto_create_index=False)
        outcome = await self.provisioner.ensure_index(collection, "ai_embedding", 3, config)
        self.assertIs(outcome, ProvisionOutcome.AUTO_CREATE_DISABLED)
        self.assertEqual(collection.call_counts["create_search_index"], 0)

    async def test_management_unsupported_is_a_no_op(self) -> None:
        collection = InMemoryDocumentCollection(search_index_management=False)
        outcome = await self.provisioner.ensure_index(collection, "ai_embedding", 3, self.config)
        self.assertIs(outcome, ProvisionOutcome.UNSUPPORTED)
        self.assertEqual(collection.call_counts["list_search_indexes"], 0)

    async def test_creation_failure_is_swallowed(self) -> None:
        collection = _RejectingCollection()
        with self.assertLogs("semsearch.provisioner", level="ERROR"):
            outcome = await self.provisioner.ensure_index(collection, "ai_embedding", 3, self.config)
        self.assertIs(outcome, ProvisionOutcome.FAILED)

    async def test_existing_index_is_not_verified(self) -> None:
        collection = InMemoryDocumentCollection()
        await self.provisioner.ensure_index(collection, "ai_embedding", 3, self.config)
        outcome = await self.provisioner.ensure_index(collection, "ai_embedding", 768, self.config)
        self.assertIs(outcome, ProvisionOutcome.EXISTS)

    async def test_ensure_once_per_handle_and_field(self) -> None:
        collection = InMemoryDocumentCollection()
        self.assertIs(
            await self.provisioner.ensure_once(collection, "ai_embedding", 3, self.config),
            ProvisionOutcome.CREATED,
        )
        self.assertIsNone(await self.provisioner.ensure_once(collection, "ai_embedding", 3, self.config))
        self.assertEqual(collection.call_counts["list_search_indexes"], 1)


if __name__ == "__main__":
    unittest.main()
