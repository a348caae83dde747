"""Factory helpers for constructing DocumentCollection instances."""

from __future__ import annotations

import logging
from typing import Optional

from ...config import AppConfig, CONFIG
from .base import DocumentCollection
from .chromadb_impl import ChromaDocumentCollection
from .memory_impl import InMemoryDocumentCollection

_LOGGER = logging.getLogger("semsearch.store")


def create_collection(config: AppConfig = CONFIG, name: Optional[str] = None) -> DocumentCollection:
    """Instantiate a DocumentCollection for the configured backend."""

    store = config.store
    collection_name = name or store.collection
    backend = store.backend.lower()
    if backend in {"memory", "stub", "inmemory"}:
        return InMemoryDocumentCollection(collection_name)
    if backend == "chroma":
        try:
            store.path.mkdir(parents=True, exist_ok=True)
            return ChromaDocumentCollection.persistent(
                store.path,
                collection_name,
                vector_field=store.embedding_field,
                space=store.space,
            )
        except Exception as exc:  # noqa: BLE001 - fallback to in-memory store for tests
            _LOGGER.warning(
                "Failed to initialize Chroma backend, falling back to in-memory store: %s", exc
            )
            return InMemoryDocumentCollection(collection_name)
    raise ValueError(f"Unsupported store backend: {store.backend}")


__all__ = ["create_collection"]
