"""Application runtime bootstrap helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import AppConfig, CONFIG
from .core.capability import CapabilityCache, CapabilityProbe
from .core.provisioner import IndexProvisioner
from .core.search import Embedder, SemanticSearchService
from .core.store.base import DocumentCollection
from .core.store.factory import create_collection


@dataclass
class SearchRuntime:
    """Bundle of shared services for one configured collection."""

    config: AppConfig
    collection: DocumentCollection
    capability_cache: CapabilityCache
    provisioner: IndexProvisioner
    search_service: SemanticSearchService

    @property
    def field(self) -> str:
        return self.config.store.embedding_field


def create_runtime(
    config: AppConfig = CONFIG,
    *,
    collection: Optional[DocumentCollection] = None,
    embedder: Optional[Embedder] = None,
) -> SearchRuntime:
    """Instantiate shared services once and wire dependencies explicitly.

    Dependency order:
    1. Document collection
    2. Capability cache and probe, index provisioner
    3. Search service (needs probe, provisioner, embedder)
    """
    collection = collection or create_collection(config)

    capability_cache = CapabilityCache()
    probe = CapabilityProbe(capability_cache, timeout=config.vector_search.probe_timeout)
    provisioner = IndexProvisioner()

    search_service = SemanticSearchService(
        config,
        probe=probe,
        provisioner=provisioner,
        embedder=embedder,
    )

    return SearchRuntime(
        config=config,
        collection=collection,
        capability_cache=capability_cache,
        provisioner=provisioner,
        search_service=search_service,
    )


__all__ = ["SearchRuntime", "create_runtime"]
