"""Chooses between indexed and brute-force execution for one search call."""

from __future__ import annotations

import logging

from ..config import VectorSearchConfig
from ..logging_utils import format_decision
from .capability import CapabilityChecker
from .query import SearchQuery, SearchStrategy
from .store.base import DocumentCollection

_LOGGER = logging.getLogger("semsearch.router")


class StrategyRouter:
    """Decision order: collection disable, then per-call override, then capability."""

    def __init__(self, capability: CapabilityChecker) -> None:
        self.capability = capability

    async def choose_strategy(
        self,
        collection: DocumentCollection,
        query: SearchQuery,
        config: VectorSearchConfig,
    ) -> SearchStrategy:
        if not config.enabled:
            return self._decided(collection, SearchStrategy.BRUTE_FORCE, "disabled")
        if query.strategy_override is not None:
            return self._decided(collection, SearchStrategy.parse(query.strategy_override), "override")
        supported = await self.capability.supports_indexed_search(collection)
        strategy = SearchStrategy.INDEXED if supported else SearchStrategy.BRUTE_FORCE
        return self._decided(collection, strategy, "probe")

    @staticmethod
    def _decided(collection: DocumentCollection, strategy: SearchStrategy, reason: str) -> SearchStrategy:
        _LOGGER.debug(
            format_decision("index", strategy is SearchStrategy.INDEXED, why=reason),
            extra={"collection": collection.name, "strategy": strategy.value},
        )
        return strategy


__all__ = ["SearchStrategy", "StrategyRouter"]
