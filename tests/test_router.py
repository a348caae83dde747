"""Tests for strategy routing."""

from __future__ import annotations

import asyncio

import pytest

from semsearch.config import VectorSearchConfig
from semsearch.core.query import SearchQuery
from semsearch.core.router import SearchStrategy, StrategyRouter
from semsearch.core.store.memory_impl import InMemoryDocumentCollection


class _FixedCapability:
    def __init__(self, supported: bool) -> None:
        self.supported = supported
        self.calls = 0

    async def supports_indexed_search(self, collection) -> bool:
        self.calls += 1
        return self.supported


def _choose(capability, *, enabled=True, override=None) -> SearchStrategy:
    router = StrategyRouter(capability)
    query = SearchQuery(query_vector=[1.0, 0.0], strategy_override=override)
    return asyncio.run(
        router.choose_strategy(InMemoryDocumentCollection(), query, VectorSearchConfig(enabled=enabled))
    )


@pytest.mark.parametrize("supported, expected", [(True, SearchStrategy.INDEXED), (False, SearchStrategy.BRUTE_FORCE)])
def test_capability_decides_without_override(supported, expected):
    capability = _FixedCapability(supported)
    assert _choose(capability) is expected
    assert capability.calls == 1


def test_disabled_collection_always_brute_force():
    capability = _FixedCapability(True)
    assert _choose(capability, enabled=False, override="indexed") is SearchStrategy.BRUTE_FORCE
    assert capability.calls == 0


def test_override_beats_capability():
    capability = _FixedCapability(True)
    assert _choose(capability, override="brute-force") is SearchStrategy.BRUTE_FORCE
    assert capability.calls == 0

    unsupported = _FixedCapability(False)
    assert _choose(unsupported, override=True) is SearchStrategy.INDEXED
    assert unsupported.calls == 0
