"""Per-handle detection of indexed vector search support."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from ..logging_utils import LogTag, format_llm_log
from .store.base import DocumentCollection

_LOGGER = logging.getLogger("semsearch.capability")


class CapabilityChecker(Protocol):
    """Anything that can say whether a handle supports indexed search."""

    async def supports_indexed_search(self, collection: DocumentCollection) -> bool:
        ...


class CapabilityCache:
    """Map from collection identity to a capability flag.

    Entries never expire unless ``ttl`` is given, in which case ``clock``
    decides their age.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[bool, float]] = {}

    def get(self, key: str) -> Optional[bool]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self.ttl is not None and self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: bool) -> None:
        self._entries[key] = (bool(value), self._clock())

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


class CapabilityProbe:
    """Memoizing wrapper around ``DocumentCollection.detect_vector_search``.

    The first call for a handle runs the store's probe; later calls are served
    from the cache. A failed or timed-out probe counts as "unsupported" and is
    cached like any other answer.
    """

    def __init__(self, cache: Optional[CapabilityCache] = None, timeout: Optional[float] = None) -> None:
        self.cache = cache if cache is not None else CapabilityCache()
        self.timeout = timeout
        self.probe_count = 0

    async def supports_indexed_search(self, collection: DocumentCollection) -> bool:
        key = collection.identity
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        self.probe_count += 1
        try:
            supported = bool(await asyncio.wait_for(collection.detect_vector_search(), self.timeout))
        except Exception as exc:  # noqa: BLE001 - any probe failure means "unsupported"
            _LOGGER.debug(
                format_llm_log(LogTag.PROBE, "failed", {"error": type(exc).__name__}),
                extra={"collection": collection.name},
            )
            supported = False

        self.cache.set(key, supported)
        _LOGGER.info(
            format_llm_log(LogTag.PROBE, "indexed" if supported else "brute-force only"),
            extra={"collection": collection.name},
        )
        return supported


__all__ = ["CapabilityCache", "CapabilityChecker", "CapabilityProbe"]
