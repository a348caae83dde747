"""Best-effort creation of the vector search index before indexed queries."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Set, Tuple

from ..config import VectorSearchConfig
from ..logging_utils import LogTag, format_llm_log
from .records import vector_path
from .store.base import DocumentCollection

_LOGGER = logging.getLogger("semsearch.provisioner")


class ProvisionOutcome(str, Enum):
    """What ``ensure_index`` ended up doing."""

    UNSUPPORTED = "unsupported"
    EXISTS = "exists"
    AUTO_CREATE_DISABLED = "auto_create_disabled"
    CREATED = "created"
    FAILED = "failed"


def build_index_definition(field_name: str, dimensions: int, config: VectorSearchConfig) -> dict:
    return {
        "name": config.index_name,
        "type": "vectorSearch",
        "definition": {
            "fields": [
                {
                    "type": "vector",
                    "path": vector_path(field_name),
                    "numDimensions": int(dimensions),
                    "similarity": config.similarity,
                }
            ]
        },
    }


class IndexProvisioner:
    """Ensures ``config.index_name`` exists; never raises.

    An existing index with the right name is reused as-is, even if it was
    built for another path, dimensionality or metric. Creation returns as
    soon as the store accepts the request; the index may still be building.
    """

    def __init__(self) -> None:
        self._ensured: Set[Tuple[str, str, str]] = set()

    async def ensure_index(
        self,
        collection: DocumentCollection,
        field_name: str,
        dimensions: int,
        config: VectorSearchConfig,
    ) -> ProvisionOutcome:
        extra = {"collection": collection.name, "field": field_name, "index_name": config.index_name}
        if not collection.supports_search_indexes:
            _LOGGER.warning("Search index management unavailable; index creation skipped", extra=extra)
            return self._log(ProvisionOutcome.UNSUPPORTED, extra)

        try:
            existing = await collection.list_search_indexes()
            if any(index.name == config.index_name for index in existing):
                return self._log(ProvisionOutcome.EXISTS, extra)

            if not config.auto_create_index:
                _LOGGER.warning(
                    "Vector search index '%s' does not exist and auto-creation is disabled",
                    config.index_name,
                    extra=extra,
                )
                return self._log(ProvisionOutcome.AUTO_CREATE_DISABLED, extra)

            await collection.create_search_index(build_index_definition(field_name, dimensions, config))
        except Exception as exc:  # noqa: BLE001 - brute force remains available
            _LOGGER.error("Failed to create vector search index: %s", exc, extra=extra)
            return self._log(ProvisionOutcome.FAILED, extra)

        _LOGGER.info(
            "Index '%s' for '%s' is being built and may take a while to become queryable",
            config.index_name,
            vector_path(field_name),
            extra=extra,
        )
        return self._log(ProvisionOutcome.CREATED, extra)

    async def ensure_once(
        self,
        collection: DocumentCollection,
        field_name: str,
        dimensions: int,
        config: VectorSearchConfig,
    ) -> ProvisionOutcome | None:
        """Run :meth:`ensure_index` the first time a (handle, field, index) triple is seen."""

        key = (collection.identity, field_name, config.index_name)
        if key in self._ensured:
            return None
        self._ensured.add(key)
        return await self.ensure_index(collection, field_name, dimensions, config)

    @staticmethod
    def _log(outcome: ProvisionOutcome, extra: dict) -> ProvisionOutcome:
        _LOGGER.debug(
            format_llm_log(
                LogTag.INDEX,
                f"{outcome.value} {extra['index_name']}",
                milestone=outcome is ProvisionOutcome.CREATED,
            ),
            extra={**extra, "outcome": outcome.value},
        )
        return outcome


__all__ = ["IndexProvisioner", "ProvisionOutcome", "build_index_definition"]
