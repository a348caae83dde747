"""Abstract document collection interface and shared dataclasses."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .pipeline import Stage

Document = Dict[str, Any]

PROBE_INDEX_NAME = "capability_probe_index"
PROBE_FIELD_PATH = "capability_probe_field"

_LOGGER = logging.getLogger("semsearch.store")


@dataclass
class SearchIndex:
    """A named vector index as reported by a store."""

    name: str
    path: str
    num_dimensions: int
    similarity: str = "cosine"
    status: str = "READY"
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def queryable(self) -> bool:
        return self.status.upper() == "READY"

    @classmethod
    def from_definition(cls, definition: Dict[str, Any], status: str = "READY") -> "SearchIndex":
        """Build from a ``{"name", "definition": {"fields": [...]}}`` request."""

        fields = (definition.get("definition") or {}).get("fields") or []
        vector_fields = [entry for entry in fields if entry.get("type") == "vector"]
        if not definition.get("name") or not vector_fields:
            raise ValueError("Search index definition needs a name and one vector field")
        vector_field = vector_fields[0]
        return cls(
            name=str(definition["name"]),
            path=str(vector_field["path"]),
            num_dimensions=int(vector_field["numDimensions"]),
            similarity=str(vector_field.get("similarity", "cosine")),
            status=status,
        )


def parse_version(version: str) -> Tuple[int, ...]:
    """Parse ``"7.0.2-rc1"`` into ``(7, 0, 2)``."""

    parts = re.findall(r"\d+", str(version).split("-")[0])
    if not parts:
        raise ValueError(f"Unparseable version string: {version!r}")
    return tuple(int(part) for part in parts)


class DocumentCollection(ABC):
    """Backend-agnostic handle to one collection of documents.

    Documents are plain dicts keyed by ``_id``. Implementations must support a
    filtered ``find`` and an ``aggregate`` whose first stage may be a
    ``$vectorSearch``; search index management is optional and advertised via
    :attr:`supports_search_indexes`.
    """

    #: Stores reporting a lower version cannot run indexed vector search.
    min_vector_search_version: Optional[Tuple[int, ...]] = None

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def identity(self) -> str:
        """Key for per-handle caches; unique per handle instance."""

        return f"{type(self).__name__}:{self._name}:{id(self):x}"

    @property
    def supports_search_indexes(self) -> bool:
        """Whether search indexes can be listed and created on this handle."""

        return False

    @abstractmethod
    async def find(self, query: Optional[Dict[str, Any]] = None) -> List[Document]:
        """Return every document matching ``query``."""

    @abstractmethod
    async def aggregate(self, pipeline: Sequence[Stage]) -> List[Document]:
        """Execute a staged pipeline and return the resulting documents."""

    async def list_search_indexes(self) -> List[SearchIndex]:
        raise NotImplementedError(f"{type(self).__name__} does not manage search indexes")

    async def create_search_index(self, definition: Dict[str, Any]) -> str:
        raise NotImplementedError(f"{type(self).__name__} does not manage search indexes")

    async def server_version(self) -> Optional[str]:
        """Version string of the backing server, if it reports one."""

        return None

    async def detect_vector_search(self) -> bool:
        """Check whether an indexed ``$vectorSearch`` stage executes here.

        Raises whatever the throwaway query raises; callers decide how to
        treat failures.
        """

        if self.min_vector_search_version is not None:
            try:
                version = await self.server_version()
                if version is not None and parse_version(version) < self.min_vector_search_version:
                    _LOGGER.debug("Server version %s too old for vector search", version)
                    return False
            except Exception as exc:  # noqa: BLE001 - version lookup is advisory
                _LOGGER.debug("Could not read server version, probing anyway: %s", exc)

        await self.aggregate(
            [
                {
                    "$vectorSearch": {
                        "index": PROBE_INDEX_NAME,
                        "path": PROBE_FIELD_PATH,
                        "queryVector": [0.1],
                        "numCandidates": 1,
                        "limit": 1,
                    }
                },
                {"$limit": 0},
            ]
        )
        return True


__all__ = [
    "Document",
    "DocumentCollection",
    "PROBE_FIELD_PATH",
    "PROBE_INDEX_NAME",
    "SearchIndex",
    "parse_version",
]
