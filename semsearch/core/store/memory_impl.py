"""In-memory DocumentCollection used for testing or sandboxed environments."""

from __future__ import annotations

import copy
import time
from collections import Counter
from dataclasses import replace
from functools import cmp_to_key
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

import numpy as np

from ...errors import IndexNotReadyError, SearchIndexError, VectorSearchUnavailable
from ..vector_math import cosine_similarity
from .base import Document, DocumentCollection, SearchIndex
from .filters import get_path, matches_filter
from .pipeline import Row, Stage, apply_stages, compare_values


def _score(metric: str, query: np.ndarray, candidate: Sequence[float]) -> float:
    vector = np.asarray(candidate, dtype=float)
    if metric == "dotProduct":
        return float(np.dot(query, vector))
    if metric == "euclidean":
        return 1.0 / (1.0 + float(np.linalg.norm(query - vector)))
    return cosine_similarity(query, vector)


def _candidate_order(left: Tuple[float, Document], right: Tuple[float, Document]) -> int:
    if left[0] != right[0]:
        return -1 if left[0] > right[0] else 1
    return compare_values(left[1].get("_id"), right[1].get("_id"))


class InMemoryDocumentCollection(DocumentCollection):
    """A minimal document collection that keeps data in process memory.

    It understands the same ``$vectorSearch`` stage a managed search server
    does, scoring candidates exactly rather than approximately. Indexes can be
    made to take ``index_build_seconds`` (measured with ``clock``) before they
    become queryable.
    """

    min_vector_search_version = (6, 0)

    def __init__(
        self,
        name: str = "documents",
        documents: Optional[Iterable[Document]] = None,
        *,
        vector_search_enabled: bool = True,
        search_index_management: bool = True,
        server_version: Optional[str] = "7.0.2",
        index_build_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(name)
        self.vector_search_enabled = vector_search_enabled
        self.search_index_management = search_index_management
        self._server_version = server_version
        self.index_build_seconds = index_build_seconds
        self._clock = clock
        self._documents: List[Document] = []
        self._indexes: Dict[str, Tuple[SearchIndex, float]] = {}
        self.call_counts: Counter = Counter()
        if documents:
            self.insert_many(documents)

    # Writes -------------------------------------------------------------
    def insert_many(self, documents: Iterable[Document]) -> List[Any]:
        ids: List[Any] = []
        for document in documents:
            stored = copy.deepcopy(dict(document))
            stored.setdefault("_id", uuid4().hex)
            self._documents = [doc for doc in self._documents if doc["_id"] != stored["_id"]]
            self._documents.append(stored)
            ids.append(stored["_id"])
        return ids

    def insert_one(self, document: Document) -> Any:
        return self.insert_many([document])[0]

    def __len__(self) -> int:
        return len(self._documents)

    # Reads --------------------------------------------------------------
    @property
    def supports_search_indexes(self) -> bool:
        return self.search_index_management

    async def find(self, query: Optional[Dict[str, Any]] = None) -> List[Document]:
        self.call_counts["find"] += 1
        return [copy.deepcopy(doc) for doc in self._documents if matches_filter(doc, query)]

    async def aggregate(self, pipeline: Sequence[Stage]) -> List[Document]:
        self.call_counts["aggregate"] += 1
        stages = list(pipeline)
        for position, stage in enumerate(stages):
            if "$vectorSearch" in stage and position != 0:
                raise ValueError("$vectorSearch must be the first stage of a pipeline")
        if stages and "$vectorSearch" in stages[0]:
            rows = self._vector_search(stages[0]["$vectorSearch"])
            stages = stages[1:]
        else:
            rows = [Row(document=copy.deepcopy(doc)) for doc in self._documents]
        return [row.document for row in apply_stages(rows, stages)]

    def _vector_search(self, spec: Dict[str, Any]) -> List[Row]:
        if not self.vector_search_enabled:
            raise VectorSearchUnavailable("$vectorSearch is not supported by this deployment")
        limit = int(spec.get("limit", 0))
        num_candidates = int(spec.get("numCandidates", limit))
        if num_candidates < limit:
            raise ValueError("numCandidates must be greater than or equal to limit")
        entry = self._indexes.get(spec.get("index", ""))
        if entry is None:
            # unknown index names match nothing rather than failing
            return []
        index = self._current(entry)
        if not index.queryable:
            raise IndexNotReadyError(f"Search index '{index.name}' is not ready for querying")
        path = spec.get("path")
        if path != index.path:
            raise SearchIndexError(f"Path '{path}' is not indexed as a vector by '{index.name}'")
        query = np.asarray(spec.get("queryVector") or [], dtype=float)
        if query.shape[0] != index.num_dimensions:
            raise SearchIndexError(
                f"queryVector has {query.shape[0]} dimensions, index '{index.name}' "
                f"expects {index.num_dimensions}"
            )

        scored: List[Tuple[float, Document]] = []
        for doc in self._documents:
            vector = get_path(doc, path)
            if vector is None or len(vector) != index.num_dimensions:
                continue
            if spec.get("filter") and not matches_filter(doc, spec["filter"]):
                continue
            scored.append((_score(index.similarity, query, vector), doc))
        scored.sort(key=cmp_to_key(_candidate_order))
        selected = scored[:num_candidates][:limit]
        return [
            Row(document=copy.deepcopy(doc), meta={"vectorSearchScore": score})
            for score, doc in selected
        ]

    # Search indexes -----------------------------------------------------
    def _current(self, entry: Tuple[SearchIndex, float]) -> SearchIndex:
        index, ready_at = entry
        status = "READY" if self._clock() >= ready_at else "BUILDING"
        return replace(index, status=status)

    async def list_search_indexes(self) -> List[SearchIndex]:
        self.call_counts["list_search_indexes"] += 1
        if not self.search_index_management:
            raise SearchIndexError("Search index management is not available")
        return [self._current(entry) for entry in self._indexes.values()]

    async def create_search_index(self, definition: Dict[str, Any]) -> str:
        self.call_counts["create_search_index"] += 1
        if not self.search_index_management:
            raise SearchIndexError("Search index management is not available")
        index = SearchIndex.from_definition(definition, status="BUILDING")
        if index.name in self._indexes:
            raise SearchIndexError(f"Search index '{index.name}' already exists")
        self._indexes[index.name] = (index, self._clock() + self.index_build_seconds)
        return index.name

    async def server_version(self) -> Optional[str]:
        return self._server_version


__all__ = ["InMemoryDocumentCollection"]
