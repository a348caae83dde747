"""Indexed and brute-force similarity search executors.

Both executors return results ordered by descending similarity with ties
broken by ascending document ``_id`` so the two paths agree on order.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from functools import cmp_to_key
from typing import Any, Dict, List, Optional

from ..config import VectorSearchConfig
from ..logging_utils import LogTag, format_llm_log
from .provisioner import IndexProvisioner
from .query import SearchQuery
from .records import get_vector, vector_path
from .results import RankedResult, shape_result
from .store.base import DocumentCollection
from .store.pipeline import Stage, compare_values
from .vector_math import cosine_similarity

SCORE_FIELD = "similarity"

_LOGGER = logging.getLogger("semsearch.executors")


def build_vector_pipeline(field_name: str, query: SearchQuery, index_name: str) -> List[Stage]:
    """Stages: nearest candidates, score, threshold, extra filter, sort, limit."""

    pool = max(int(query.candidate_pool_size or query.limit * 10), query.limit)
    pipeline: List[Stage] = [
        {
            "$vectorSearch": {
                "index": index_name,
                "path": vector_path(field_name),
                "queryVector": list(query.query_vector),
                "numCandidates": pool,
                "limit": pool,
            }
        },
        {"$addFields": {SCORE_FIELD: {"$meta": "vectorSearchScore"}}},
    ]
    if query.threshold > 0:
        pipeline.append({"$match": {SCORE_FIELD: {"$gte": query.threshold}}})
    if query.extra_filter:
        pipeline.append({"$match": dict(query.extra_filter)})
    pipeline.append({"$sort": {SCORE_FIELD: -1, "_id": 1}})
    pipeline.append({"$limit": query.limit})
    return pipeline


def _rank_order(left: RankedResult, right: RankedResult) -> int:
    if left.similarity != right.similarity:
        return -1 if left.similarity > right.similarity else 1
    return compare_values(left.document.get("_id"), right.document.get("_id"))


def _log_done(strategy: str, collection: DocumentCollection, field_name: str, count: int, started: float) -> None:
    _LOGGER.debug(
        format_llm_log(LogTag.EXECUTE, strategy),
        extra={
            "collection": collection.name,
            "field": field_name,
            "result_count": count,
            "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
        },
    )


class IndexedSearchExecutor:
    """Runs the ranking as one server-side pipeline.

    Errors are raised to the caller; falling back is not this class's job.
    """

    def __init__(self, provisioner: Optional[IndexProvisioner] = None) -> None:
        self.provisioner = provisioner or IndexProvisioner()

    async def run(
        self,
        collection: DocumentCollection,
        field_name: str,
        query: SearchQuery,
        config: Optional[VectorSearchConfig] = None,
    ) -> List[RankedResult]:
        config = config or VectorSearchConfig()
        started = time.perf_counter()
        index_name = query.index_name or config.index_name
        if index_name != config.index_name:
            config = replace(config, index_name=index_name)
        await self.provisioner.ensure_once(collection, field_name, len(query.query_vector), config)

        documents = await collection.aggregate(build_vector_pipeline(field_name, query, index_name))
        results = []
        for document in documents:
            similarity = document.pop(SCORE_FIELD, None)
            results.append(shape_result(document, similarity or 0.0, field_name))
        _log_done("indexed", collection, field_name, len(results), started)
        return results


class BruteForceSearchExecutor:
    """Loads every candidate with a vector and ranks them in process."""

    async def run(
        self,
        collection: DocumentCollection,
        field_name: str,
        query: SearchQuery,
        config: Optional[VectorSearchConfig] = None,
    ) -> List[RankedResult]:
        started = time.perf_counter()
        search_filter: Dict[str, Any] = dict(query.extra_filter)
        path = vector_path(field_name)
        if path in search_filter:
            search_filter = {"$and": [search_filter, {path: {"$exists": True}}]}
        else:
            search_filter[path] = {"$exists": True}
        documents = await collection.find(search_filter)

        results: List[RankedResult] = []
        for document in documents:
            vector = get_vector(document, field_name)
            if vector is None:
                continue
            similarity = cosine_similarity(query.query_vector, vector)
            if similarity >= query.threshold:
                results.append(shape_result(document, similarity, field_name))

        results.sort(key=cmp_to_key(_rank_order))
        results = results[: query.limit]
        _log_done("brute-force", collection, field_name, len(results), started)
        return results


__all__ = ["BruteForceSearchExecutor", "IndexedSearchExecutor", "build_vector_pipeline"]
