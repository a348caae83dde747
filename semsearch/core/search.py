"""Semantic search orchestration: route, execute, fall back."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from ..config import AppConfig, CONFIG, VectorSearchConfig
from ..errors import InvalidSearchParameters, MissingEmbeddingError, SearchExecutionError
from ..logging_utils import LogTag, format_llm_log
from .capability import CapabilityCache, CapabilityProbe
from .executors import BruteForceSearchExecutor, IndexedSearchExecutor
from .provisioner import IndexProvisioner
from .query import Filter, SearchQuery, SearchStrategy
from .records import EmbeddingRecord, get_vector
from .results import RankedResult
from .router import StrategyRouter
from .store.base import DocumentCollection
from .vector_math import similarity_between

T = TypeVar("T")

EmbeddingLike = Union[EmbeddingRecord, Sequence[float]]
Embedder = Callable[[str], Union[EmbeddingLike, Awaitable[EmbeddingLike]]]

_LOGGER = logging.getLogger("semsearch.search")


async def run_with_fallback(
    primary: Callable[[], Awaitable[T]],
    fallback: Callable[[], Awaitable[T]],
    *,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Tuple[T, Optional[Exception]]:
    """Await ``primary``; on any error report it and await ``fallback`` instead.

    Returns the value together with the error that triggered the fallback (or
    ``None``). Errors raised by ``fallback`` propagate.
    """

    try:
        return await primary(), None
    except Exception as exc:  # noqa: BLE001 - every primary failure has a fallback
        if on_error is not None:
            on_error(exc)
        return await fallback(), exc


@dataclass
class SearchOutcome:
    """Results of one search call plus how they were produced."""

    results: List[RankedResult]
    strategy: SearchStrategy
    fallback_error: Optional[Exception] = None

    @property
    def fell_back(self) -> bool:
        return self.fallback_error is not None


async def _default_embedder(text: str) -> EmbeddingRecord:
    # sentence-transformers is heavy; load it only when text search is used
    from ..embeddings import generate_embedding

    return await asyncio.to_thread(generate_embedding, text)


class SemanticSearchService:
    """Entry point for similarity search over a document collection.

    Indexed execution is attempted when the router picks it; any failure on
    that path is logged and answered by brute force in the same call. Only a
    brute-force failure reaches the caller, as :class:`SearchExecutionError`.
    """

    def __init__(
        self,
        config: AppConfig = CONFIG,
        *,
        probe: Optional[CapabilityProbe] = None,
        provisioner: Optional[IndexProvisioner] = None,
        embedder: Optional[Embedder] = None,
    ) -> None:
        self.config = config
        self.probe = probe or CapabilityProbe(
            CapabilityCache(), timeout=config.vector_search.probe_timeout
        )
        self.provisioner = provisioner or IndexProvisioner()
        self.router = StrategyRouter(self.probe)
        self.indexed = IndexedSearchExecutor(self.provisioner)
        self.brute_force = BruteForceSearchExecutor()
        self.embedder: Embedder = embedder or _default_embedder

    # Core ---------------------------------------------------------------
    async def execute(
        self,
        collection: DocumentCollection,
        field_name: str,
        query: SearchQuery,
        config: Optional[VectorSearchConfig] = None,
    ) -> SearchOutcome:
        config = config or self.config.vector_search
        timeout = query.timeout if query.timeout is not None else self.config.search.timeout
        extra = {"collection": collection.name, "field": field_name}

        async def run_brute_force() -> List[RankedResult]:
            try:
                return await asyncio.wait_for(
                    self.brute_force.run(collection, field_name, query, config), timeout
                )
            except Exception as exc:  # noqa: BLE001 - re-raised with context
                reason = str(exc) or type(exc).__name__
                raise SearchExecutionError(f"Semantic search failed: {reason}") from exc

        strategy = await self.router.choose_strategy(collection, query, config)
        _LOGGER.info(
            format_llm_log(LogTag.ROUTE, strategy.value, {"limit": query.limit, "thr": query.threshold}),
            extra={**extra, "strategy": strategy.value},
        )
        if strategy is not SearchStrategy.INDEXED:
            return SearchOutcome(results=await run_brute_force(), strategy=strategy)

        def report(exc: Exception) -> None:
            _LOGGER.warning(
                format_llm_log(LogTag.FALLBACK, "indexed search failed", {"error": type(exc).__name__}),
                extra={**extra, "strategy": SearchStrategy.BRUTE_FORCE.value},
                exc_info=_LOGGER.isEnabledFor(logging.DEBUG),
            )

        results, error = await run_with_fallback(
            lambda: asyncio.wait_for(self.indexed.run(collection, field_name, query, config), timeout),
            run_brute_force,
            on_error=report,
        )
        return SearchOutcome(
            results=results,
            strategy=SearchStrategy.BRUTE_FORCE if error else SearchStrategy.INDEXED,
            fallback_error=error,
        )

    async def semantic_search(
        self,
        collection: DocumentCollection,
        field_name: str,
        query: SearchQuery,
        config: Optional[VectorSearchConfig] = None,
    ) -> List[RankedResult]:
        outcome = await self.execute(collection, field_name, query, config)
        return outcome.results

    # Caller-facing helpers ---------------------------------------------
    def build_query(
        self,
        vector: Sequence[float],
        *,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
        extra_filter: Optional[Filter] = None,
        candidate_pool_size: Optional[int] = None,
        index_name: Optional[str] = None,
        strategy: Optional[Union[SearchStrategy, str, bool]] = None,
        timeout: Optional[float] = None,
    ) -> SearchQuery:
        """Fill unset options from the configured search defaults."""

        defaults = self.config.search
        limit = defaults.limit if limit is None else limit
        if candidate_pool_size is None and isinstance(limit, int) and not isinstance(limit, bool):
            candidate_pool_size = limit * defaults.candidate_multiplier
        return SearchQuery(
            query_vector=vector,
            limit=limit,
            threshold=defaults.threshold if threshold is None else threshold,
            extra_filter=extra_filter,
            candidate_pool_size=candidate_pool_size,
            index_name=index_name,
            strategy_override=strategy,
            timeout=timeout,
        )

    async def embed_query(self, text: str) -> List[float]:
        if not text or not isinstance(text, str) or not text.strip():
            raise InvalidSearchParameters("Query string is required")
        embedded = self.embedder(text)
        if inspect.isawaitable(embedded):
            embedded = await embedded
        if isinstance(embedded, EmbeddingRecord):
            return list(embedded.vector)
        return [float(value) for value in embedded]

    async def search_text(
        self,
        collection: DocumentCollection,
        field_name: str,
        text: str,
        *,
        config: Optional[VectorSearchConfig] = None,
        **options: Any,
    ) -> List[RankedResult]:
        """Embed ``text`` and return the documents most similar to it."""

        vector = await self.embed_query(text)
        return await self.semantic_search(collection, field_name, self.build_query(vector, **options), config)

    async def find_similar(
        self,
        collection: DocumentCollection,
        field_name: str,
        document: Optional[Mapping[str, Any]],
        *,
        config: Optional[VectorSearchConfig] = None,
        **options: Any,
    ) -> List[RankedResult]:
        """Rank other documents by similarity to ``document``'s stored vector."""

        if not document:
            raise MissingEmbeddingError("Reference document is required")
        vector = get_vector(document, field_name)
        if vector is None:
            raise MissingEmbeddingError("Document has no embedding")

        options["extra_filter"] = exclude_document(options.get("extra_filter"), document.get("_id"))
        query = self.build_query([float(value) for value in vector], **options)
        return await self.semantic_search(collection, field_name, query, config)

    @staticmethod
    def calculate_similarity(doc_a: Mapping[str, Any], doc_b: Mapping[str, Any], field_name: str) -> float:
        return similarity_between(doc_a, doc_b, field_name)


def exclude_document(extra_filter: Optional[Filter], document_id: Any) -> Filter:
    """Add ``_id != document_id`` to a filter without clobbering an ``_id`` clause."""

    merged: Dict[str, Any] = dict(extra_filter or {})
    if document_id is None:
        return merged
    exclusion = {"$ne": document_id}
    if "_id" in merged:
        return {"$and": [merged, {"_id": exclusion}]}
    merged["_id"] = exclusion
    return merged


__all__ = [
    "Embedder",
    "SearchOutcome",
    "SemanticSearchService",
    "exclude_document",
    "run_with_fallback",
]
