"""Similarity search core: routing, execution and result shaping."""

from .capability import CapabilityCache, CapabilityProbe
from .executors import BruteForceSearchExecutor, IndexedSearchExecutor, build_vector_pipeline
from .provisioner import IndexProvisioner, ProvisionOutcome
from .query import SearchQuery, SearchStrategy
from .records import EmbeddingRecord, attach_embedding, get_embedding_record, get_vector
from .results import RankedResult, shape_result
from .router import StrategyRouter
from .search import SearchOutcome, SemanticSearchService, run_with_fallback
from .vector_math import cosine_similarity, similarity_between

__all__ = [
    "BruteForceSearchExecutor",
    "CapabilityCache",
    "CapabilityProbe",
    "EmbeddingRecord",
    "IndexProvisioner",
    "IndexedSearchExecutor",
    "ProvisionOutcome",
    "RankedResult",
    "SearchOutcome",
    "SearchQuery",
    "SearchStrategy",
    "SemanticSearchService",
    "StrategyRouter",
    "attach_embedding",
    "build_vector_pipeline",
    "cosine_similarity",
    "get_embedding_record",
    "get_vector",
    "run_with_fallback",
    "shape_result",
    "similarity_between",
]
