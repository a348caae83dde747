"""Exception hierarchy for the semantic search layer."""

from __future__ import annotations


class SemanticSearchError(Exception):
    """Base class for errors surfaced by semsearch."""


class InvalidSearchParameters(SemanticSearchError, ValueError):
    """Raised when a caller supplies an unusable search option."""


class MissingEmbeddingError(SemanticSearchError):
    """Raised when a seed document carries no vector to search with."""


class SearchExecutionError(SemanticSearchError):
    """Raised when a search fails and no further fallback exists."""


class VectorSearchUnavailable(SemanticSearchError):
    """Raised by a store that cannot execute an indexed vector stage."""


class IndexNotReadyError(VectorSearchUnavailable):
    """Raised when a search index exists but is still building."""


class SearchIndexError(SemanticSearchError):
    """Raised when a search index cannot be listed or created."""


__all__ = [
    "SemanticSearchError",
    "InvalidSearchParameters",
    "MissingEmbeddingError",
    "SearchExecutionError",
    "VectorSearchUnavailable",
    "IndexNotReadyError",
    "SearchIndexError",
]
