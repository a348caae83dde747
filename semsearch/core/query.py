"""Per-call search parameters."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from ..errors import InvalidSearchParameters

Filter = Dict[str, Any]


class SearchStrategy(str, Enum):
    """Execution path for a single search call."""

    INDEXED = "indexed"
    BRUTE_FORCE = "brute-force"

    @classmethod
    def parse(cls, value: Union["SearchStrategy", str, bool]) -> "SearchStrategy":
        # bools mirror the older use_vector_search=True/False switch
        if isinstance(value, bool):
            return cls.INDEXED if value else cls.BRUTE_FORCE
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        if normalized in {"brute", "bruteforce", "in-memory", "memory"}:
            normalized = cls.BRUTE_FORCE.value
        if normalized in {"index", "vector", "vector-search"}:
            normalized = cls.INDEXED.value
        try:
            return cls(normalized)
        except ValueError as exc:
            raise InvalidSearchParameters(
                f"Unknown search strategy {value!r}; expected 'indexed' or 'brute-force'"
            ) from exc


@dataclass
class SearchQuery:
    """A single similarity query.

    ``candidate_pool_size`` only affects the indexed path: it is the number of
    nearest candidates fetched before threshold, filter and limit are applied.
    """

    query_vector: Sequence[float]
    limit: int = 10
    threshold: float = 0.7
    extra_filter: Filter = field(default_factory=dict)
    candidate_pool_size: Optional[int] = None
    index_name: Optional[str] = None
    strategy_override: Optional[Union[SearchStrategy, str, bool]] = None
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        self.query_vector = self._validate_vector(self.query_vector)
        if isinstance(self.limit, bool) or not isinstance(self.limit, numbers.Integral) or self.limit < 1:
            raise InvalidSearchParameters(f"limit must be a positive integer, got {self.limit!r}")
        self.limit = int(self.limit)
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, numbers.Real):
            raise InvalidSearchParameters(f"threshold must be a number, got {self.threshold!r}")
        if not 0.0 <= float(self.threshold) <= 1.0:
            raise InvalidSearchParameters(f"threshold must be within [0, 1], got {self.threshold!r}")
        self.threshold = float(self.threshold)
        if self.extra_filter is None:
            self.extra_filter = {}
        elif not isinstance(self.extra_filter, dict):
            raise InvalidSearchParameters("extra_filter must be a mapping of field constraints")
        if self.candidate_pool_size is None:
            self.candidate_pool_size = self.limit * 10
        elif isinstance(self.candidate_pool_size, bool) or not isinstance(self.candidate_pool_size, numbers.Integral):
            raise InvalidSearchParameters(
                f"candidate_pool_size must be an integer, got {self.candidate_pool_size!r}"
            )
        self.candidate_pool_size = max(int(self.candidate_pool_size), self.limit)
        if self.strategy_override is not None:
            self.strategy_override = SearchStrategy.parse(self.strategy_override)
        if self.timeout is not None:
            if isinstance(self.timeout, bool) or not isinstance(self.timeout, numbers.Real) or self.timeout <= 0:
                raise InvalidSearchParameters(f"timeout must be a positive number of seconds, got {self.timeout!r}")
            self.timeout = float(self.timeout)

    @staticmethod
    def _validate_vector(vector: Sequence[float]) -> List[float]:
        if vector is None or len(vector) == 0:
            raise InvalidSearchParameters("query_vector must be a non-empty sequence of numbers")
        try:
            values = [float(value) for value in vector]
        except (TypeError, ValueError) as exc:
            raise InvalidSearchParameters("query_vector must contain only numbers") from exc
        if not all(math.isfinite(value) for value in values):
            raise InvalidSearchParameters("query_vector must contain only finite numbers")
        return values


__all__ = ["Filter", "SearchQuery", "SearchStrategy"]
