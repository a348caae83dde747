"""Cosine similarity helpers used by the brute-force path."""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional, Sequence

import numpy as np

from .records import get_vector


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """Return the cosine similarity of two equal-length vectors.

    Missing or empty vectors, mismatched lengths and zero-norm vectors all
    yield ``0.0`` instead of raising or returning NaN.
    """

    if a is None or b is None or len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    with np.errstate(all="ignore"):
        norm_a = float(np.linalg.norm(va))
        norm_b = float(np.linalg.norm(vb))
        if norm_a == 0.0 or norm_b == 0.0:
            return 0.0
        similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    if not math.isfinite(similarity):
        return 0.0
    # rounding can push |similarity| a hair past 1
    return max(-1.0, min(1.0, similarity))


def similarity_between(doc_a: Mapping[str, Any], doc_b: Mapping[str, Any], field: str) -> float:
    """Similarity of the embeddings two documents carry under ``field``."""

    return cosine_similarity(get_vector(doc_a, field), get_vector(doc_b, field))


__all__ = ["cosine_similarity", "similarity_between"]
