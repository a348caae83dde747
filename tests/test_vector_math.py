"""Tests for cosine similarity helpers."""

from __future__ import annotations

import math

import numpy as np
import pytest

from semsearch.core.records import EmbeddingRecord, attach_embedding
from semsearch.core.vector_math import cosine_similarity, similarity_between


def test_identical_vectors_score_one():
    assert cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)


def test_orthogonal_and_opposite_vectors():
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 0, 0], [-1, 0, 0]) == pytest.approx(-1.0)


def test_symmetric():
    a = [0.9, 0.1, 0.0]
    b = [0.2, 0.7, 0.1]
    assert cosine_similarity(a, b) == cosine_similarity(b, a)


def test_scale_invariant():
    assert cosine_similarity([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "a, b",
    [
        ([0, 0, 0], [1, 2, 3]),
        ([1, 2, 3], [0, 0, 0]),
        ([1, 2], [1, 2, 3]),
        ([], []),
        (None, [1.0]),
    ],
)
def test_degenerate_inputs_return_zero(a, b):
    assert cosine_similarity(a, b) == 0.0


def test_non_finite_components_do_not_leak_nan():
    result = cosine_similarity([float("nan"), 1.0], [1.0, 1.0])
    assert result == 0.0
    assert not math.isnan(result)


def test_accepts_numpy_arrays():
    value = cosine_similarity(np.array([1.0, 0.0, 0.0]), np.array([0.9, 0.1, 0.0]))
    assert value == pytest.approx(0.9938837, abs=1e-6)


def test_result_stays_within_unit_range():
    vector = [0.1] * 384
    assert -1.0 <= cosine_similarity(vector, vector) <= 1.0


def test_similarity_between_documents():
    first = attach_embedding({"_id": "a"}, "ai_embedding", EmbeddingRecord(vector=[1, 0, 0], model="m"))
    second = attach_embedding({"_id": "b"}, "ai_embedding", EmbeddingRecord(vector=[0, 1, 0], model="m"))
    assert similarity_between(first, first, "ai_embedding") == pytest.approx(1.0)
    assert similarity_between(first, second, "ai_embedding") == pytest.approx(0.0)


def test_similarity_between_missing_embedding_is_zero():
    first = attach_embedding({"_id": "a"}, "ai_embedding", EmbeddingRecord(vector=[1, 0, 0], model="m"))
    assert similarity_between(first, {"_id": "b"}, "ai_embedding") == 0.0
    assert similarity_between(first, first, "other_field") == 0.0
