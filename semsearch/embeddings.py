"""Sentence-transformers embedding helpers for semsearch."""

from __future__ import annotations

import time
from functools import lru_cache
from typing import List, Sequence

from sentence_transformers import SentenceTransformer

from .config import CONFIG
from .core.records import EmbeddingRecord


@lru_cache(maxsize=1)
def _get_model() -> SentenceTransformer:
    """Return a cached embedding model instance."""

    return SentenceTransformer(CONFIG.embed_model)


def embed_texts(texts: Sequence[str]) -> List[List[float]]:
    """Embed a collection of texts as dense vectors."""

    cleaned = [text.strip() for text in texts if text and text.strip()]
    if not cleaned:
        return []
    model = _get_model()
    embeddings = model.encode(cleaned, batch_size=8, normalize_embeddings=True)
    return [vec.tolist() if hasattr(vec, "tolist") else list(vec) for vec in embeddings]


def embed_single(text: str) -> List[float]:
    """Embed a single string and return one vector."""

    vectors = embed_texts([text])
    return vectors[0] if vectors else []


def generate_embedding(text: str) -> EmbeddingRecord:
    """Embed ``text`` and wrap the vector with model and timing provenance."""

    started = time.perf_counter()
    vector = embed_single(text)
    if not vector:
        raise ValueError("Cannot embed empty text")
    return EmbeddingRecord(
        vector=vector,
        model=CONFIG.embed_model,
        processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
    )


__all__ = ["embed_texts", "embed_single", "generate_embedding"]
