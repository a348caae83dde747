"""Embedding records attached to documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence

VECTOR_KEY = "embedding"


def vector_path(field_name: str) -> str:
    """Dotted path of the vector sub-field for an embedding field."""

    return f"{field_name}.{VECTOR_KEY}"


@dataclass(frozen=True)
class EmbeddingRecord:
    """Vector plus provenance, stored wholesale under one document field."""

    vector: List[float]
    model: str
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    dimensions: int = 0
    processing_time_ms: Optional[float] = None

    def __post_init__(self) -> None:
        vector = [float(value) for value in self.vector]
        object.__setattr__(self, "vector", vector)
        if not self.dimensions:
            object.__setattr__(self, "dimensions", len(vector))
        elif self.dimensions != len(vector):
            raise ValueError(
                f"dimensions={self.dimensions} does not match vector length {len(vector)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            VECTOR_KEY: list(self.vector),
            "generated_at": self.generated_at,
            "model": self.model,
            "dimensions": self.dimensions,
        }
        if self.processing_time_ms is not None:
            payload["processing_time_ms"] = self.processing_time_ms
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "EmbeddingRecord":
        generated_at = payload.get("generated_at")
        if isinstance(generated_at, str):
            generated_at = datetime.fromisoformat(generated_at)
        return cls(
            vector=list(payload[VECTOR_KEY]),
            model=str(payload.get("model", "")),
            generated_at=generated_at or datetime.now(timezone.utc),
            dimensions=int(payload.get("dimensions") or 0),
            processing_time_ms=payload.get("processing_time_ms"),
        )


def attach_embedding(
    document: MutableMapping[str, Any],
    field_name: str,
    record: EmbeddingRecord,
) -> MutableMapping[str, Any]:
    """Store ``record`` under ``field_name``, replacing any previous record."""

    document[field_name] = record.to_dict()
    return document


def get_embedding_record(document: Mapping[str, Any], field_name: str) -> Optional[EmbeddingRecord]:
    """Return the record stored under ``field_name`` or ``None``."""

    payload = document.get(field_name) if document else None
    if not isinstance(payload, Mapping) or payload.get(VECTOR_KEY) is None:
        return None
    return EmbeddingRecord.from_dict(payload)


def get_vector(document: Optional[Mapping[str, Any]], field_name: str) -> Optional[Sequence[float]]:
    """Return the raw vector under ``field_name`` without building a record."""

    if not document:
        return None
    payload = document.get(field_name)
    if not isinstance(payload, Mapping):
        return None
    vector = payload.get(VECTOR_KEY)
    if vector is None or len(vector) == 0:
        return None
    return vector


__all__ = [
    "VECTOR_KEY",
    "EmbeddingRecord",
    "attach_embedding",
    "get_embedding_record",
    "get_vector",
    "vector_path",
]
