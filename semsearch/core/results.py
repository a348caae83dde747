"""Uniform result shape shared by both search paths."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class RankedResult:
    """One matched document with its similarity to the query."""

    document: Mapping[str, Any]
    similarity: float
    distance: float
    source_field: str

    @property
    def metadata(self) -> Dict[str, Any]:
        return {"field": self.source_field, "distance": self.distance}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document": self.document,
            "similarity": self.similarity,
            "metadata": self.metadata,
        }


def shape_result(document: Mapping[str, Any], similarity: float, field_name: str) -> RankedResult:
    """Wrap a raw candidate; ``distance`` is always ``1 - similarity``."""

    similarity = float(similarity or 0.0)
    return RankedResult(
        document=document,
        similarity=similarity,
        distance=1 - similarity,
        source_field=field_name,
    )


__all__ = ["RankedResult", "shape_result"]
