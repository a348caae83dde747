"""In-process evaluation of the post-search aggregation stages.

Stores that cannot run a whole pipeline server-side produce the first stage's
output themselves and hand the rest of the stages to :func:`apply_stages`.
Each row carries the document plus the search metadata (``$meta`` values) the
first stage produced.
"""

from __future__ import annotations

import copy
import functools
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from .filters import get_path, matches_filter

Stage = Dict[str, Any]


@dataclass
class Row:
    document: Dict[str, Any]
    meta: Dict[str, Any] = field(default_factory=dict)


def _resolve(expression: Any, row: Row) -> Any:
    if isinstance(expression, Mapping) and set(expression) == {"$meta"}:
        return row.meta.get(expression["$meta"])
    if isinstance(expression, str) and expression.startswith("$"):
        return get_path(row.document, expression[1:])
    return copy.deepcopy(expression)


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison that tolerates missing and mixed-type values."""

    if a == b:
        return 0
    # missing values sort first ascending, like the server does
    if a is None:
        return -1
    if b is None:
        return 1
    try:
        return -1 if a < b else 1
    except TypeError:
        return -1 if str(a) < str(b) else 1


def _sort_rows(rows: List[Row], spec: Mapping[str, int]) -> List[Row]:
    keys = list(spec.items())

    def compare(left: Row, right: Row) -> int:
        for path, direction in keys:
            result = compare_values(get_path(left.document, path), get_path(right.document, path))
            if result:
                return result if direction >= 0 else -result
        return 0

    return sorted(rows, key=functools.cmp_to_key(compare))


def _project(row: Row, spec: Mapping[str, Any]) -> Row:
    excluded = {key for key, flag in spec.items() if flag in (0, False)}
    included = {key: flag for key, flag in spec.items() if key not in excluded}
    if included:
        projected: Dict[str, Any] = {}
        if "_id" in row.document and "_id" not in excluded:
            projected["_id"] = row.document["_id"]
        for key, flag in included.items():
            projected[key] = get_path(row.document, key) if flag in (1, True) else _resolve(flag, row)
        return Row(document=projected, meta=row.meta)
    document = {key: value for key, value in row.document.items() if key not in excluded}
    return Row(document=document, meta=row.meta)


def apply_stages(rows: List[Row], stages: Sequence[Stage]) -> List[Row]:
    """Run ``$addFields``/``$set``, ``$match``, ``$sort``, ``$limit`` and ``$project``."""

    for stage in stages:
        if len(stage) != 1:
            raise ValueError(f"Pipeline stage must have exactly one operator: {stage!r}")
        (operator, spec), = stage.items()
        if operator in {"$addFields", "$set"}:
            for row in rows:
                for key, expression in spec.items():
                    row.document[key] = _resolve(expression, row)
        elif operator == "$match":
            rows = [row for row in rows if matches_filter(row.document, spec)]
        elif operator == "$sort":
            rows = _sort_rows(rows, spec)
        elif operator == "$limit":
            rows = rows[: max(int(spec), 0)]
        elif operator == "$project":
            rows = [_project(row, spec) for row in rows]
        else:
            raise ValueError(f"Unsupported pipeline stage: {operator}")
    return rows


__all__ = ["Row", "Stage", "apply_stages", "compare_values"]
