"""Mongo-style filter matching for stores that evaluate filters in process."""

from __future__ import annotations

from typing import Any, Mapping, Optional

_MISSING = object()


def get_path(document: Optional[Mapping[str, Any]], path: str, default: Any = None) -> Any:
    """Resolve a dotted path such as ``"embedding.model"`` in a nested document."""

    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def _compare(left: Any, right: Any, op: str) -> bool:
    if left is None or right is None:
        return False
    try:
        if op == "$gt":
            return left > right
        if op == "$gte":
            return left >= right
        if op == "$lt":
            return left < right
        return left <= right
    except TypeError:
        return False


def _equals(value: Any, expected: Any) -> bool:
    # array fields match when any element equals the expected scalar
    if isinstance(value, (list, tuple)) and not isinstance(expected, (list, tuple)):
        return expected in value
    return value == expected


def _match_operators(value: Any, present: bool, condition: Mapping[str, Any]) -> bool:
    for op, operand in condition.items():
        if op == "$exists":
            if bool(operand) != (present and value is not None):
                return False
        elif op == "$eq":
            if not _equals(value, operand):
                return False
        elif op == "$ne":
            if _equals(value, operand):
                return False
        elif op in {"$gt", "$gte", "$lt", "$lte"}:
            if not _compare(value, operand, op):
                return False
        elif op == "$in":
            if not any(_equals(value, candidate) for candidate in operand):
                return False
        elif op == "$nin":
            if any(_equals(value, candidate) for candidate in operand):
                return False
        elif op == "$not":
            if _match_operators(value, present, operand):
                return False
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
    return True


def matches_filter(document: Mapping[str, Any], query: Optional[Mapping[str, Any]]) -> bool:
    """Return True when ``document`` satisfies every clause of ``query``."""

    if not query:
        return True
    for key, condition in query.items():
        if key == "$and":
            if not all(matches_filter(document, clause) for clause in condition):
                return False
            continue
        if key == "$or":
            if not any(matches_filter(document, clause) for clause in condition):
                return False
            continue
        if key == "$nor":
            if any(matches_filter(document, clause) for clause in condition):
                return False
            continue
        value = get_path(document, key, _MISSING)
        present = value is not _MISSING
        if not present:
            value = None
        if isinstance(condition, Mapping) and condition and all(str(k).startswith("$") for k in condition):
            if not _match_operators(value, present, condition):
                return False
        elif not _equals(value, condition):
            return False
    return True


__all__ = ["get_path", "matches_filter"]
