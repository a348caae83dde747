"""Compact, grep-friendly log message helpers.

Search decisions are logged as short tagged lines so that a run's strategy
choices can be reconstructed from the log without verbose prose.
"""

from enum import Enum


class LogTag(str, Enum):
    """Compact semantic tags for search log lines.

    Format: [CATEGORY:EVENT]. Examples: [S:ROUTE], [S:FALLBK], [D:]
    """

    ROUTE = "S:ROUTE"          # Strategy chosen for a call
    PROBE = "S:PROBE"          # Capability probe executed
    INDEX = "S:IDX"            # Index provisioning
    EXECUTE = "S:EXEC"         # Executor finished
    FALLBACK = "S:FALLBK"      # Indexed path failed, brute force used

    DECISION = "D:"            # Decision point


def format_llm_log(
    tag: LogTag,
    message: str,
    context: dict | None = None,
    milestone: bool = False
) -> str:
    """
    Format a log message with minimal tokens.

    Example outputs:
    - "[S:ROUTE] indexed (coll=articles)"
    - "[S:IDX] ✓ created vector_index"

    Args:
        tag: Semantic tag for event type
        message: Core message (keep brief)
        context: Key-value pairs (optional, keep minimal)
        milestone: Add ✓ marker for important events

    Returns:
        Formatted log string
    """
    parts = [f"[{tag.value}]"]

    if milestone:
        parts.append("✓")

    parts.append(message)

    if context:
        compact = ", ".join(f"{k}={v}" for k, v in context.items())
        parts.append(f"({compact})")

    return " ".join(parts)


def format_decision(
    decision_point: str,
    outcome: bool,
    **rationale
) -> str:
    """Format decision with compact rationale.

    Example: "[D:] index=Y (why=probe, cap=Y)"
    """
    outcome_char = "Y" if outcome else "N"
    message = f"{decision_point[:5]}={outcome_char}"

    if not outcome or len(rationale) > 0:
        return format_llm_log(LogTag.DECISION, message, context=rationale)

    return format_llm_log(LogTag.DECISION, message)


__all__ = ["LogTag", "format_llm_log", "format_decision"]
