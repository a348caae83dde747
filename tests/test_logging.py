"""Tests for compact log formatting."""

from __future__ import annotations

import logging

from semsearch.log_setup import ExtraFormatter
from semsearch.logging_utils import LogTag, format_decision, format_llm_log


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("semsearch.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_format_llm_log_with_context_and_milestone():
    line = format_llm_log(LogTag.INDEX, "created vector_index", {"coll": "articles"}, milestone=True)
    assert line == "[S:IDX] ✓ created vector_index (coll=articles)"


def test_format_decision():
    assert format_decision("index", True) == "[D:] index=Y"
    assert format_decision("index", False, why="probe") == "[D:] index=N (why=probe)"


def test_extra_formatter_appends_known_fields_only():
    formatter = ExtraFormatter(fmt="%(message)s")
    record = _record("[S:EXEC] indexed", collection="articles", result_count=3, unrelated="x")
    assert formatter.format(record) == "[S:EXEC] indexed [collection=articles, results=3]"


def test_extra_formatter_leaves_record_untouched():
    formatter = ExtraFormatter(fmt="%(message)s")
    record = _record("probe done", strategy="indexed")
    first = formatter.format(record)
    second = formatter.format(record)
    assert first == second == "probe done [strategy=indexed]"
    assert record.msg == "probe done"
