"""JSON log lines must stay parseable and keep their context keys.

The aggregator filters on top-level fields such as assignment_id; a
field that slips into the message text instead cannot be searched.
"""

from __future__ import annotations

import json
import logging
import sys

from quiz_service.core.logging import _ContainerFormatter, _JsonFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="quiz_service.test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg="Graded %s",
        args=("a-1",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "quiz_service.test"
    assert parsed["message"] == "Graded a-1"
    assert "timestamp" in parsed


def test_json_formatter_includes_request_fields() -> None:
    record = _record(request_id="abc-123", method="POST", path="/v1/attempts", duration_ms=12.5)
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["method"] == "POST"
    assert parsed["path"] == "/v1/attempts"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_includes_domain_fields() -> None:
    record = _record(assignment_id="a-1", quiz_id="q-9", session_id="s-2", trigger="auto")
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["assignment_id"] == "a-1"
    assert parsed["quiz_id"] == "q-9"
    assert parsed["session_id"] == "s-2"
    assert parsed["trigger"] == "auto"


def test_json_formatter_omits_unset_fields() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert "assignment_id" not in parsed
    assert "user_id" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ValueError("storage down")
    except ValueError:
        record = _record()
        record.exc_info = sys.exc_info()
        output = _JsonFormatter().format(record)

    parsed = json.loads(output)
    assert "ValueError: storage down" in parsed["exception"]


def test_container_formatter_is_not_json() -> None:
    output = _ContainerFormatter().format(_record())
    assert "Graded a-1" in output
    try:
        json.loads(output)
        raise AssertionError("Container format should not be valid JSON")
    except json.JSONDecodeError:
        pass
