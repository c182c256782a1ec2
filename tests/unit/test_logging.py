from __future__ import annotations

import json
import logging

from cubeview.utils.logging import _json_formatter, configure_logging

EXPECTED_ROWS = 10
EXPECTED_BATCH_SIZE = 1000


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.rows = EXPECTED_ROWS
    record.loader = "copy"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["rows"] == EXPECTED_ROWS
    assert payload["loader"] == "copy"
    assert "pathname" not in payload
    assert "lineno" not in payload


def test_json_formatter_supports_nested_extra_field() -> None:
    record = _record()
    record.extra = {"batch_size": EXPECTED_BATCH_SIZE}

    payload = json.loads(_json_formatter(record))

    assert payload["batch_size"] == EXPECTED_BATCH_SIZE


def test_json_formatter_stringifies_unserialisable_values() -> None:
    record = _record()
    record.path = object()

    payload = json.loads(_json_formatter(record))

    assert payload["path"].startswith("<object")


def test_configure_logging_sets_root_level() -> None:
    configure_logging(level="WARNING")
    assert logging.getLogger().level == logging.WARNING
    configure_logging(level="INFO")
