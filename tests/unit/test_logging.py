from __future__ import annotations

import json
import logging
import sys

from surveyflow.utils.logging import JsonLogFormatter, configure_logging, get_logger


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("surveyflow.test", logging.WARNING, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_basic_fields():
    payload = json.loads(JsonLogFormatter().format(_record("hello")))
    assert payload == {"level": "WARNING", "logger": "surveyflow.test", "message": "hello"}


def test_json_formatter_only_known_fields():
    record = _record("Skipping node %s", node_id="q2")
    record.args = ("q2",)
    payload = json.loads(JsonLogFormatter().format(record))
    assert payload == {"level": "WARNING", "logger": "surveyflow.test", "message": "Skipping node q2"}


def test_json_formatter_exc_info():
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    payload = json.loads(JsonLogFormatter().format(record))
    assert "ValueError: boom" in payload["exc_info"]


def test_configure_logging_is_idempotent():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    for handler in saved_handlers:
        root.removeHandler(handler)
    try:
        configure_logging(level="debug", json_logs=True)
        configure_logging(level="error")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonLogFormatter)
        assert root.level == logging.DEBUG
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


def test_get_logger():
    assert get_logger("surveyflow.compiler") is logging.getLogger("surveyflow.compiler")
