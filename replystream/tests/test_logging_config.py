"""Tests for core/logging_config: redaction, StructuredFormatter, setup_logging."""

import json
import logging
import sys

from replystream.core.logging_config import StructuredFormatter, _redact, setup_logging


def _record(msg="hello", level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="test", level=level, pathname="", lineno=0, msg=msg, args=(), exc_info=exc_info
    )
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_redact_string_with_secret():
    assert _redact("bearer abc123") == "[REDACTED]"
    assert _redact("hello") == "hello"


def test_redact_by_key_name():
    assert _redact({"api_key": "sk-123", "model": "gpt"}) == {"api_key": "[REDACTED]", "model": "gpt"}
    assert _redact("plain", "xi-api-key") == "[REDACTED]"


def test_redact_list():
    assert _redact(["token: x", "ok"]) == ["[REDACTED]", "ok"]


def test_structured_formatter_json_with_extra():
    out = StructuredFormatter(use_json=True).format(_record(conversation_id="c1", chars=12))
    data = json.loads(out)
    assert data["message"] == "hello"
    assert data["level"] == "INFO"
    assert data["conversation_id"] == "c1"
    assert data["chars"] == 12


def test_structured_formatter_redacts_extra():
    data = json.loads(StructuredFormatter().format(_record(api_key="sk-live")))
    assert data["api_key"] == "[REDACTED]"


def test_structured_formatter_key_value():
    out = StructuredFormatter(use_json=False).format(_record("warn", logging.WARNING))
    assert "warn" in out
    assert "WARNING" in out


def test_structured_formatter_with_exc_info():
    try:
        raise ValueError("test error")
    except ValueError:
        exc_info = sys.exc_info()
    data = json.loads(StructuredFormatter().format(_record("failed", logging.ERROR, exc_info)))
    assert "ValueError" in data["exception"]


def test_setup_logging_levels():
    setup_logging(level="WARNING", use_json=False)
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING
    setup_logging(level="DEBUG")
    assert logging.getLogger().level == logging.DEBUG
