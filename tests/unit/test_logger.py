import json
import logging

import pytest

from utils.logger import ConsoleFormatter, StructuredFormatter, get_logger


def _record(msg, level=logging.INFO):
    return logging.LogRecord("services.interaction_service", level, __file__, 1, msg, None, None)


@pytest.mark.unit
def test_structured_formatter_merges_event_fields():
    line = StructuredFormatter().format(_record({"event": "follow_created", "follower_id": "u1"}))
    payload = json.loads(line)
    assert payload["event"] == "follow_created"
    assert payload["follower_id"] == "u1"
    assert payload["service"] == "social-core"
    assert payload["level"] == "INFO"


@pytest.mark.unit
def test_structured_formatter_wraps_plain_messages():
    payload = json.loads(StructuredFormatter().format(_record("plain text")))
    assert (payload["event"], payload["message"]) == ("log", "plain text")


@pytest.mark.unit
def test_console_formatter_renders_key_value_pairs():
    line = ConsoleFormatter().format(_record({"event": "rate_limited", "action": "follow", "count": 31}))
    assert line.endswith("services.interaction_service: rate_limited action=follow count=31")


@pytest.mark.unit
def test_get_logger_is_cached_and_has_one_stdout_handler(monkeypatch):
    monkeypatch.delenv("LOGTAIL_SOURCE_TOKEN", raising=False)
    first = get_logger("tests.logger_cache")
    assert get_logger("tests.logger_cache") is first
    assert len(first.handlers) == 1
