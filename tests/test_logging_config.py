"""Tests for forwarder.logging_config — formatters and context defaults."""
import json
import logging

from forwarder.logging_config import CallContextFilter, ConsoleFormatter, JSONFormatter, get_logger


def _record(**extra):
    record = logging.LogRecord("forwarder.cascade", logging.INFO, __file__, 10, "Dialing %s", ("+1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_get_logger_namespacing():
    assert get_logger("cascade").name == "forwarder.cascade"
    assert get_logger().name == "forwarder"


def test_context_filter_adds_defaults():
    record = _record()
    assert CallContextFilter().filter(record) is True
    assert record.call_sid == ""
    assert record.step == ""
    assert record.extra_data is None


def test_json_formatter_includes_call_context():
    record = _record(call_sid="CA123", step="dialing:1", extra_data={"outcome": "busy"})
    data = json.loads(JSONFormatter().format(record))
    assert data["message"] == "Dialing +1"
    assert data["call_sid"] == "CA123"
    assert data["step"] == "dialing:1"
    assert data["data"] == {"outcome": "busy"}
    assert data["timestamp"].endswith("Z")


def test_console_formatter_truncates_call_sid():
    record = _record(call_sid="CA0123456789abcdef", step="start")
    line = ConsoleFormatter().format(record)
    assert "Call:CA0123456789..." in line
    assert "Step:start" in line
    assert "Dialing +1" in line
