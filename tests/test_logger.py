"""Unit tests for core/logger.py -- StructuredLogger.

Each logger writes to its own io.StringIO, so tests assert on exact output
without touching stdout or the global logging configuration.
"""

from __future__ import annotations

import io
import json
from datetime import datetime

import pytest

from conftest import read_lines
from core.logger import StructuredLogger


def _logger(level: str) -> tuple[StructuredLogger, io.StringIO]:
    stream = io.StringIO()
    return StructuredLogger(level=level, stream=stream), stream


class TestThreshold:
    def test_error_level_writes_error_once(self):
        logger, stream = _logger("error")
        logger.error("Test error message")
        lines = read_lines(stream)
        assert len(lines) == 1
        assert lines[0]["level"] == "error"
        assert lines[0]["message"] == "Test error message"
        assert "timestamp" in lines[0]

    @pytest.mark.parametrize("method", ["warn", "info", "debug"])
    def test_error_level_drops_lower_severities(self, method):
        logger, stream = _logger("error")
        getattr(logger, method)("dropped")
        assert stream.getvalue() == ""

    def test_info_level_emits_warn_and_info_but_not_debug(self):
        logger, stream = _logger("info")
        logger.warn("w")
        logger.info("i")
        logger.debug("d")
        assert [line["level"] for line in read_lines(stream)] == ["warn", "info"]

    def test_debug_level_emits_everything(self):
        logger, stream = _logger("debug")
        for level in ("error", "warn", "info", "debug"):
            logger.log(level, level)
        assert len(read_lines(stream)) == 4

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            StructuredLogger(level="verbose", stream=io.StringIO())
        logger, _ = _logger("info")
        with pytest.raises(ValueError):
            logger.log("http", "nope")


class TestRecordShape:
    def test_each_call_is_one_json_line(self):
        logger, stream = _logger("info")
        logger.info("first")
        logger.info("second")
        raw = stream.getvalue()
        assert raw.count("\n") == 2
        for line in raw.splitlines():
            json.loads(line)

    def test_optional_fields_omitted_when_absent(self):
        logger, stream = _logger("info")
        logger.info("bare")
        entry = read_lines(stream)[0]
        assert set(entry) == {"timestamp", "level", "message"}

    def test_metadata_request_and_user_ids(self):
        logger, stream = _logger("info")
        logger.info("with context", {"key": "value"}, request_id="req-123", user_id="user-456")
        entry = read_lines(stream)[0]
        assert entry["metadata"] == {"key": "value"}
        assert entry["requestId"] == "req-123"
        assert entry["userId"] == "user-456"

    def test_timestamp_is_iso8601_utc(self):
        logger, stream = _logger("info")
        logger.info("t")
        ts = read_lines(stream)[0]["timestamp"]
        assert ts.endswith("Z")
        datetime.fromisoformat(ts.replace("Z", "+00:00"))

    def test_secret_metadata_keys_redacted(self):
        logger, stream = _logger("info")
        logger.info("oops", {"username": "admin", "password": "admin123", "nested": {"passwordHash": "$2b$..."}})
        raw = stream.getvalue()
        assert "admin123" not in raw
        assert "$2b$" not in raw
        entry = json.loads(raw)
        assert entry["metadata"]["password"] == "[REDACTED]"
        assert entry["metadata"]["nested"]["passwordHash"] == "[REDACTED]"
        assert entry["metadata"]["username"] == "admin"

    def test_secret_keys_in_lists_redacted(self):
        logger, stream = _logger("info")
        logger.info("batch", {"attempts": [{"username": "admin", "password": "admin123"}, "plain"]})
        raw = stream.getvalue()
        assert "admin123" not in raw
        entry = json.loads(raw)
        assert entry["metadata"]["attempts"] == [{"username": "admin", "password": "[REDACTED]"}, "plain"]


class TestHelpers:
    def test_log_request(self):
        logger, stream = _logger("info")
        logger.log_request("GET", "/health", 200, 150, "req-123", "user-456")
        entry = read_lines(stream)[0]
        assert entry["level"] == "info"
        assert entry["message"] == "HTTP Request"
        assert entry["metadata"] == {
            "method": "GET",
            "path": "/health",
            "statusCode": 200,
            "responseTime": 150,
        }
        assert entry["requestId"] == "req-123"
        assert entry["userId"] == "user-456"

    def test_log_error_captures_stack(self):
        logger, stream = _logger("info")
        try:
            raise RuntimeError("Test error")
        except RuntimeError as exc:
            logger.log_error(exc, "Test context", "req-123")
        entry = read_lines(stream)[0]
        assert entry["level"] == "error"
        assert entry["message"] == "Test context: Test error"
        assert entry["metadata"]["name"] == "RuntimeError"
        assert "Traceback" in entry["metadata"]["stack"]
        assert entry["requestId"] == "req-123"

    def test_log_auth_attempt_success_is_info(self):
        logger, stream = _logger("info")
        logger.log_auth_attempt("admin", success=True, user_id="1")
        entry = read_lines(stream)[0]
        assert entry["level"] == "info"
        assert entry["message"] == "Authentication successful"
        assert entry["metadata"] == {"username": "admin"}
        assert entry["userId"] == "1"

    def test_log_auth_attempt_failure_is_warn_with_reason(self):
        logger, stream = _logger("info")
        logger.log_auth_attempt("ghost", success=False, reason="UnknownUser")
        entry = read_lines(stream)[0]
        assert entry["level"] == "warn"
        assert entry["metadata"] == {"username": "ghost", "reason": "UnknownUser"}

    def test_log_auth_attempt_fixed_keys_win(self):
        logger, stream = _logger("info")
        logger.log_auth_attempt(
            "admin",
            success=False,
            reason="WrongPassword",
            metadata={"username": "spoofed", "reason": "UnknownUser", "responseTimeMs": 3},
        )
        entry = read_lines(stream)[0]
        assert entry["metadata"] == {"username": "admin", "reason": "WrongPassword", "responseTimeMs": 3}

    def test_log_health_check(self):
        logger, stream = _logger("info")
        logger.log_health_check("ok", {"uptimeSeconds": 5})
        logger.log_health_check("error")
        ok, bad = read_lines(stream)
        assert ok["level"] == "info"
        assert ok["metadata"] == {"status": "ok", "uptimeSeconds": 5}
        assert bad["level"] == "error"

    def test_log_health_check_carries_request_id(self):
        logger, stream = _logger("info")
        logger.log_health_check("ok", {"uptimeSeconds": 5}, request_id="req-9")
        assert read_lines(stream)[0]["requestId"] == "req-9"

    def test_instances_do_not_share_output(self):
        first, first_stream = _logger("info")
        second, second_stream = _logger("info")
        first.info("only first")
        assert len(read_lines(first_stream)) == 1
        assert second_stream.getvalue() == ""
