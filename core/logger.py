"""
core/logger.py -- Structured JSON audit logger.

Every accepted call becomes exactly one JSON line on the output stream:

    {"timestamp": "...Z", "level": "warn", "message": "...",
     "metadata": {...}, "requestId": "...", "userId": "..."}

Built on the standard logging module: each StructuredLogger owns a private
logging.Logger (not registered with the logging manager, so instances never
share handlers) with a single StreamHandler. StreamHandler writes the record
and its terminator in one write() call and flushes immediately -- there is
no buffering, so every line is on the stream before the call returns.

Severity threshold: error=0 < warn=1 < info=2 < debug=3. A call is emitted
only when its number is <= the configured threshold's number. The threshold
is fixed at construction.

Secret hygiene: metadata keys that name secrets are replaced with
"[REDACTED]" before serialisation. Call sites for authentication outcomes
(log_auth_attempt) only accept a username, never the request body.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

LEVEL_PRIORITY: dict[str, int] = {
    "error": 0,
    "warn": 1,
    "info": 2,
    "debug": 3,
}

_STDLIB_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

_REDACTED = "[REDACTED]"
_SECRET_KEYS = frozenset({"password", "passwordhash", "password_hash", "token"})


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: _REDACTED if str(key).lower() in _SECRET_KEYS else _scrub(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_scrub(item) for item in value]
    return value


class _JsonFormatter(logging.Formatter):
    """Serialise the pre-built entry attached to the record as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(record.entry, default=str, separators=(",", ":"))


class StructuredLogger:
    """Single-line JSON logger with a fixed minimum severity."""

    def __init__(self, level: str = "info", stream: Optional[TextIO] = None, name: str = "k8snode.audit") -> None:
        if level not in LEVEL_PRIORITY:
            raise ValueError(f"Unknown log level: {level!r}")
        self._level = level
        self._threshold = LEVEL_PRIORITY[level]

        handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
        handler.setFormatter(_JsonFormatter())
        self._logger = logging.Logger(name, logging.DEBUG)
        self._logger.propagate = False
        self._logger.addHandler(handler)

    @property
    def level(self) -> str:
        return self._level

    def is_enabled(self, level: str) -> bool:
        return LEVEL_PRIORITY[level] <= self._threshold

    def log(
        self,
        level: str,
        message: str,
        metadata: Optional[dict[str, Any]] = None,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        if level not in LEVEL_PRIORITY:
            raise ValueError(f"Unknown log level: {level!r}")
        if not self.is_enabled(level):
            return

        entry: dict[str, Any] = {
            "timestamp": utc_timestamp(),
            "level": level,
            "message": message,
        }
        if metadata:
            entry["metadata"] = _scrub(metadata)
        if request_id:
            entry["requestId"] = request_id
        if user_id:
            entry["userId"] = user_id

        self._logger.log(_STDLIB_LEVELS[level], message, extra={"entry": entry})

    # ------------------------------------------------------------------
    # Severity shorthands
    # ------------------------------------------------------------------

    def error(self, message: str, metadata=None, request_id=None, user_id=None) -> None:
        self.log("error", message, metadata, request_id, user_id)

    def warn(self, message: str, metadata=None, request_id=None, user_id=None) -> None:
        self.log("warn", message, metadata, request_id, user_id)

    def info(self, message: str, metadata=None, request_id=None, user_id=None) -> None:
        self.log("info", message, metadata, request_id, user_id)

    def debug(self, message: str, metadata=None, request_id=None, user_id=None) -> None:
        self.log("debug", message, metadata, request_id, user_id)

    # ------------------------------------------------------------------
    # Audit helpers -- each fixes message + metadata shape and delegates
    # ------------------------------------------------------------------

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        response_time_ms: float,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """One line per completed HTTP request."""
        self.info(
            "HTTP Request",
            {
                "method": method,
                "path": path,
                "statusCode": status_code,
                "responseTime": response_time_ms,
            },
            request_id,
            user_id,
        )

    def log_auth_attempt(
        self,
        username: str,
        success: bool,
        reason: Optional[str] = None,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Authentication outcome. Accepts the username only -- never credentials."""
        # Fixed keys go last so caller metadata cannot overwrite them.
        meta: dict[str, Any] = dict(metadata or {})
        meta["username"] = username
        if reason:
            meta["reason"] = reason
        else:
            meta.pop("reason", None)
        if success:
            self.info("Authentication successful", meta, request_id, user_id)
        else:
            self.warn("Authentication failed", meta, request_id, user_id)

    def log_error(
        self,
        error: BaseException,
        context: str,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Error line carrying the exception type and formatted stack."""
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        self.error(
            f"{context}: {error}",
            {"name": type(error).__name__, "stack": stack},
            request_id,
            user_id,
        )

    def log_health_check(
        self,
        status: str,
        metadata: Optional[dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> None:
        meta = {**(metadata or {}), "status": status}
        if status == "ok":
            self.info("Health check", meta, request_id)
        else:
            self.error("Health check failed", meta, request_id)
