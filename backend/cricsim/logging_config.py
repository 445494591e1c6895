"""
Structured logging for the simulation service.

Every line is a JSON object on stdout. HTTP traffic goes through
``api_logger``; the simulation core reports innings, session, day and
match completion (and rejected transitions) through ``engine_logger``.
Deliveries are never logged at INFO.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

# Keys a caller may attach to a record through ``extra``
LOG_FIELDS = (
    "request_id",
    "match_id",
    "event",
    "endpoint",
    "method",
    "status_code",
    "duration_ms",
    "payload",
    "error",
)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({key: getattr(record, key) for key in LOG_FIELDS if hasattr(record, key)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def summarize_snapshot(snapshot: dict) -> dict:
    """Scoreline view of a serialized MatchSnapshot, small enough for every log line."""
    summary: Dict[str, Any] = {
        "score": f"{snapshot['score']}/{snapshot['wickets']}",
        "overs": snapshot.get("overs"),
        "innings": snapshot.get("innings_number"),
    }
    if snapshot.get("format") == "test":
        summary["day"] = snapshot.get("day")
        summary["session"] = snapshot.get("session")
    return summary


class StructuredLogger:
    """A ``cricket.<name>`` logger with helpers for requests and match events."""

    def __init__(self, name: str = "api", level: int = logging.INFO):
        self.logger = logging.getLogger(f"cricket.{name}")
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def log_request(
        self,
        request_id: str,
        endpoint: str,
        method: str,
        payload: Optional[dict] = None,
    ) -> None:
        self.logger.info("request", extra={
            "request_id": request_id,
            "endpoint": endpoint,
            "method": method,
            "payload": payload,
        })

    def log_response(
        self,
        request_id: str,
        endpoint: str,
        status_code: int,
        duration_ms: float,
        error: Optional[str] = None,
        match_id: Optional[str] = None,
    ) -> None:
        """Log a finished request; failures are logged at ERROR."""
        extra: Dict[str, Any] = {
            "request_id": request_id,
            "endpoint": endpoint,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
        }
        if match_id:
            extra["match_id"] = match_id
        if error:
            extra["error"] = error
            self.logger.error("response", extra=extra)
        else:
            self.logger.info("response", extra=extra)

    def log_analytics_event(
        self,
        event_type: str,
        data: dict,
        request_id: Optional[str] = None,
        match_id: Optional[str] = None,
    ) -> None:
        """Log a match milestone such as ``innings_complete`` or ``match_started``."""
        extra: Dict[str, Any] = {"event": event_type, "payload": data}
        if request_id:
            extra["request_id"] = request_id
        if match_id:
            extra["match_id"] = match_id
        self.logger.info(event_type, extra=extra)

    def log_warning(self, message: str, data: Optional[dict] = None) -> None:
        """Log a rejected transition or other recoverable oddity."""
        self.logger.warning(message, extra={"payload": data or {}})


api_logger = StructuredLogger("api")
engine_logger = StructuredLogger("engine")


def generate_request_id() -> str:
    """Short id for tying a request's log lines together."""
    return uuid4().hex[:8]
