"""
Structured JSON Logger for the merchant search HTTP layer.

Logs request/response/error events as single-line JSON for:
- Debugging
- Audit trails
- Performance analysis
"""

import json
import logging
import sys
from datetime import datetime
from typing import Dict, Any, Optional
from enum import Enum


class LogLevel(str, Enum):
    """Log levels matching Python logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StructuredLogger:
    """
    JSON structured logger for search events.

    Each log entry includes:
    - timestamp (ISO 8601)
    - level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
    - event_type (request, response, error, cache, etc.)
    - message (human-readable)
    - context (structured data: request_id, tenant_id, operation, etc.)
    """

    def __init__(self, name: str = "merchant_search.events", log_level: str = "INFO"):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_level: Minimum log level to output
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, log_level))

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(getattr(logging, log_level))

        # Message is already JSON
        handler.setFormatter(logging.Formatter('%(message)s'))

        self.logger.handlers = []
        self.logger.addHandler(handler)
        self.logger.propagate = False

    def _log(
        self,
        level: LogLevel,
        event_type: str,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        """Format and emit one JSON line."""
        log_entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": level.value,
            "logger": self.name,
            "event_type": event_type,
            "message": message,
        }

        if context:
            log_entry["context"] = context

        log_line = json.dumps(log_entry, default=str)
        self.logger.log(getattr(logging, level.value), log_line)

    def debug(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.DEBUG, event_type, message, context)

    def info(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.INFO, event_type, message, context)

    def warning(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.WARNING, event_type, message, context)

    def error(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.ERROR, event_type, message, context)

    def log_request(
        self,
        operation: str,
        request_id: str,
        tenant_id: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None
    ):
        """Log an incoming request."""
        self.info(
            "request",
            f"{operation} requested",
            {
                "request_id": request_id,
                "operation": operation,
                "tenant_id": tenant_id,
                "params": params or {}
            }
        )

    def log_response(
        self,
        operation: str,
        request_id: str,
        status: str,
        latency_ms: float,
        result_count: Optional[int] = None
    ):
        """Log a response."""
        context = {
            "request_id": request_id,
            "operation": operation,
            "status": status,
            "latency_ms": round(latency_ms, 2),
        }
        if result_count is not None:
            context["result_count"] = result_count
        self.info("response", f"Response {status} for {operation}", context)

    def log_cache_event(self, event: str, key: str, hit: bool):
        """Log a cache event."""
        self.debug(
            "cache",
            f"Cache {event}: {'HIT' if hit else 'MISS'}",
            {"cache_key": key, "cache_hit": hit}
        )

    def log_error(
        self,
        error_type: str,
        error_message: str,
        request_id: Optional[str] = None,
        stack_trace: Optional[str] = None
    ):
        """Log an error."""
        context = {
            "error_type": error_type,
            "error_message": error_message
        }
        if request_id:
            context["request_id"] = request_id
        if stack_trace:
            context["stack_trace"] = stack_trace

        self.error("error", f"{error_type}: {error_message}", context)


# Global structured logger instance
structured_logger = StructuredLogger()
