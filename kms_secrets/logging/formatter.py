"""JSON log formatter for the KMS secrets client.

Log records are rendered as one JSON object per line. Structured ``extra``
fields are collected into ``context``. Callers log secret names, never
secret values; configuration dicts go through sanitize_for_logging before
they reach a log call.

Example log output:
    {
        "timestamp": "2025-10-21T10:30:00.000Z",
        "level": "WARNING",
        "service": "billing_api",
        "logger": "kms_secrets.retry",
        "message": "Attempt 1 failed for fetch secret db/password, retrying in 1340ms",
        "context": {"attempt": 1, "max_attempts": 3, "error": "timeout"}
    }
"""

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any, Final


# Attributes every LogRecord carries; anything else arrived through ``extra``
_RESERVED_FIELDS: Final[frozenset[str]] = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "context", "taskName"}


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON.

    Attributes:
        service_name: Name of the service emitting logs
        include_context: Whether to include extra fields under "context"

    Example:
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(JSONFormatter(service_name="billing_api"))
        >>> logging.getLogger("kms_secrets").addHandler(handler)
    """

    def __init__(self, service_name: str, include_context: bool = True) -> None:
        super().__init__()
        self.service_name = service_name
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context = self._extract_context(record)
            if context:
                log_entry["context"] = context

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        log_entry["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_entry, default=str)

    def _format_timestamp(self, created: float) -> str:
        """ISO 8601 in UTC with millisecond precision, e.g. 2023-10-21T10:30:00.000Z."""
        dt = datetime.fromtimestamp(created, tz=UTC)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def _extract_context(self, record: logging.LogRecord) -> dict[str, Any] | None:
        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            return dict(context)

        extra = {
            key: value for key, value in record.__dict__.items() if key not in _RESERVED_FIELDS
        }
        return extra or None
