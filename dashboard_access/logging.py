from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

from dashboard_access.config import get_settings
from dashboard_access.context import get_correlation_id


PACKAGE_LOGGER = "dashboard_access"
HANDLER_NAME = "dashboard_access.json"
MAX_ERROR_LENGTH = 500

# Extras copied into the ``fields`` object; anything else passed via ``extra=`` is dropped.
FIELD_NAMES = (
    "dashboard_id",
    "subject_id",
    "tenant_id",
    "snapshot_id",
    "fault",
    "reason",
    "outcome",
    "hidden_count",
    "visible_count",
    "duration_ms",
    "error",
)


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the correlation id of the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        return True


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {name: getattr(record, name) for name in FIELD_NAMES if hasattr(record, name)}
        if isinstance(fields.get("error"), str):
            fields["error"] = fields["error"][:MAX_ERROR_LENGTH]
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
            "fields": fields,
        }
        return json.dumps(payload, default=str)


def configure_logging(stream: IO[str] | None = None) -> logging.Logger:
    """Emit ``dashboard_access.*`` records as JSON lines.

    Only the package logger is touched; the host's root logger keeps its own
    handlers. Repeated calls reuse the handler installed by the first one.
    """

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level = logging.getLevelName(get_settings().log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    package_logger.setLevel(level)

    if any(handler.name == HANDLER_NAME for handler in package_logger.handlers):
        return package_logger

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(JsonLogFormatter())
    handler.addFilter(CorrelationIdFilter())
    package_logger.addHandler(handler)
    package_logger.propagate = False
    return package_logger
