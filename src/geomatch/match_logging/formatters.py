"""JSON and console formatters that surface matching context on every line."""

import json
import logging
from datetime import UTC, datetime
from typing import Any

SERVICE_NAME = "geomatch"
CONTEXT_FIELDS = ("correlation_id", "driver_id", "rider_id", "trip_id", "technique", "geohash")

# Placeholder CorrelationFilter stamps when no correlation is active
_UNSET = "-"


def context_of(record: logging.LogRecord) -> dict[str, Any]:
    """Context fields carried by ``record``, in CONTEXT_FIELDS order."""
    found = {}
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value is not None and value != _UNSET:
            found[name] = value
    return found


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shipping."""

    def __init__(self, environment: str = "development"):
        super().__init__()
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service_name": SERVICE_NAME,
            "env": self.environment,
            **context_of(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class DevFormatter(logging.Formatter):
    """Console format: correlation id up front, other context as ``key=value`` suffix."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s [corr=%(correlation_id)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = _UNSET
        line = super().format(record)
        extras = {k: v for k, v in context_of(record).items() if k != "correlation_id"}
        if extras:
            line += " | " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line
