import logging
import sys
from typing import TextIO

from geomatch.core.correlation import CorrelationFilter
from geomatch.settings import LoggingSettings

from .context import ContextFilter
from .formatters import DevFormatter, JSONFormatter

# Client libraries whose DEBUG/INFO chatter drowns out matching logs
QUIET_LOGGERS = ("redis", "rtree", "sqlalchemy.engine")


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    environment: str = "development",
    stream: TextIO | None = None,
) -> logging.Handler:
    """Replace the root handlers with a single stream handler and return it."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter(environment) if json_output else DevFormatter())
    for log_filter in (CorrelationFilter(), ContextFilter()):
        handler.addFilter(log_filter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


def setup_logging_from_settings(settings: LoggingSettings) -> logging.Handler:
    return setup_logging(
        level=settings.level,
        json_output=settings.format == "json",
        environment=settings.environment,
    )
