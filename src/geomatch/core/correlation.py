"""Correlation ids tying together the log lines of one ride request.

The id lives in a ContextVar, so it follows the request through threads
started with ``contextvars.copy_context`` but not through plain pool workers.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

NO_CORRELATION = "-"

current_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_current_correlation_id() -> str | None:
    return current_correlation_id.get()


class CorrelationFilter(logging.Filter):
    """Stamps ``record.correlation_id``, using ``-`` outside any request."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_current_correlation_id() or NO_CORRELATION
        return True


@contextmanager
def with_correlation(correlation_id: str) -> Iterator[None]:
    """Bind ``correlation_id`` for the block; the previous id comes back on exit.

    Usage:
        with with_correlation(trip_id):
            matcher.find_nearest_driver(lat, lon)
    """
    token = current_correlation_id.set(correlation_id)
    try:
        yield
    finally:
        current_correlation_id.reset(token)
