"""Per-thread logging fields (driver, trip, rider, technique, geohash).

Fields bound here are copied onto every record passing a handler that
carries ``ContextFilter``. Bindings nest: leaving a block restores whatever
the enclosing block had bound for the same names.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class _Fields(threading.local):
    def __init__(self) -> None:
        self.values: dict[str, Any] = {}


class LogContext:
    _fields = _Fields()

    @classmethod
    def get(cls) -> dict[str, Any]:
        return cls._fields.values

    @classmethod
    def set(cls, **fields: Any) -> None:
        cls._fields.values.update(fields)

    @classmethod
    def remove(cls, *names: str) -> None:
        for name in names:
            cls._fields.values.pop(name, None)

    @classmethod
    def clear(cls) -> None:
        cls._fields.values = {}


class ContextFilter(logging.Filter):
    """Copies bound fields onto records; explicit ``extra=`` values win."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name, value in LogContext.get().items():
            if name not in record.__dict__:
                setattr(record, name, value)
        return True


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    bound = LogContext.get()
    shadowed = {name: bound[name] for name in fields if name in bound}
    LogContext.set(**fields)
    try:
        yield
    finally:
        LogContext.remove(*fields)
        LogContext.set(**shadowed)


@contextmanager
def log_driver_context(driver_id: str, **fields: Any) -> Iterator[None]:
    with log_context(driver_id=driver_id, **fields):
        yield


@contextmanager
def log_trip_context(trip_id: str, **fields: Any) -> Iterator[None]:
    with log_context(trip_id=trip_id, **fields):
        yield
