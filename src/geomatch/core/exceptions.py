"""Error types raised by point search, the driver pool and ride matching.

``TransientError`` subclasses come from the set store and may succeed if the
caller tries again later. Everything under ``PermanentError`` reflects bad
input or state and will fail the same way on a retry.
"""

from typing import Any


class GeoMatchError(Exception):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details) if details else {}


class TransientError(GeoMatchError):
    """Retryable failure."""


class NetworkError(TransientError):
    """Set store unreachable (timeout, connection refused)."""


class PermanentError(GeoMatchError):
    """Non-retryable failure."""


class ValidationError(PermanentError):
    """Malformed caller input."""


class InvalidGeohashError(ValidationError):
    """Geohash string is empty or contains characters outside the base-32 alphabet."""


class UnsupportedTechniqueError(ValidationError):
    """Requested geo-indexing technique is not geohash, quadtree or rtree."""


class NotFoundError(PermanentError):
    """Lookup came back empty."""


class NoResultsFoundError(NotFoundError):
    """Point search exhausted every attempt without a result."""


class NoAvailableDriversError(NotFoundError):
    """No available driver in the rider's cell or its eight neighbors."""


class DriverNotFoundError(NotFoundError):
    pass


class RiderNotFoundError(NotFoundError):
    pass


class TripNotFoundError(NotFoundError):
    pass


class StoreError(PermanentError):
    """Set store refused a command (wrong key type, auth, read-only replica)."""


class StateError(PermanentError):
    """Operation not allowed in the entity's current state."""


class ConfigurationError(PermanentError):
    """Settings failed validation."""


class SearchCancelledError(PermanentError):
    """Point search was cancelled between attempts."""
