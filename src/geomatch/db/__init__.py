"""Durable driver and trip records."""

from .database import init_database
from .schema import Driver, Rider, Trip
from .transaction import transaction

__all__ = ["init_database", "Driver", "Rider", "Trip", "transaction"]
