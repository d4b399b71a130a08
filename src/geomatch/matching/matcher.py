import logging

from geomatch.core.exceptions import NoAvailableDriversError, TransientError
from geomatch.driver import Driver
from geomatch.geo import geohash

from .availability_pool import DriverAvailabilityPool, PoolEntry, parse_snapshot

logger = logging.getLogger(__name__)


class NearestDriverMatcher:
    """Single-ring nearest-driver lookup over the availability pool.

    Scans the eight cells around the rider first and the rider's own cell
    last, returning the first available driver encountered. A driver outside
    that ring is never returned, however close it is in raw distance.
    """

    def __init__(self, pool: DriverAvailabilityPool, precision: int = geohash.DRIVER_PRECISION):
        self._pool = pool
        self._precision = precision

    def candidate_cells(self, lat: float, lon: float) -> list[str]:
        rider_cell = geohash.encode(lat, lon, self._precision)
        return geohash.neighbors(rider_cell) + [rider_cell]

    def find_nearest_driver(self, lat: float, lon: float) -> Driver:
        return self.find_nearest_entry(lat, lon).driver

    def find_nearest_entry(self, lat: float, lon: float) -> PoolEntry:
        """Like ``find_nearest_driver``, keeping the member string as stored.

        Claiming a driver must remove that exact string; re-serializing the
        parsed driver does not always reproduce it.
        """
        cells = self.candidate_cells(lat, lon)

        for cell in cells:
            try:
                members = self._pool.members(cell)
            except TransientError as e:
                logger.warning(f"Skipping cell {cell}: pool read failed: {e}")
                continue

            for raw in members:
                driver = parse_snapshot(raw)
                if driver is not None and driver.is_available:
                    logger.info(f"Matched driver {driver.driver_id} in cell {cell}")
                    return PoolEntry(driver, raw, cell)

        raise NoAvailableDriversError(
            "No available drivers nearby",
            details={"lat": lat, "lon": lon, "cells": cells},
        )
