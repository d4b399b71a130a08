"""Rider, driver and trip lifecycle, keeping the availability pool in step with records.

Pool removals are computed from the driver record read before the change,
which is what was last published. Pool additions are computed from the record
as stored after the change, so a status written concurrently by another
request is never overwritten or republished.

Records are committed before the pool is touched. The pool is an
eventually-consistent cache; a crash between the two leaves a stale entry
that the next relocation or status change evicts.
"""

import logging
import uuid

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session, sessionmaker

from geomatch.core.correlation import with_correlation
from geomatch.core.exceptions import (
    DriverNotFoundError,
    NoAvailableDriversError,
    RiderNotFoundError,
    TripNotFoundError,
    ValidationError,
)
from geomatch.db.repositories import DriverRepository, RiderRepository, TripRepository
from geomatch.db.transaction import transaction
from geomatch.driver import Driver, DriverStatus
from geomatch.geo import geohash
from geomatch.match_logging import log_context, log_driver_context, log_trip_context
from geomatch.rider import Rider
from geomatch.trip import Trip, TripState

from .availability_pool import DriverAvailabilityPool
from .matcher import NearestDriverMatcher

logger = logging.getLogger(__name__)


class RideService:
    def __init__(
        self,
        session_maker: "sessionmaker[Session]",
        pool: DriverAvailabilityPool,
        matcher: NearestDriverMatcher,
        precision: int = geohash.DRIVER_PRECISION,
        claim_attempts: int = 3,
    ):
        self._session_maker = session_maker
        self._pool = pool
        self._matcher = matcher
        self._precision = precision
        self._claim_attempts = claim_attempts

    def register_rider(self, name: str, rider_id: str | None = None) -> Rider:
        try:
            rider = Rider(name=name) if rider_id is None else Rider(name=name, rider_id=rider_id)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid rider: {e.error_count()} field error(s)",
                details={"rider_id": rider_id, "errors": e.errors(include_url=False)},
            ) from e

        with self._session_maker() as session, transaction(session):
            RiderRepository(session).create(rider)

        with log_context(rider_id=rider.rider_id):
            logger.info(f"Registered rider {rider.rider_id}")
        return rider

    def get_rider(self, rider_id: str) -> Rider:
        with self._session_maker() as session:
            rider = RiderRepository(session).get(rider_id)
        if rider is None:
            raise RiderNotFoundError(f"Rider {rider_id} not found", details={"rider_id": rider_id})
        return rider

    def register_driver(
        self,
        name: str,
        lat: float,
        lon: float,
        status: DriverStatus = DriverStatus.AVAILABLE,
        driver_id: str | None = None,
    ) -> Driver:
        try:
            driver = Driver.create(
                name=name,
                latitude=lat,
                longitude=lon,
                status=DriverStatus(status),
                driver_id=driver_id,
                precision=self._precision,
            )
        except PydanticValidationError as e:
            raise _invalid_driver(driver_id, lat, lon, e) from e
        with self._session_maker() as session, transaction(session):
            DriverRepository(session).create(driver)

        if driver.is_available:
            self._pool.add(driver)

        with log_driver_context(driver.driver_id, geohash=driver.geohash):
            logger.info(f"Registered driver {driver.driver_id} ({driver.status.value})")
        return driver

    def get_driver(self, driver_id: str) -> Driver:
        with self._session_maker() as session:
            driver = DriverRepository(session).get(driver_id)
        if driver is None:
            raise DriverNotFoundError(
                f"Driver {driver_id} not found", details={"driver_id": driver_id}
            )
        return driver

    def update_driver_location(
        self,
        driver_id: str,
        lat: float,
        lon: float,
        status: DriverStatus | None = None,
    ) -> Driver:
        """Move a driver, optionally changing status in the same update.

        Without ``status`` only the coordinates and geohash are written, so a
        trip assigned while the move is in flight keeps the driver on_trip.
        """
        with self._session_maker() as session, transaction(session):
            drivers = DriverRepository(session)
            current = self._require_driver(drivers, driver_id)
            try:
                moved = current.relocated(lat, lon, self._precision)
                if status is not None:
                    moved = moved.with_status(status)
            except PydanticValidationError as e:
                raise _invalid_driver(driver_id, lat, lon, e) from e

            if status is None:
                updated = drivers.update_location(
                    driver_id, moved.latitude, moved.longitude, moved.geohash
                )
                if updated is None:
                    raise DriverNotFoundError(
                        f"Driver {driver_id} not found", details={"driver_id": driver_id}
                    )
            else:
                drivers.save(moved)
                updated = moved

        self._pool.relocate(current, updated)

        with log_driver_context(driver_id, geohash=updated.geohash):
            if current.geohash != updated.geohash:
                logger.debug(f"Driver {driver_id} moved {current.geohash} -> {updated.geohash}")
        return updated

    def update_driver_status(self, driver_id: str, status: DriverStatus) -> Driver:
        with self._session_maker() as session, transaction(session):
            drivers = DriverRepository(session)
            current = self._require_driver(drivers, driver_id)
            updated = current.with_status(status)
            drivers.update_status(driver_id, updated.status)

        if current.is_available and not updated.is_available:
            self._pool.remove(current)
        elif updated.is_available:
            self._pool.add(updated)

        with log_driver_context(driver_id):
            logger.info(
                f"Driver {driver_id} status {current.status.value} -> {updated.status.value}"
            )
        return updated

    def request_ride(
        self,
        rider_id: str,
        start: tuple[float, float],
        end: tuple[float, float],
        trip_id: str | None = None,
    ) -> tuple[Trip, Driver]:
        """Assign the nearest available driver and open an accepted trip.

        The driver is claimed by removing its pool snapshot exactly as it was read
        from the store; when a concurrent request removes it first, matching
        runs again, up to ``claim_attempts`` rounds.

        Raises:
            RiderNotFoundError: ``rider_id`` was never registered.
            NoAvailableDriversError: nothing available in the rider's ring,
                or every candidate was claimed elsewhere.
        """
        trip_id = trip_id or uuid.uuid4().hex
        lat, lon = start

        with with_correlation(trip_id), log_trip_context(trip_id, rider_id=rider_id):
            self.get_rider(rider_id)
            for attempt in range(self._claim_attempts):
                entry = self._matcher.find_nearest_entry(lat, lon)
                candidate = entry.driver
                if not self._pool.claim_entry(entry):
                    logger.info(
                        f"Driver {candidate.driver_id} claimed by another request "
                        f"(attempt {attempt + 1}/{self._claim_attempts})"
                    )
                    continue

                try:
                    assigned = self._persist_assignment(candidate, trip_id, rider_id, start, end)
                except Exception:
                    # Put the claimed driver back before surfacing the failure
                    self._pool.add(candidate)
                    raise

                if assigned is None:
                    logger.warning(
                        f"Pool entry for driver {candidate.driver_id} was stale; retrying match"
                    )
                    continue

                trip, record = assigned
                if record != candidate:
                    self._pool.remove(record)
                driver = record.with_status(DriverStatus.ON_TRIP)
                logger.info(f"Assigned driver {driver.driver_id} to trip {trip.trip_id}")
                return trip, driver

        raise NoAvailableDriversError(
            "Every nearby driver was claimed by a concurrent request",
            details={"lat": lat, "lon": lon, "attempts": self._claim_attempts},
        )

    def complete_trip(self, trip_id: str) -> Trip:
        """Close a trip and return its driver to the pool at the driver's current cell."""
        with self._session_maker() as session, transaction(session):
            trips = TripRepository(session)
            drivers = DriverRepository(session)

            trip = trips.get(trip_id)
            if trip is None:
                raise TripNotFoundError(f"Trip {trip_id} not found", details={"trip_id": trip_id})
            trip.transition_to(TripState.COMPLETED)
            trips.update_state(trip_id, TripState.COMPLETED)
            drivers.update_status(trip.driver_id, DriverStatus.AVAILABLE)
            session.flush()

            completed = trips.get(trip_id)
            driver = drivers.get(trip.driver_id)

        if driver is not None:
            self._pool.add(driver.with_status(DriverStatus.AVAILABLE))
        else:
            logger.warning(f"Trip {trip_id} references unknown driver {trip.driver_id}")

        with log_trip_context(trip_id):
            logger.info(f"Completed trip {trip_id}")
        assert completed is not None
        return completed

    def get_trip(self, trip_id: str) -> Trip:
        with self._session_maker() as session:
            trip = TripRepository(session).get(trip_id)
        if trip is None:
            raise TripNotFoundError(f"Trip {trip_id} not found", details={"trip_id": trip_id})
        return trip

    def _persist_assignment(
        self,
        candidate: Driver,
        trip_id: str,
        rider_id: str,
        start: tuple[float, float],
        end: tuple[float, float],
    ) -> tuple[Trip, Driver] | None:
        """Write the trip and flip the driver to on_trip, or None if the record is not available."""
        with self._session_maker() as session, transaction(session):
            drivers = DriverRepository(session)
            record = drivers.get(candidate.driver_id)
            if record is None or not record.is_available:
                return None

            trips = TripRepository(session)
            trips.create(
                trip_id=trip_id,
                rider_id=rider_id,
                driver_id=record.driver_id,
                start_location=start,
                end_location=end,
                state=TripState.ACCEPTED,
            )
            drivers.update_status(record.driver_id, DriverStatus.ON_TRIP)
            session.flush()
            trip = trips.get(trip_id)

        assert trip is not None
        return trip, record

    @staticmethod
    def _require_driver(drivers: DriverRepository, driver_id: str) -> Driver:
        driver = drivers.get(driver_id)
        if driver is None:
            raise DriverNotFoundError(
                f"Driver {driver_id} not found", details={"driver_id": driver_id}
            )
        return driver

def _invalid_driver(
    driver_id: str | None, lat: float, lon: float, error: PydanticValidationError
) -> ValidationError:
    return ValidationError(
        f"Invalid driver location ({lat}, {lon})",
        details={
            "driver_id": driver_id,
            "lat": lat,
            "lon": lon,
            "errors": error.errors(include_url=False),
        },
    )
