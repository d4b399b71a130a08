"""Driver repository for CRUD operations."""

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from geomatch.driver import Driver as DriverDomain
from geomatch.driver import DriverStatus

from ..schema import Driver


class DriverRepository:
    """Repository for driver records, returning domain models."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, driver: DriverDomain) -> None:
        self.session.add(
            Driver(
                id=driver.driver_id,
                name=driver.name,
                latitude=driver.latitude,
                longitude=driver.longitude,
                geohash=driver.geohash,
                status=driver.status.value,
            )
        )

    def get(self, driver_id: str) -> DriverDomain | None:
        row = self.session.get(Driver, driver_id)
        if row is None:
            return None
        return self._to_domain(row)

    def save(self, driver: DriverDomain) -> None:
        """Write location, geohash and status of an existing driver together."""
        row = self.session.get(Driver, driver.driver_id)
        if row is None:
            return
        row.latitude = driver.latitude
        row.longitude = driver.longitude
        row.geohash = driver.geohash
        row.status = driver.status.value

    def update_location(
        self, driver_id: str, latitude: float, longitude: float, geohash: str
    ) -> DriverDomain | None:
        """Move a driver without touching its status; return the row as now stored.

        The status in the result is re-read from the database, so a status
        change committed by another session since this one last read the row
        is reflected rather than overwritten.
        """
        self.session.execute(
            update(Driver)
            .where(Driver.id == driver_id)
            .values(latitude=latitude, longitude=longitude, geohash=geohash)
        )
        row = self.session.get(Driver, driver_id, populate_existing=True)
        return None if row is None else self._to_domain(row)

    def update_status(self, driver_id: str, status: DriverStatus) -> None:
        row = self.session.get(Driver, driver_id)
        if row:
            row.status = DriverStatus(status).value

    def list_by_status(self, status: DriverStatus) -> list[DriverDomain]:
        stmt = select(Driver).where(Driver.status == DriverStatus(status).value)
        result = self.session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars().all()]

    @staticmethod
    def _to_domain(row: Driver) -> DriverDomain:
        return DriverDomain(
            driver_id=row.id,
            name=row.name,
            latitude=row.latitude,
            longitude=row.longitude,
            geohash=row.geohash,
            status=DriverStatus(row.status),
        )
