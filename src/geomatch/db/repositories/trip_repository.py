from sqlalchemy import select
from sqlalchemy.orm import Session

from geomatch.trip import Trip as TripDomain
from geomatch.trip import TripState

from ..schema import Trip
from ..utils import utc_now


class TripRepository:
    """Trip rows in and out as ``geomatch.trip.Trip`` models."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        trip_id: str,
        rider_id: str,
        driver_id: str,
        start_location: tuple[float, float],
        end_location: tuple[float, float],
        state: TripState = TripState.REQUESTED,
    ) -> None:
        row = Trip(trip_id=trip_id, rider_id=rider_id, driver_id=driver_id, state=state.value)
        row.start_latitude, row.start_longitude = start_location
        row.end_latitude, row.end_longitude = end_location
        row.requested_at = utc_now()
        self.session.add(row)

    def get(self, trip_id: str) -> TripDomain | None:
        row = self.session.get(Trip, trip_id)
        return None if row is None else self._to_domain(row)

    def update_state(self, trip_id: str, new_state: TripState) -> None:
        """Record a new state; reaching ``completed`` stamps ``completed_at``."""
        row = self.session.get(Trip, trip_id)
        if row is None:
            return
        row.state = TripState(new_state).value
        if row.state == TripState.COMPLETED.value:
            row.completed_at = utc_now()

    def list_for_driver(self, driver_id: str) -> list[TripDomain]:
        stmt = select(Trip).where(Trip.driver_id == driver_id).order_by(Trip.requested_at)
        return [self._to_domain(row) for row in self.session.scalars(stmt)]

    @staticmethod
    def _to_domain(row: Trip) -> TripDomain:
        return TripDomain(
            trip_id=row.trip_id,
            rider_id=row.rider_id,
            driver_id=row.driver_id,
            state=TripState(row.state),
            start_location=(row.start_latitude, row.start_longitude),
            end_location=(row.end_latitude, row.end_longitude),
            requested_at=row.requested_at,
            completed_at=row.completed_at,
        )
