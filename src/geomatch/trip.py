"""Ride trips: requested, then accepted with a driver, then completed."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from geomatch.core.exceptions import StateError


class TripState(str, Enum):
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    COMPLETED = "completed"

    def can_become(self, target: "TripState") -> bool:
        return target in VALID_TRANSITIONS[self]


VALID_TRANSITIONS: dict[TripState, frozenset[TripState]] = {
    TripState.REQUESTED: frozenset({TripState.ACCEPTED}),
    TripState.ACCEPTED: frozenset({TripState.COMPLETED}),
    TripState.COMPLETED: frozenset(),
}


class Trip(BaseModel):
    """A rider's trip and the driver assigned to it.

    Locations are ``(lat, lon)`` pairs. ``completed_at`` is set by the record
    store when the trip closes.
    """

    trip_id: str
    rider_id: str
    driver_id: str
    state: TripState = TripState.REQUESTED
    start_location: tuple[float, float]
    end_location: tuple[float, float]
    requested_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.state is TripState.COMPLETED

    def transition_to(self, new_state: TripState) -> None:
        if not self.state.can_become(new_state):
            raise StateError(
                f"Trip {self.trip_id} cannot go from {self.state.value} to {new_state.value}",
                details={"trip_id": self.trip_id, "state": self.state.value},
            )
        self.state = new_state
