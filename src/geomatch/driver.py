"""Driver model and its pool snapshot format."""

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from geomatch.geo import geohash as geohash_codec


class DriverStatus(str, Enum):
    AVAILABLE = "available"
    ON_TRIP = "on_trip"


class Driver(BaseModel):
    """Immutable driver state.

    ``geohash`` is derived from the coordinates; both only change together
    through ``relocated``. The JSON form produced by ``snapshot`` is what the
    availability pool stores, so two equal drivers always serialize to the
    same member string.
    """

    model_config = ConfigDict(frozen=True)

    driver_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    geohash: str = Field(min_length=1, max_length=geohash_codec.MAX_PRECISION)
    status: DriverStatus = DriverStatus.AVAILABLE

    @model_validator(mode="after")
    def check_geohash_matches_location(self) -> "Driver":
        expected = geohash_codec.encode(self.latitude, self.longitude, len(self.geohash))
        if self.geohash != expected:
            raise ValueError(
                f"geohash {self.geohash!r} does not cover ({self.latitude}, {self.longitude}); "
                f"expected {expected!r}"
            )
        return self

    @classmethod
    def create(
        cls,
        name: str,
        latitude: float,
        longitude: float,
        status: DriverStatus = DriverStatus.AVAILABLE,
        driver_id: str | None = None,
        precision: int = geohash_codec.DRIVER_PRECISION,
    ) -> "Driver":
        fields = {
            "name": name,
            "latitude": latitude,
            "longitude": longitude,
            "geohash": geohash_codec.encode(latitude, longitude, precision),
            "status": status,
        }
        if driver_id is not None:
            fields["driver_id"] = driver_id
        return cls(**fields)

    @property
    def is_available(self) -> bool:
        return self.status == DriverStatus.AVAILABLE

    def relocated(
        self, latitude: float, longitude: float, precision: int = geohash_codec.DRIVER_PRECISION
    ) -> "Driver":
        return self._revalidated(
            latitude=latitude,
            longitude=longitude,
            geohash=geohash_codec.encode(latitude, longitude, precision),
        )

    def with_status(self, status: DriverStatus) -> "Driver":
        return self._revalidated(status=status)

    def _revalidated(self, **changes: Any) -> "Driver":
        # model_copy(update=...) would skip field and geohash validation
        return self.model_validate({**self.model_dump(), **changes})

    def snapshot(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_snapshot(cls, raw: str | bytes) -> "Driver":
        return cls.model_validate_json(raw)
