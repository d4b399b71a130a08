import pytest
from pydantic import ValidationError

from geomatch.core.exceptions import StateError
from geomatch.driver import Driver, DriverStatus
from geomatch.rider import Rider
from geomatch.trip import Trip, TripState

SF_DRIVER = (37.7750, -122.4190)


@pytest.mark.unit
class TestDriver:
    def test_create_derives_geohash(self):
        driver = Driver.create("Alice", *SF_DRIVER)
        assert driver.geohash == "9q8yy"
        assert driver.status == DriverStatus.AVAILABLE
        assert driver.is_available
        assert len(driver.driver_id) == 32

    def test_create_with_precision(self):
        assert len(Driver.create("Alice", *SF_DRIVER, precision=7).geohash) == 7

    @pytest.mark.parametrize("lat,lon", [(91.0, 0.0), (-90.5, 0.0), (0.0, 181.0)])
    def test_coordinates_validated(self, lat, lon):
        with pytest.raises(ValidationError):
            Driver.create("Alice", lat, lon)

    def test_frozen(self):
        driver = Driver.create("Alice", *SF_DRIVER)
        with pytest.raises(ValidationError):
            driver.latitude = 0.0

    def test_relocated_updates_geohash_with_coordinates(self):
        driver = Driver.create("Alice", *SF_DRIVER, driver_id="d1")
        moved = driver.relocated(37.8044, -122.2712)

        assert moved.driver_id == "d1"
        assert moved.geohash != driver.geohash
        assert driver.geohash == "9q8yy"

    def test_with_status_accepts_string(self):
        driver = Driver.create("Alice", *SF_DRIVER)
        busy = driver.with_status("on_trip")
        assert busy.status is DriverStatus.ON_TRIP
        assert not busy.is_available

    def test_geohash_must_cover_coordinates(self):
        with pytest.raises(ValidationError, match="does not cover"):
            Driver(name="Alice", latitude=SF_DRIVER[0], longitude=SF_DRIVER[1], geohash="zzzzz")

    def test_geohash_precision_taken_from_stored_value(self):
        driver = Driver(name="Alice", latitude=SF_DRIVER[0], longitude=SF_DRIVER[1], geohash="9q8")
        assert driver.geohash == "9q8"

    @pytest.mark.parametrize("lat,lon", [(95.0, 0.0), (0.0, -200.0)])
    def test_relocated_validates_coordinates(self, lat, lon):
        driver = Driver.create("Alice", *SF_DRIVER)
        with pytest.raises(ValidationError):
            driver.relocated(lat, lon)

    def test_with_status_rejects_unknown_status(self):
        driver = Driver.create("Alice", *SF_DRIVER)
        with pytest.raises(ValidationError):
            driver.with_status("offline")

    def test_snapshot_with_mismatched_geohash_rejected(self):
        raw = Driver.create("Alice", *SF_DRIVER, driver_id="d1").snapshot().replace("9q8yy", "u4pru")
        with pytest.raises(ValidationError):
            Driver.from_snapshot(raw)

    def test_snapshot_is_stable(self):
        driver = Driver.create("Alice", *SF_DRIVER, driver_id="d1")
        same = Driver.create("Alice", *SF_DRIVER, driver_id="d1")
        assert driver.snapshot() == same.snapshot()
        assert Driver.from_snapshot(driver.snapshot()) == driver


@pytest.mark.unit
class TestTrip:
    @pytest.fixture
    def trip(self) -> Trip:
        return Trip(
            trip_id="t1",
            rider_id="r1",
            driver_id="d1",
            start_location=(37.7749, -122.4194),
            end_location=(37.7849, -122.4094),
        )

    def test_valid_transitions(self, trip):
        assert trip.state == TripState.REQUESTED
        trip.transition_to(TripState.ACCEPTED)
        trip.transition_to(TripState.COMPLETED)
        assert trip.state == TripState.COMPLETED
        assert trip.is_completed

    def test_can_become(self):
        assert TripState.REQUESTED.can_become(TripState.ACCEPTED)
        assert not TripState.REQUESTED.can_become(TripState.COMPLETED)
        assert not TripState.COMPLETED.can_become(TripState.REQUESTED)

    def test_cannot_skip_acceptance(self, trip):
        with pytest.raises(StateError):
            trip.transition_to(TripState.COMPLETED)

    def test_completed_is_terminal(self, trip):
        trip.transition_to(TripState.ACCEPTED)
        trip.transition_to(TripState.COMPLETED)
        with pytest.raises(StateError):
            trip.transition_to(TripState.ACCEPTED)


@pytest.mark.unit
class TestRider:
    def test_generates_id(self):
        rider = Rider(name="Rita")
        assert len(rider.rider_id) == 32

    def test_name_required(self):
        with pytest.raises(ValidationError):
            Rider(name="")
