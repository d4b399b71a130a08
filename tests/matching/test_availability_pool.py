import json

import pytest

from geomatch.core.exceptions import StateError
from geomatch.driver import Driver, DriverStatus
from geomatch.matching.availability_pool import (
    DriverAvailabilityPool,
    InMemorySetStore,
    PoolEntry,
    parse_snapshot,
)

SF_DRIVER = (37.7750, -122.4190)
OAKLAND = (37.8044, -122.2712)


@pytest.fixture
def driver() -> Driver:
    return Driver.create("Alice", *SF_DRIVER, driver_id="d1")


def reordered_snapshot(driver: Driver) -> str:
    """Same driver, serialized with its keys in reverse order."""
    fields = json.loads(driver.snapshot())
    return json.dumps(dict(reversed(list(fields.items()))))

def cells_holding(store: InMemorySetStore, pool: DriverAvailabilityPool, driver_id: str) -> list[str]:
    prefix = pool.key_for("")
    return [
        key[len(prefix):]
        for key in store.keys()
        if pool.contains(driver_id, key[len(prefix):])
    ]


@pytest.mark.unit
class TestInMemorySetStore:
    def test_add_returns_count_of_new_members(self, set_store):
        assert set_store.add("k", "a") == 1
        assert set_store.add("k", "a") == 0
        assert set_store.members("k") == ["a"]

    def test_remove_returns_count_removed(self, set_store):
        set_store.add("k", "a")
        assert set_store.remove("k", "a") == 1
        assert set_store.remove("k", "a") == 0
        assert set_store.members("k") == []

    def test_empty_sets_disappear(self, set_store):
        set_store.add("k", "a")
        set_store.remove("k", "a")
        assert set_store.keys() == []


@pytest.mark.unit
class TestParseSnapshot:
    def test_round_trip(self, driver):
        assert parse_snapshot(driver.snapshot()) == driver

    @pytest.mark.parametrize("raw", ["not json", "{}", '{"driver_id": "x"}', b"\xff"])
    def test_malformed_returns_none(self, raw):
        assert parse_snapshot(raw) is None

    def test_geohash_not_matching_coordinates_returns_none(self, driver):
        fields = json.loads(driver.snapshot())
        fields["geohash"] = "u4pru"
        assert parse_snapshot(json.dumps(fields)) is None

    def test_key_order_does_not_matter(self, driver):
        assert parse_snapshot(reordered_snapshot(driver)) == driver


@pytest.mark.unit
class TestDriverAvailabilityPool:
    def test_key_uses_prefix(self):
        pool = DriverAvailabilityPool(InMemorySetStore(), key_prefix="avail")
        assert pool.key_for("9q8yy") == "avail:9q8yy"

    def test_add_publishes_under_driver_cell(self, pool, driver):
        assert pool.add(driver) is True
        assert pool.members("9q8yy") == [driver.snapshot()]
        assert pool.drivers_in("9q8yy") == [driver]

    def test_add_rejects_unavailable_driver(self, pool, driver):
        with pytest.raises(StateError):
            pool.add(driver.with_status(DriverStatus.ON_TRIP))
        assert pool.members("9q8yy") == []

    def test_claim_removes_exact_snapshot_once(self, pool, driver):
        pool.add(driver)
        assert pool.claim(driver) is True
        assert pool.claim(driver) is False
        assert pool.members(driver.geohash) == []

    def test_claim_ignores_different_snapshot(self, pool, driver):
        pool.add(driver)
        renamed = driver.model_copy(update={"name": "Alicia"})
        assert pool.claim(renamed) is False
        assert pool.contains("d1", driver.geohash)

    def test_claim_entry_removes_member_as_read(self, pool, set_store, driver):
        raw = reordered_snapshot(driver)
        set_store.add(pool.key_for(driver.geohash), raw)

        [entry] = pool.entries_in(driver.geohash)

        assert entry == PoolEntry(driver, raw, "9q8yy")
        assert pool.claim(driver) is False
        assert pool.claim_entry(entry) is True
        assert pool.claim_entry(entry) is False
        assert pool.members(driver.geohash) == []

    def test_remove_with_stored_member(self, pool, set_store, driver):
        raw = reordered_snapshot(driver)
        set_store.add(pool.key_for(driver.geohash), raw)

        assert pool.remove(driver, raw) is True
        assert pool.members(driver.geohash) == []

    def test_relocate_moves_driver_between_cells(self, pool, set_store, driver):
        pool.add(driver)
        moved = driver.relocated(*OAKLAND)

        pool.relocate(driver, moved)

        assert moved.geohash != driver.geohash
        assert pool.members(driver.geohash) == []
        assert pool.drivers_in(moved.geohash) == [moved]
        assert cells_holding(set_store, pool, "d1") == [moved.geohash]

    def test_relocate_within_cell_replaces_snapshot(self, pool, driver):
        pool.add(driver)
        nudged = driver.relocated(SF_DRIVER[0] + 0.0001, SF_DRIVER[1])

        pool.relocate(driver, nudged)

        assert nudged.geohash == driver.geohash
        assert pool.drivers_in(driver.geohash) == [nudged]

    def test_relocate_to_unavailable_only_removes(self, pool, driver):
        pool.add(driver)
        moved = driver.relocated(*OAKLAND).with_status(DriverStatus.ON_TRIP)

        pool.relocate(driver, moved)

        assert pool.members(driver.geohash) == []
        assert pool.members(moved.geohash) == []

    def test_remove_evicts_stale_snapshot_with_same_id(self, pool, set_store, driver):
        stale = driver.relocated(SF_DRIVER[0] + 0.0001, SF_DRIVER[1])
        set_store.add(pool.key_for(stale.geohash), stale.snapshot())

        assert pool.remove(driver) is True
        assert pool.members(driver.geohash) == []

    def test_remove_leaves_other_drivers(self, pool, driver):
        other = Driver.create("Bob", *SF_DRIVER, driver_id="d2")
        pool.add(driver)
        pool.add(other)

        pool.remove(driver)

        assert pool.drivers_in(driver.geohash) == [other]

    def test_remove_missing_driver_returns_false(self, pool, driver):
        assert pool.remove(driver) is False

    def test_drivers_in_skips_malformed_members(self, pool, set_store, driver):
        pool.add(driver)
        set_store.add(pool.key_for(driver.geohash), "garbage")

        assert pool.drivers_in(driver.geohash) == [driver]
        assert len(pool.members(driver.geohash)) == 2

    def test_entries_in_skips_malformed_members(self, pool, set_store, driver):
        pool.add(driver)
        set_store.add(pool.key_for(driver.geohash), "garbage")

        assert pool.entries_in(driver.geohash) == [PoolEntry(driver, driver.snapshot(), "9q8yy")]

    def test_lifecycle_keeps_driver_in_exactly_one_cell(self, pool, set_store, driver):
        pool.add(driver)
        assert cells_holding(set_store, pool, "d1") == [driver.geohash]

        moved = driver.relocated(*OAKLAND)
        pool.relocate(driver, moved)
        assert cells_holding(set_store, pool, "d1") == [moved.geohash]

        busy = moved.with_status(DriverStatus.ON_TRIP)
        pool.remove(moved)
        assert cells_holding(set_store, pool, "d1") == []

        back = busy.with_status(DriverStatus.AVAILABLE)
        pool.add(back)
        assert cells_holding(set_store, pool, "d1") == [back.geohash]
