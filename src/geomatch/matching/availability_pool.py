"""Geohash-bucketed pool of available drivers.

Each cell key (``drivers:<geohash>``) maps to a set of serialized driver
snapshots. A snapshot is a copy of the driver at insertion time and is never
updated in place: every mutation must remove the stored snapshot and add a
new one under the right cell.

Operations are atomic per key and member only. A relocation is two
independent operations, so concurrent readers may briefly see the driver in
neither cell.
"""

import logging
import threading
from typing import NamedTuple, Protocol

from pydantic import ValidationError as PydanticValidationError

from geomatch.core.exceptions import StateError
from geomatch.driver import Driver

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "drivers"


class SetStore(Protocol):
    """Key -> set-of-strings store (Redis SADD/SREM/SMEMBERS semantics)."""

    def add(self, key: str, member: str) -> int: ...

    def remove(self, key: str, member: str) -> int: ...

    def members(self, key: str) -> list[str]: ...


class InMemorySetStore:
    """Process-local SetStore for tests and single-process deployments."""

    def __init__(self) -> None:
        self._sets: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def add(self, key: str, member: str) -> int:
        with self._lock:
            members = self._sets.setdefault(key, set())
            if member in members:
                return 0
            members.add(member)
            return 1

    def remove(self, key: str, member: str) -> int:
        with self._lock:
            members = self._sets.get(key)
            if not members or member not in members:
                return 0
            members.discard(member)
            if not members:
                del self._sets[key]
            return 1

    def members(self, key: str) -> list[str]:
        with self._lock:
            return list(self._sets.get(key, ()))

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._sets)

    def clear(self) -> None:
        with self._lock:
            self._sets.clear()


class PoolEntry(NamedTuple):
    """A parsed driver together with the member string and cell it was read from."""

    driver: Driver
    member: str
    cell: str


def parse_snapshot(raw: str | bytes) -> Driver | None:
    """Deserialize a pool member, returning None for malformed entries."""
    try:
        return Driver.from_snapshot(raw)
    except (PydanticValidationError, ValueError) as e:
        logger.debug(f"Skipping malformed pool member {raw!r}: {e}")
        return None


class DriverAvailabilityPool:
    def __init__(self, store: SetStore, key_prefix: str = DEFAULT_KEY_PREFIX):
        self._store = store
        self._key_prefix = key_prefix

    def key_for(self, cell: str) -> str:
        return f"{self._key_prefix}:{cell}"

    def add(self, driver: Driver) -> bool:
        """Publish an available driver under its current cell."""
        if not driver.is_available:
            raise StateError(
                f"Driver {driver.driver_id} is {driver.status.value}; only available drivers are pooled",
                details={"driver_id": driver.driver_id, "status": driver.status.value},
            )
        added = self._store.add(self.key_for(driver.geohash), driver.snapshot())
        return bool(added)

    def claim(self, driver: Driver, member: str | None = None) -> bool:
        """Remove exactly one stored member; True only for the caller that removed it.

        ``member`` is the string as read from the store. Without it the
        driver's canonical snapshot is used, which only matches members this
        pool wrote itself. Concurrent requests matching the same driver race
        on this call and the store's per-member atomicity picks one winner.
        """
        raw = driver.snapshot() if member is None else member
        removed = self._store.remove(self.key_for(driver.geohash), raw)
        return bool(removed)

    def claim_entry(self, entry: PoolEntry) -> bool:
        """Claim a member exactly as it was read, from the cell it was read in."""
        return bool(self._store.remove(self.key_for(entry.cell), entry.member))

    def remove(self, driver: Driver, member: str | None = None) -> bool:
        """Withdraw a driver from its cell.

        ``member`` is the stored string when the caller has it; otherwise the
        driver's canonical snapshot is tried. If that exact member is gone
        but another snapshot with the same driver id sits in the cell, the
        stale entry is evicted as well.
        """
        if self.claim(driver, member):
            return True
        return self._evict_stale(driver)

    def relocate(self, old: Driver, new: Driver) -> None:
        """Move a driver between cells: remove the old snapshot, then add the new one."""
        self.remove(old)
        if new.is_available:
            self.add(new)

    def members(self, cell: str) -> list[str]:
        return self._store.members(self.key_for(cell))

    def entries_in(self, cell: str) -> list[PoolEntry]:
        entries = []
        for raw in self.members(cell):
            driver = parse_snapshot(raw)
            if driver is not None:
                entries.append(PoolEntry(driver, raw, cell))
        return entries

    def drivers_in(self, cell: str) -> list[Driver]:
        return [entry.driver for entry in self.entries_in(cell)]

    def contains(self, driver_id: str, cell: str) -> bool:
        return any(driver.driver_id == driver_id for driver in self.drivers_in(cell))

    def _evict_stale(self, driver: Driver) -> bool:
        key = self.key_for(driver.geohash)
        evicted = False
        for raw in self._store.members(key):
            stored = parse_snapshot(raw)
            if stored is not None and stored.driver_id == driver.driver_id:
                self._store.remove(key, raw)
                evicted = True
                logger.warning(
                    f"Evicted stale snapshot of driver {driver.driver_id} from {key}"
                )
        return evicted
