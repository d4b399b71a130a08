from pathlib import Path

import pytest

from geomatch.db.database import init_database
from geomatch.matching.availability_pool import DriverAvailabilityPool, InMemorySetStore
from geomatch.matching.matcher import NearestDriverMatcher
from geomatch.matching.ride_service import RideService
from geomatch.match_logging.context import LogContext


@pytest.fixture(autouse=True)
def reset_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def set_store() -> InMemorySetStore:
    return InMemorySetStore()


@pytest.fixture
def pool(set_store: InMemorySetStore) -> DriverAvailabilityPool:
    return DriverAvailabilityPool(set_store)


@pytest.fixture
def matcher(pool: DriverAvailabilityPool) -> NearestDriverMatcher:
    return NearestDriverMatcher(pool)


@pytest.fixture
def temp_sqlite_db(tmp_path: Path) -> Path:
    """Temporary SQLite database for persistence tests."""
    return tmp_path / "test_geomatch.db"


@pytest.fixture
def session_maker(temp_sqlite_db: Path):
    return init_database(str(temp_sqlite_db))


@pytest.fixture
def ride_service(session_maker, pool, matcher) -> RideService:
    return RideService(session_maker, pool, matcher)
