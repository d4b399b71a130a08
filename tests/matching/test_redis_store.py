from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import ConnectionError, DataError, ResponseError, TimeoutError

from geomatch.core.exceptions import NetworkError, PermanentError, StoreError, TransientError
from geomatch.driver import Driver
from geomatch.matching.availability_pool import DriverAvailabilityPool
from geomatch.matching.redis_store import RedisSetStore
from geomatch.settings import RedisSettings


@pytest.fixture
def mock_redis():
    client = MagicMock()
    client.sadd.return_value = 1
    client.srem.return_value = 1
    client.smembers.return_value = set()
    return client


@pytest.fixture
def store(mock_redis) -> RedisSetStore:
    return RedisSetStore(mock_redis)


@pytest.mark.unit
class TestRedisSetStore:
    def test_add_uses_sadd(self, store, mock_redis):
        assert store.add("drivers:9q8yy", "member") == 1
        mock_redis.sadd.assert_called_once_with("drivers:9q8yy", "member")

    def test_remove_uses_srem(self, store, mock_redis):
        mock_redis.srem.return_value = 0
        assert store.remove("drivers:9q8yy", "member") == 0
        mock_redis.srem.assert_called_once_with("drivers:9q8yy", "member")

    def test_members_uses_smembers(self, store, mock_redis):
        mock_redis.smembers.return_value = {"a", "b"}
        assert sorted(store.members("drivers:9q8yy")) == ["a", "b"]

    @pytest.mark.parametrize("error", [ConnectionError("refused"), TimeoutError("timed out")])
    def test_connection_failures_become_network_errors(self, store, mock_redis, error):
        mock_redis.smembers.side_effect = error

        with pytest.raises(NetworkError) as exc_info:
            store.members("drivers:9q8yy")

        assert isinstance(exc_info.value, TransientError)
        assert exc_info.value.details == {"command": "smembers", "key": "drivers:9q8yy"}
        assert exc_info.value.__cause__ is error

    @pytest.mark.parametrize(
        "error",
        [
            ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value"),
            DataError("Invalid input of type: NoneType"),
        ],
    )
    def test_rejected_commands_become_store_errors(self, store, mock_redis, error):
        mock_redis.srem.side_effect = error

        with pytest.raises(StoreError) as exc_info:
            store.remove("drivers:9q8yy", "member")

        assert isinstance(exc_info.value, PermanentError)
        assert exc_info.value.details == {"command": "srem", "key": "drivers:9q8yy"}
        assert exc_info.value.__cause__ is error

    def test_ping(self, store, mock_redis):
        mock_redis.ping.return_value = True
        assert store.ping() is True

    def test_close(self, store, mock_redis):
        store.close()
        mock_redis.close.assert_called_once()

    def test_from_settings(self):
        settings = RedisSettings(host="cache", port=6380, db=2, password="secret", ssl=True)

        with patch("geomatch.matching.redis_store.redis.Redis") as redis_cls:
            RedisSetStore.from_settings(settings)

        redis_cls.assert_called_once_with(
            host="cache",
            port=6380,
            db=2,
            password="secret",
            ssl=True,
            decode_responses=True,
        )

    def test_empty_password_passed_as_none(self):
        with patch("geomatch.matching.redis_store.redis.Redis") as redis_cls:
            RedisSetStore.from_settings(RedisSettings(password=""))

        assert redis_cls.call_args.kwargs["password"] is None

    def test_pool_over_redis_store(self, store, mock_redis):
        driver = Driver.create("Alice", 37.7750, -122.4190, driver_id="d1")
        pool = DriverAvailabilityPool(store)

        pool.add(driver)

        mock_redis.sadd.assert_called_once_with("drivers:9q8yy", driver.snapshot())
