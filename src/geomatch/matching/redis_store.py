import logging
from typing import Any

import redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from geomatch.core.exceptions import NetworkError, StoreError
from geomatch.settings import RedisSettings

logger = logging.getLogger(__name__)


class RedisSetStore:
    """SetStore backed by Redis sets (SADD / SREM / SMEMBERS).

    Each call is a single Redis command and therefore atomic on its own;
    nothing spans keys.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_settings(cls, settings: RedisSettings) -> "RedisSetStore":
        client = redis.Redis(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            password=settings.password or None,
            ssl=settings.ssl,
            decode_responses=True,
        )
        return cls(client)

    def add(self, key: str, member: str) -> int:
        return int(self._call("sadd", key, member))

    def remove(self, key: str, member: str) -> int:
        return int(self._call("srem", key, member))

    def members(self, key: str) -> list[str]:
        return list(self._call("smembers", key))

    def ping(self) -> bool:
        return bool(self._call("ping"))

    def close(self) -> None:
        self._client.close()

    def _call(self, command: str, *args: Any) -> Any:
        try:
            return getattr(self._client, command)(*args)
        except (ConnectionError, TimeoutError) as e:
            logger.error(f"Redis {command.upper()} failed: {e}")
            raise NetworkError(
                f"Redis {command.upper()} failed: {e}",
                details={"command": command, "key": args[0] if args else None},
            ) from e
        except RedisError as e:
            logger.error(f"Redis {command.upper()} rejected: {e}")
            raise StoreError(
                f"Redis {command.upper()} rejected: {e}",
                details={"command": command, "key": args[0] if args else None},
            ) from e
