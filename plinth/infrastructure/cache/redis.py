"""Redis client handle with lifecycle management.

``RedisModule`` is the service module activated by the redis strategy when
``USE_REDIS`` is enabled. It owns one ``redis.asyncio`` client; concurrent
requests share it and multiplex over its connection pool.
"""

from typing import Any

import redis.asyncio as aioredis
from loguru import logger
from redis.exceptions import RedisError

from plinth.core.config import RedisConfig
from plinth.core.exceptions import ConfigurationError

SOCKET_TIMEOUT_SECONDS = 5


class RedisModule:
    """Shared cache handle exposing the commonly used Redis commands.

    Args:
        config: Redis configuration.
        client: Pre-built client. Built from ``config`` when omitted.
    """

    name = "redis"

    def __init__(self, config: RedisConfig, client: aioredis.Redis | None = None) -> None:
        self.config = config
        self.client = client or aioredis.Redis(
            host=config.host,
            port=config.port,
            username=config.username or None,
            password=config.password or None,
            db=config.db,
            decode_responses=True,
            socket_connect_timeout=SOCKET_TIMEOUT_SECONDS,
            socket_timeout=SOCKET_TIMEOUT_SECONDS,
        )

    async def start(self) -> None:
        """Verify connectivity with ``PING``.

        Raises:
            ConfigurationError: If Redis cannot be reached.
        """
        is_healthy, error = await self.check()
        if not is_healthy:
            raise ConfigurationError(
                f"Redis connection to {self.config.host}:{self.config.port} "
                f"failed: {error}"
            )
        logger.info("Redis connection established")

    async def stop(self) -> None:
        """Close the client and its connection pool."""
        await self.client.aclose()
        logger.info("Redis client disconnected")

    async def check(self) -> tuple[bool, str | None]:
        """Run the ``PING`` liveness probe.

        Returns:
            tuple[bool, str | None]: Whether the probe succeeded and, if not,
                the error message.
        """
        try:
            await self.client.ping()
        except (RedisError, OSError) as e:
            return False, str(e)
        else:
            return True, None

    async def get(self, key: str) -> str | None:
        """Get a string value, or None when the key is missing."""
        return await self.client.get(key)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:  # noqa: ANN401
        """Set a value, optionally expiring after ``ttl`` seconds."""
        await self.client.set(key, value, ex=ttl)

    async def delete(self, key: str) -> int:
        """Delete a key and return the number of keys removed."""
        return int(await self.client.delete(key))

    async def exists(self, key: str) -> bool:
        """Whether the key exists."""
        return bool(await self.client.exists(key))

    async def expire(self, key: str, seconds: int) -> bool:
        """Set a timeout on a key."""
        return bool(await self.client.expire(key, seconds))

    async def ttl(self, key: str) -> int:
        """Remaining time to live in seconds (-1 without expiry, -2 if missing)."""
        return int(await self.client.ttl(key))

    async def incr(self, key: str) -> int:
        """Increment an integer value by one."""
        return int(await self.client.incr(key))

    async def decr(self, key: str) -> int:
        """Decrement an integer value by one."""
        return int(await self.client.decr(key))

    async def hset(self, key: str, field: str, value: Any) -> int:  # noqa: ANN401
        """Set a hash field and return the number of fields added."""
        return int(await self.client.hset(key, field, value))

    async def hget(self, key: str, field: str) -> str | None:
        """Get a hash field."""
        return await self.client.hget(key, field)

    async def hgetall(self, key: str) -> dict[str, str]:
        """Get every field of a hash."""
        return dict(await self.client.hgetall(key))

    async def hdel(self, key: str, *fields: str) -> int:
        """Delete hash fields and return how many were removed."""
        return int(await self.client.hdel(key, *fields))
