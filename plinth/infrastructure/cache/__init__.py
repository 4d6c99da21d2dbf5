"""Redis cache infrastructure."""

from plinth.infrastructure.cache.redis import RedisModule

__all__ = ["RedisModule"]
