"""Redis caching for read-mostly records."""
from typing import Optional, Type, TypeVar

import redis.asyncio as aioredis
from pydantic import BaseModel
from redis.asyncio import Redis

from medaid.config import settings
from medaid.utils.logging_config import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class CacheManager:
    """
    Manager for Redis caching operations.

    The cache is an optimisation only: every failure is logged and reported
    as a miss so callers fall through to the database.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._redis: Optional[Redis] = None

    async def get_redis(self) -> Redis:
        """Get or create the Redis connection."""
        if self._redis is None:
            self._redis = aioredis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        return self._redis

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def get_model(self, key: str, model_cls: Type[ModelT]) -> Optional[ModelT]:
        """
        Get a cached pydantic model.

        Args:
            key: Cache key
            model_cls: Model class to validate the cached JSON into

        Returns:
            Model instance or None on miss/error
        """
        if not self.enabled:
            return None
        try:
            redis_client = await self.get_redis()
            value = await redis_client.get(key)
            if value is None:
                logger.debug(f"Cache miss: {key}")
                return None

            logger.debug(f"Cache hit: {key}")
            return model_cls.model_validate_json(value)
        except Exception as e:
            logger.warning(f"Cache get error for key '{key}': {str(e)}")
            return None

    async def set_model(self, key: str, value: BaseModel, ttl: int = 300) -> bool:
        """
        Cache a pydantic model as JSON with a TTL.

        Args:
            key: Cache key
            value: Model to cache
            ttl: Time to live in seconds (default: 300 = 5 minutes)

        Returns:
            True if successful, False otherwise
        """
        if not self.enabled:
            return False
        try:
            redis_client = await self.get_redis()
            await redis_client.setex(key, ttl, value.model_dump_json())
            logger.debug(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.warning(f"Cache set error for key '{key}': {str(e)}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key; returns True if something was removed."""
        if not self.enabled:
            return False
        try:
            redis_client = await self.get_redis()
            result = await redis_client.delete(key)
            logger.debug(f"Cache delete: {key}")
            return bool(result)
        except Exception as e:
            logger.warning(f"Cache delete error for key '{key}': {str(e)}")
            return False


# Global cache manager instance
cache_manager = CacheManager(enabled=settings.CACHE_ENABLED)


def cache_key_builder(*parts: object) -> str:
    """
    Build a cache key from parts.

    Example:
        >>> cache_key_builder("provider", 3)
        'provider:3'
    """
    return ":".join(str(part) for part in parts)


# Cache key TTL constants (in seconds)
CACHE_TTL_PROVIDER = 600  # 10 minutes
