"""
Redis caching layer for Engagement Service
"""
import redis.asyncio as redis
from typing import Optional, List, Any
import json
import logging

from .config import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis cache manager for hot engagement reads"""

    def __init__(self):
        self.redis: Optional[redis.Redis] = None

    async def connect(self):
        """Connect to Redis"""
        if not settings.REDIS_ENABLED:
            logger.info("Redis caching is disabled")
            return

        try:
            self.redis = redis.from_url(
                f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}",
                password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
                encoding="utf-8",
                decode_responses=True,
            )
            # Test connection
            await self.redis.ping()
            logger.info("Connected to Redis successfully")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis: {e}. Continuing without cache.")
            self.redis = None

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis:
            await self.redis.aclose()
            logger.info("Disconnected from Redis")

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if not self.redis:
            return None

        try:
            value = await self.redis.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception as e:
            logger.error(f"Error getting cache key {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 300):
        """Set value in cache with TTL"""
        if not self.redis:
            return

        try:
            await self.redis.setex(key, ttl, json.dumps(value, default=str))
        except Exception as e:
            logger.error(f"Error setting cache key {key}: {e}")

    async def delete(self, key: str):
        """Delete key from cache"""
        if not self.redis:
            return

        try:
            await self.redis.delete(key)
        except Exception as e:
            logger.error(f"Error deleting cache key {key}: {e}")

    async def delete_pattern(self, pattern: str):
        """Delete all keys matching pattern"""
        if not self.redis:
            return

        try:
            keys = []
            async for key in self.redis.scan_iter(match=pattern):
                keys.append(key)

            if keys:
                await self.redis.delete(*keys)
                logger.info(f"Deleted {len(keys)} keys matching pattern {pattern}")
        except Exception as e:
            logger.error(f"Error deleting cache pattern {pattern}: {e}")

    # Engagement-specific cache methods
    def _trending_key(self, limit: int) -> str:
        """Generate cache key for a trending list of a given length"""
        return f"engagement:trending:{limit}"

    def _unread_key(self, user_id: str) -> str:
        """Generate cache key for unread notification count"""
        return f"engagement:unread:{user_id}"

    def _suggestions_key(self, user_id: str, limit: int) -> str:
        """Generate cache key for connection suggestions"""
        return f"engagement:suggestions:{user_id}:{limit}"

    async def get_trending(self, limit: int) -> Optional[List[dict]]:
        """Get cached trending list"""
        return await self.get(self._trending_key(limit))

    async def set_trending(self, limit: int, topics: List[dict]):
        """Cache trending list"""
        await self.set(self._trending_key(limit), topics, settings.CACHE_TTL_TRENDING)

    async def invalidate_trending(self):
        """Drop every cached trending list"""
        await self.delete_pattern("engagement:trending:*")

    async def get_unread_count(self, user_id: str) -> Optional[int]:
        """Get cached unread notification count"""
        return await self.get(self._unread_key(user_id))

    async def set_unread_count(self, user_id: str, count: int):
        """Cache unread notification count"""
        await self.set(self._unread_key(user_id), count, settings.CACHE_TTL_UNREAD_COUNT)

    async def invalidate_unread_count(self, user_id: str):
        """Invalidate unread notification count"""
        await self.delete(self._unread_key(user_id))

    async def get_suggestions(self, user_id: str, limit: int) -> Optional[List[dict]]:
        """Get cached suggestions"""
        return await self.get(self._suggestions_key(user_id, limit))

    async def set_suggestions(self, user_id: str, limit: int, users: List[dict]):
        """Cache suggestions"""
        await self.set(
            self._suggestions_key(user_id, limit), users, settings.CACHE_TTL_SUGGESTIONS
        )

    async def invalidate_suggestions(self, *user_ids: str):
        """Invalidate suggestions of the given users"""
        for user_id in user_ids:
            await self.delete_pattern(f"engagement:suggestions:{user_id}:*")


# Global cache instance
cache = RedisCache()


async def get_cache() -> RedisCache:
    """Dependency for getting cache instance"""
    return cache
