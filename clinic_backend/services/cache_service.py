"""Redis cache service backing the optional permission cache."""

import json
import logging
from typing import Optional, Any
import redis

from clinic_backend.core.config import settings

logger = logging.getLogger("clinic_backend")


class CacheService:
    """Redis-backed caching service. Connection failures are never fatal."""

    def __init__(self):
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                max_connections=50,
            )
        return self._client

    def get(self, key: str) -> Optional[str]:
        """Get a cached value by key."""
        try:
            return self.client.get(key)
        except redis.RedisError:
            return None

    def set(self, key: str, value: str, ttl_seconds: int = 60) -> None:
        """Set a cached value with TTL."""
        try:
            self.client.setex(key, ttl_seconds, value)
        except redis.RedisError:
            logger.debug("Cache unavailable, skipping set of %s", key)

    def get_json(self, key: str) -> Optional[Any]:
        """Get and parse a JSON cached value."""
        raw = self.get(key)
        if raw:
            return json.loads(raw)
        return None

    def set_json(self, key: str, value: Any, ttl_seconds: int = 60) -> None:
        """Serialize and cache a JSON value."""
        self.set(key, json.dumps(value, default=str), ttl_seconds)

    def delete(self, key: str) -> None:
        """Delete a cached key."""
        try:
            self.client.delete(key)
        except redis.RedisError:
            logger.warning("Cache unavailable, could not delete %s", key)

    def incr(self, key: str) -> Optional[int]:
        """Increment a counter, creating it at 1."""
        try:
            return self.client.incr(key)
        except redis.RedisError:
            logger.warning("Cache unavailable, could not increment %s", key)
            return None

    def invalidate_pattern(self, pattern: str) -> None:
        """Delete all keys matching a pattern."""
        try:
            keys = list(self.client.scan_iter(match=pattern))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError:
            logger.warning("Cache unavailable, could not invalidate %s", pattern)

    def health_check(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False


cache_service = CacheService()
