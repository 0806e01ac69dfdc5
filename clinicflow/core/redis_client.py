"""Redis connection and the JSON cache used for catalog listings."""

import json
from typing import Any, cast

import redis
import structlog

from clinicflow.config import settings

logger = structlog.get_logger(__name__)

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create the shared Redis client.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Ping Redis; the service runs without it, only uncached."""
    try:
        return bool(get_redis_client().ping())
    except redis.RedisError as e:
        logger.debug("redis_ping_failed", error=str(e))
        return False


def close_redis_connection() -> None:
    """Close the shared Redis client."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class CacheManager:
    """JSON cache over Redis.

    Redis is optional: a failing read is a miss, a failing write or
    invalidation is logged and ignored.
    """

    def __init__(self, redis_client: redis.Redis):
        """Initialize cache manager with Redis client."""
        self.redis = redis_client

    def get_json(self, key: str) -> Any | None:
        """
        Read and decode a cached value.

        Args:
            key: Cache key

        Returns:
            Decoded value, or None on a miss
        """
        try:
            raw = cast(str | bytes | None, self.redis.get(key))
        except redis.RedisError as e:
            logger.warning("cache_unavailable", op="get", key=key, error=str(e))
            return None

        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            # Corrupt entry; treat as a miss so it is rewritten
            logger.warning("cache_entry_corrupt", key=key)
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Encode and store a value.

        Rows are stored as read from the database; UUIDs, decimals and
        dates are written as strings.

        Args:
            key: Cache key
            value: JSON-compatible value
            ttl: Time to live in seconds

        Returns:
            True if the value was stored
        """
        payload = json.dumps(value, default=str)
        try:
            if ttl:
                self.redis.setex(key, ttl, payload)
            else:
                self.redis.set(key, payload)
        except redis.RedisError as e:
            logger.warning("cache_unavailable", op="set", key=key, error=str(e))
            return False
        return True

    def delete_pattern(self, pattern: str) -> int:
        """
        Drop every key matching ``pattern`` (e.g. ``catalog:*``).

        Returns:
            Number of keys deleted
        """
        try:
            keys = list(self.redis.scan_iter(match=pattern))
            if not keys:
                return 0
            return cast(int, self.redis.delete(*keys))
        except redis.RedisError as e:
            logger.warning("cache_unavailable", op="invalidate", pattern=pattern, error=str(e))
            return 0
