"""Redis connection and the optional doctor-directory cache."""

import json
from typing import Any, cast

import redis

from app.config import settings

_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Get the shared Redis client, connecting lazily on first use."""
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
    """Ping Redis; False when it cannot be reached."""
    try:
        return bool(get_redis_client().ping())
    except redis.RedisError:
        return False


def close_redis_connection() -> None:
    """Close the shared Redis client, if one was opened."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class CacheManager:
    """
    JSON values in Redis.

    Redis being unavailable never fails the caller: reads miss and writes
    report False.
    """

    def __init__(self, redis_client: redis.Redis):
        """Initialize cache manager with Redis client."""
        self.redis = redis_client

    def get_json(self, key: str) -> Any | None:
        """Return the decoded value stored under ``key``, or None on a miss."""
        try:
            raw = cast(str | None, self.redis.get(key))
        except redis.RedisError:
            return None

        if not raw:
            return None

        try:
            return json.loads(raw)
        except ValueError:
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Store ``value`` as JSON.

        Args:
            key: Cache key
            value: JSON-serializable value; dates fall back to str()
            ttl: Time to live in seconds, no expiry when omitted

        Returns:
            True if stored
        """
        try:
            payload = json.dumps(value, default=str)
        except TypeError:
            return False

        try:
            if ttl:
                self.redis.setex(key, ttl, payload)
            else:
                self.redis.set(key, payload)
        except redis.RedisError:
            return False

        return True

    def delete(self, key: str) -> bool:
        """Drop ``key`` from the cache."""
        try:
            self.redis.delete(key)
        except redis.RedisError:
            return False
        return True


def get_cache_manager() -> CacheManager | None:
    """Get the doctor-directory cache, or None when caching is disabled."""
    if not settings.doctor_cache_enabled:
        return None
    return CacheManager(get_redis_client())
