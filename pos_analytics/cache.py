"""
Redis Result Cache

Optional cache for computed reports:
- Connection pooling
- JSON serialization
- TTL management
- Namespace invalidation

A cache outage degrades to recomputation; it never fails a report.
"""

import json
from datetime import timedelta
from typing import Any, Optional, Union

import structlog
from redis import ConnectionPool, Redis, RedisError

from pos_analytics.config.settings import RedisSettings

logger = structlog.get_logger(__name__)


def init_redis(settings: Optional[RedisSettings] = None) -> Redis:
    """
    Create a Redis client backed by a connection pool.

    Raises:
        RedisError: If the server cannot be reached
    """
    settings = settings or RedisSettings()

    pool = ConnectionPool.from_url(
        settings.get_url(),
        max_connections=settings.max_connections,
        socket_timeout=settings.socket_timeout,
        decode_responses=settings.decode_responses,
    )
    client = Redis(connection_pool=pool)

    try:
        client.ping()
        logger.info("Redis connection established")
    except RedisError as e:
        logger.error("Redis connection failed", error=str(e))
        raise

    return client


def cache_get(client: Redis, key: str) -> Optional[Any]:
    """
    Get value from cache.

    Returns:
        Cached value or None if not found
    """
    value = client.get(key)

    if value is None:
        return None

    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def cache_set(
    client: Redis,
    key: str,
    value: Any,
    ttl: Optional[Union[int, timedelta]] = None,
) -> bool:
    """
    Set value in cache.

    Args:
        client: Redis client
        key: Cache key
        value: Value to cache (will be JSON serialized)
        ttl: Time-to-live in seconds or timedelta

    Returns:
        True if successful
    """
    try:
        serialized = json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        logger.warning("Failed to serialize value for cache", key=key, error=str(e))
        return False

    if ttl:
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        client.setex(key, ttl, serialized)
    else:
        client.set(key, serialized)

    return True


def cache_delete_pattern(client: Redis, pattern: str) -> int:
    """Delete all keys matching pattern"""
    keys = list(client.scan_iter(match=pattern))

    if not keys:
        return 0

    return client.delete(*keys)


class CacheManager:
    """
    Cache manager with namespace support.

    Example:
        cache = CacheManager("analytics", client=init_redis())
        cache.set("c1:trend:30", result, ttl=600)
        result = cache.get("c1:trend:30")
    """

    def __init__(self, namespace: str, client: Redis, default_ttl: int = 600):
        self.namespace = namespace
        self.client = client
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache; None on a miss or an unreachable server"""
        try:
            return cache_get(self.client, self._key(key))
        except RedisError as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache"""
        try:
            return cache_set(self.client, self._key(key), value, ttl or self.default_ttl)
        except RedisError as e:
            logger.warning("Cache write failed", key=key, error=str(e))
            return False

    def invalidate(self, pattern: str = "*") -> int:
        """Invalidate keys in the namespace matching ``pattern``"""
        try:
            return cache_delete_pattern(self.client, self._key(pattern))
        except RedisError as e:
            logger.warning("Cache invalidation failed", pattern=pattern, error=str(e))
            return 0
