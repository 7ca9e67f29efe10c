"""
Advisory read-through cache for catalog lookups.

The cache only ever short-circuits a store read. Any backend failure is
logged and treated as a miss, and disabling the cache entirely (NullCache)
must not change behaviour.
"""
import logging
from functools import lru_cache
from typing import Optional

import redis

from careerly.core import config

logger = logging.getLogger(__name__)


class NullCache:
    """Cache that never stores anything."""

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        return None

    def delete(self, key: str) -> None:
        return None


class RedisCache:
    """Redis-backed cache storing string values."""

    def __init__(self, client: "redis.Redis", default_ttl: int = config.CACHE_TTL_SECONDS):
        self.client = client
        self.default_ttl = default_ttl

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache get failed for key={key}: {e}")
            return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            self.client.set(key, value, ex=ttl or self.default_ttl)
        except redis.RedisError as e:
            logger.warning(f"Cache set failed for key={key}: {e}")

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Cache delete failed for key={key}: {e}")


@lru_cache(maxsize=1)
def get_cache():
    """Return the process-wide cache, falling back to NullCache without REDIS_URL."""
    if not config.REDIS_URL:
        logger.info("REDIS_URL not configured - catalog cache disabled")
        return NullCache()

    client = redis.from_url(config.REDIS_URL, decode_responses=True)
    try:
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"Redis unavailable, catalog cache disabled: {e}")
        return NullCache()

    logger.info("Catalog cache: Redis connected")
    return RedisCache(client)
