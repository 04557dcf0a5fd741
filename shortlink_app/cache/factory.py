"""
Factory for the aggregation cache.
"""

import logging
from enum import Enum

from redis import RedisError

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from shortlink_app.database.redis_client import connect_redis


logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """
    Builds the configured cache once and hands out the same instance.

    An unreachable Redis at startup degrades to the in-memory cache
    rather than failing the process; aggregations stay correct, only
    less shared.
    """

    _instance: CacheStrategy = None

    @classmethod
    def create(cls, backend: CacheBackend) -> CacheStrategy:
        if cls._instance is None:
            cls._instance = cls._build(backend)
        return cls._instance

    @staticmethod
    def _build(backend: CacheBackend) -> CacheStrategy:
        if backend == CacheBackend.REDIS:
            try:
                cache = RedisCache(connect_redis(decode_responses=True))
            except RedisError as e:
                logger.warning("⚠️  Redis unavailable for the aggregation cache (%s); using in-memory cache", e)
                return InMemoryCache()
            logger.info("✅ Redis aggregation cache ready")
            return cache

        if backend == CacheBackend.MEMORY:
            logger.info("✅ In-memory aggregation cache ready")
            return InMemoryCache()

        if backend == CacheBackend.NULL:
            logger.info("Aggregation cache disabled")
            return NullCache()

        raise ValueError(f"Unknown cache backend: {backend}")

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
