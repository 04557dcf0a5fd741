"""
Cache strategies using Strategy Pattern.

The only cached data is derived: per-link aggregated analytics, stored
as JSON strings under "analytics:<link_id>". Short code lookups are
never cached, so a deleted link stops resolving immediately.

Every backend fails soft. A broken cache looks like an empty one and
the aggregator simply recomputes from the event table.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple


logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """Key/value store for serialized aggregations, with per-key expiry."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored document, or None if absent, expired or unreachable."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """Store value for ttl seconds. False when the write did not happen."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Drop key. False if it was not there or the call failed."""
        pass


class RedisCache(CacheStrategy):
    """
    Redis-backed cache, shared by API processes and analytics workers.

    A visit recorded by a worker therefore invalidates the aggregation
    every API process reads. Expects a client created with
    decode_responses=True.
    """

    def __init__(self, redis_client):
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            return self.redis.get(key)
        except Exception as e:
            logger.warning("⚠️  Redis GET %s failed: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.set(key, value, ex=ttl))
        except Exception as e:
            logger.warning("⚠️  Redis SET %s failed: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return self.redis.delete(key) > 0
        except Exception as e:
            logger.warning("⚠️  Redis DEL %s failed: %s", key, e)
            return False


class InMemoryCache(CacheStrategy):
    """
    Process-local cache with lazy expiry.

    Only coherent with the in-process ("task") analytics dispatch: a
    separate worker process cannot invalidate these entries.
    """

    def __init__(self, clock=time.monotonic):
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)
        return True

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None


class NullCache(CacheStrategy):
    """Null Object Pattern - every aggregation is recomputed."""

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return False

    async def delete(self, key: str) -> bool:
        return False
