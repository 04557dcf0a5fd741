"""
Factory for the visit queue.
"""

import logging
from enum import Enum

from redis import RedisError

from .strategies import QueueStrategy, RedisStreamQueue, InMemoryQueue
from shortlink_app.config import settings
from shortlink_app.database.redis_client import connect_redis


logger = logging.getLogger(__name__)


class QueueBackend(Enum):
    """Available queue backends"""
    REDIS_STREAMS = "redis_streams"
    MEMORY = "memory"


class QueueFactory:
    """
    Builds the configured queue once and hands out the same instance.

    Falling back to the in-memory queue when Redis is down keeps
    redirects working, but visits then stay inside this process and a
    separate worker will never see them.
    """

    _instance: QueueStrategy = None

    @classmethod
    def create(cls, backend: QueueBackend) -> QueueStrategy:
        if cls._instance is None:
            cls._instance = cls._build(backend)
        return cls._instance

    @staticmethod
    def _build(backend: QueueBackend) -> QueueStrategy:
        if backend == QueueBackend.REDIS_STREAMS:
            try:
                client = connect_redis(decode_responses=True)
            except RedisError as e:
                logger.warning("⚠️  Redis unavailable for the visit queue (%s); using in-memory queue", e)
                return InMemoryQueue()
            logger.info("✅ Redis Streams visit queue ready (group=%s)", settings.queue_consumer_group)
            return RedisStreamQueue(client, settings.queue_consumer_group)

        if backend == QueueBackend.MEMORY:
            logger.info("✅ In-memory visit queue ready")
            return InMemoryQueue()

        raise ValueError(f"Unknown queue backend: {backend}")

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
