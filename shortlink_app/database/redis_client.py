import logging

import redis

from shortlink_app.config import settings


logger = logging.getLogger(__name__)


def connect_redis(decode_responses: bool = True) -> redis.Redis:
    """
    Open a Redis client for settings.redis_url and check it answers.

    Raises redis.RedisError when the server is unreachable; callers
    decide whether to fall back to an in-process backend.
    """
    client = redis.from_url(
        settings.redis_url,
        decode_responses=decode_responses,
        socket_connect_timeout=2,
        socket_timeout=settings.storage_timeout_seconds,
    )
    client.ping()
    logger.debug("Connected to Redis at %s", settings.redis_url)
    return client
