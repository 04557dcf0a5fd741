"""
Visit queue between the redirect path and the analytics worker.
"""

from .models import VisitMessage
from .strategies import QueueStrategy, RedisStreamQueue, InMemoryQueue
from .factory import QueueFactory, QueueBackend

__all__ = [
    "VisitMessage",
    "QueueStrategy",
    "RedisStreamQueue",
    "InMemoryQueue",
    "QueueFactory",
    "QueueBackend",
]
