"""
Queue strategies for deferred visit recording.

The redirect path publishes one VisitMessage per resolved visit; the
analytics worker consumes them in batches and acknowledges each batch
once the recorder has seen it.
"""

import itertools
import logging
import socket
from abc import ABC, abstractmethod
from collections import deque
from typing import Dict, List, Optional

from pydantic import ValidationError
from redis import RedisError, ResponseError

from .models import VisitMessage


logger = logging.getLogger(__name__)


class QueueStrategy(ABC):
    """
    Abstract base class for visit queues.

    publish() reports failure with False instead of raising, so the
    redirect path never fails because of analytics.
    """

    @abstractmethod
    async def publish(self, queue_name: str, message: VisitMessage) -> bool:
        pass

    @abstractmethod
    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[VisitMessage]:
        """
        Take up to batch_size messages, waiting at most block_time ms.

        Every returned message carries a message_id for ack().
        """
        pass

    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        pass


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams backend (XADD / XREADGROUP / XACK).

    Workers share one consumer group, so each visit is recorded by
    exactly one of them. A worker that dies before XACK leaves its
    messages pending in the group. The stream is capped at max_length
    entries (approximate trim).
    """

    def __init__(self, redis_client, consumer_group: str, max_length: Optional[int] = 100_000):
        """
        Args:
            redis_client: Client created with decode_responses=True
            consumer_group: Group every analytics worker joins
            max_length: Approximate cap on stream length, None for no cap
        """
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.consumer_name = f"visit-worker-{socket.gethostname()}-{id(self)}"
        self.max_length = max_length
        self._groups_ready = set()

    def _ensure_group(self, queue_name: str) -> None:
        if queue_name in self._groups_ready:
            return
        try:
            self.redis.xgroup_create(queue_name, self.consumer_group, id="0", mkstream=True)
            logger.info("✅ Created consumer group %s on %s", self.consumer_group, queue_name)
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise
        self._groups_ready.add(queue_name)

    async def publish(self, queue_name: str, message: VisitMessage) -> bool:
        try:
            self._ensure_group(queue_name)
            self.redis.xadd(
                queue_name,
                {"visit": message.model_dump_json()},
                maxlen=self.max_length,
                approximate=True,
            )
            return True
        except RedisError as e:
            logger.error("❌ Could not publish visit for %s: %s", message.link_id, e)
            return False

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[VisitMessage]:
        try:
            self._ensure_group(queue_name)
            response = self.redis.xreadgroup(
                self.consumer_group,
                self.consumer_name,
                {queue_name: ">"},
                count=batch_size,
                block=block_time,
            )
        except RedisError as e:
            logger.error("❌ Reading %s failed: %s", queue_name, e)
            return []

        visits = []
        for _stream, entries in response or []:
            for entry_id, fields in entries:
                try:
                    visit = VisitMessage.model_validate_json(fields["visit"])
                except (KeyError, ValidationError) as e:
                    # Poison entry: ack it so it is not redelivered forever
                    logger.warning("⚠️  Dropping unreadable stream entry %s: %s", entry_id, e)
                    await self.ack(queue_name, [entry_id])
                    continue
                visit.message_id = entry_id
                visits.append(visit)
        return visits

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        if not message_ids:
            return True
        try:
            self.redis.xack(queue_name, self.consumer_group, *message_ids)
            return True
        except RedisError as e:
            logger.error("❌ XACK on %s failed: %s", queue_name, e)
            return False


class InMemoryQueue(QueueStrategy):
    """
    Process-local queue for tests and single-process setups.

    Consumed messages stay in a pending map until acknowledged, like
    Redis consumer groups, but nothing ever redelivers them.
    """

    def __init__(self):
        self._ready: Dict[str, deque] = {}
        self._pending: Dict[str, Dict[str, VisitMessage]] = {}
        self._ids = itertools.count(1)

    async def publish(self, queue_name: str, message: VisitMessage) -> bool:
        queued = message.model_copy()
        queued.message_id = str(next(self._ids))
        self._ready.setdefault(queue_name, deque()).append(queued)
        return True

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[VisitMessage]:
        ready = self._ready.setdefault(queue_name, deque())
        pending = self._pending.setdefault(queue_name, {})

        batch = [ready.popleft() for _ in range(min(batch_size, len(ready)))]
        for message in batch:
            pending[message.message_id] = message
        return batch

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        pending = self._pending.get(queue_name, {})
        for message_id in message_ids:
            pending.pop(message_id, None)
        return True

    def pending_count(self, queue_name: str) -> int:
        return len(self._pending.get(queue_name, {}))

    def __len__(self) -> int:
        return sum(len(ready) for ready in self._ready.values())
