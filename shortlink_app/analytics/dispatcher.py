"""
Fire-and-forget hand-off from the redirect path to the recorder.

dispatch() returns as soon as the work is handed off. It never waits
for the event to be written and never raises.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Set

from shortlink_app.analytics.recorder import AnalyticsRecorder
from shortlink_app.queue.models import VisitMessage
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.schemas.redirect import VisitContext


logger = logging.getLogger(__name__)


class DispatchMode(Enum):
    """Available dispatch modes"""
    TASK = "task"
    QUEUE = "queue"


class AnalyticsDispatcher(ABC):
    @abstractmethod
    async def dispatch(self, link_id: str, visit: VisitContext) -> None:
        """Hand off one recording request. Do not await the recording."""
        pass

    async def drain(self) -> None:
        """Wait for in-flight work owned by this process (shutdown, tests)."""
        return None


class TaskDispatcher(AnalyticsDispatcher):
    """
    Records in a background asyncio task of the current event loop.

    Holds a reference to every pending task until it finishes so the
    loop cannot garbage-collect it half way.
    """

    def __init__(self, recorder: AnalyticsRecorder):
        self.recorder = recorder
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def dispatch(self, link_id: str, visit: VisitContext) -> None:
        try:
            task = asyncio.create_task(
                self.recorder.record(
                    link_id,
                    user_agent=visit.user_agent,
                    referrer=visit.referrer,
                    client_ip=visit.client_ip,
                )
            )
        except RuntimeError as e:
            logger.error("Could not schedule analytics task for %s: %s", link_id, e)
            return

        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Analytics task failed: %r", error)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class QueueDispatcher(AnalyticsDispatcher):
    """
    Publishes a VisitMessage; the analytics worker records it later.
    """

    def __init__(self, queue: QueueStrategy, queue_name: str):
        self.queue = queue
        self.queue_name = queue_name

    async def dispatch(self, link_id: str, visit: VisitContext) -> None:
        message = VisitMessage(link_id=link_id, **visit.model_dump())

        try:
            published = await self.queue.publish(self.queue_name, message)
        except Exception as e:
            logger.error("Publishing visit for %s failed: %s", link_id, e)
            return

        if not published:
            logger.warning("Visit for %s was not queued; analytics dropped", link_id)
