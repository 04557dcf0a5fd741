"""
Analytics worker.

Consumes visit messages published by the redirect path (queue dispatch
mode) and records each one. The recorder never raises, so every
consumed message is acknowledged; failed writes end up in the
recorder's failure sink instead of being redelivered forever.

Usage:
    python -m shortlink_app.analytics.worker
"""

import asyncio
import logging
import signal
import sys
from typing import List

from shortlink_app.analytics.recorder import AnalyticsRecorder
from shortlink_app.config import settings
from shortlink_app.queue.models import VisitMessage
from shortlink_app.queue.strategies import QueueStrategy


logger = logging.getLogger(__name__)


class AnalyticsWorker:
    def __init__(
        self,
        queue: QueueStrategy,
        recorder: AnalyticsRecorder,
        queue_name: str = None,
        batch_size: int = None,
        block_time: int = 1000
    ):
        """
        Args:
            queue: Queue to consume visit messages from
            recorder: Recorder that writes the events
            queue_name: Defaults to settings.queue_name
            batch_size: Defaults to settings.queue_batch_size
            block_time: Max wait per poll, in milliseconds
        """
        self.queue = queue
        self.recorder = recorder
        self.queue_name = queue_name or settings.queue_name
        self.batch_size = batch_size or settings.queue_batch_size
        self.block_time = block_time
        self.running = False
        self.processed_count = 0

    async def run_once(self) -> int:
        """Process one batch. Returns the number of messages handled."""
        messages = await self.queue.consume(
            self.queue_name,
            batch_size=self.batch_size,
            block_time=self.block_time
        )
        if not messages:
            return 0

        await self._process_batch(messages)

        message_ids = [message.message_id for message in messages if message.message_id]
        if message_ids:
            await self.queue.ack(self.queue_name, message_ids)

        self.processed_count += len(messages)
        logger.info("✅ Recorded %d visits. Total: %d", len(messages), self.processed_count)
        return len(messages)

    async def _process_batch(self, messages: List[VisitMessage]) -> None:
        for message in messages:
            await self.recorder.record(
                message.link_id,
                user_agent=message.user_agent,
                referrer=message.referrer,
                client_ip=message.client_ip,
                timestamp=message.received_at,
            )

    async def start(self):
        """Poll until stop() is called or a signal arrives."""
        self.running = True
        logger.info("🚀 Analytics worker started (queue=%s, batch=%d)", self.queue_name, self.batch_size)

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        while self.running:
            try:
                handled = await self.run_once()
                if not handled:
                    await asyncio.sleep(settings.queue_worker_interval)
            except asyncio.CancelledError:
                logger.info("Worker task cancelled.")
                break
            except Exception as e:
                logger.error("❌ Error processing batch: %s", e)
                await asyncio.sleep(1)

        logger.info("🛑 Analytics worker stopped")

    def _signal_handler(self, signum, frame):
        logger.info("Received signal %s. Shutting down gracefully...", signum)
        self.stop()

    def stop(self):
        self.running = False


async def main():
    from shortlink_app.dependencies import get_queue, get_recorder
    from shortlink_app.logging_config import configure_logging

    configure_logging()
    logger.info("Environment: %s", settings.environment)
    logger.info("Queue backend: %s", settings.queue_backend)
    logger.info("Store backend: %s", settings.store_backend)

    worker = AnalyticsWorker(queue=get_queue(), recorder=get_recorder())

    try:
        await worker.start()
    except KeyboardInterrupt:
        logger.warning("⚠️  Interrupted by user")
    except Exception as e:
        logger.critical("❌ Fatal error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
