"""
Tests for queue dispatch and the analytics worker.
"""
import asyncio

from shortlink_app.analytics.dispatcher import QueueDispatcher
from shortlink_app.analytics.worker import AnalyticsWorker
from shortlink_app.queue.factory import QueueBackend, QueueFactory
from shortlink_app.queue.strategies import InMemoryQueue, QueueStrategy
from shortlink_app.schemas.redirect import VisitContext
from shortlink_app.services.redirect_resolver import RedirectResolver
from shortlink_app.store.strategies import EVENTS, LINKS

QUEUE = "link_visits_test"


class RejectingQueue(QueueStrategy):
    async def publish(self, queue_name, message):
        raise ConnectionError("broker down")

    async def consume(self, queue_name, batch_size=1, block_time=1000):
        return []

    async def ack(self, queue_name, message_ids):
        return True


def _setup(core):
    queue = InMemoryQueue()
    dispatcher = QueueDispatcher(queue, QUEUE)
    resolver = RedirectResolver(core.store, dispatcher)
    worker = AnalyticsWorker(queue, core.recorder, queue_name=QUEUE, batch_size=10, block_time=0)

    async def create():
        await core.service.shorten("https://example.com/", alias="queued", owner_id="alice")
        return (await core.store.find_one(LINKS, {"short_code": "queued"}))["id"]

    return queue, resolver, worker, asyncio.run(create())


class TestQueueDispatch:
    def test_redirect_only_publishes(self, core):
        queue, resolver, _, link_id = _setup(core)

        asyncio.run(resolver.resolve("queued", VisitContext(user_agent="curl/8.0", client_ip="203.0.113.7")))

        assert len(queue) == 1
        assert asyncio.run(core.store.list_many(EVENTS, {"link_id": link_id})) == []

    def test_publish_failure_does_not_break_redirect(self, core):
        asyncio.run(core.service.shorten("https://example.com/", alias="x1"))
        resolver = RedirectResolver(core.store, QueueDispatcher(RejectingQueue(), QUEUE))

        outcome = asyncio.run(resolver.resolve("x1"))

        assert outcome.destination_url == "https://example.com/"


class TestAnalyticsWorker:
    def test_run_once_records_queued_visits(self, core):
        queue, resolver, worker, link_id = _setup(core)

        async def scenario():
            for _ in range(3):
                await resolver.resolve("queued", VisitContext(referrer="https://news.example"))
            handled = await worker.run_once()
            return handled, await core.service.get_link(link_id)

        handled, link = asyncio.run(scenario())

        assert handled == 3
        assert link.click_count == 3
        assert worker.processed_count == 3
        assert len(queue) == 0
        assert queue.pending_count(QUEUE) == 0

    def test_empty_queue(self, core):
        _, _, worker, _ = _setup(core)

        assert asyncio.run(worker.run_once()) == 0

    def test_visit_for_deleted_link_goes_to_failure_sink(self, core):
        _, resolver, worker, link_id = _setup(core)

        async def scenario():
            await resolver.resolve("queued")
            await core.service.remove(link_id, "alice")
            return await worker.run_once()

        assert asyncio.run(scenario()) == 1
        assert [failure.link_id for failure in core.recorder.failure_sink.recent()] == [link_id]


class TestQueueFactory:
    def test_memory_backend(self):
        QueueFactory.clear_instance()
        try:
            assert isinstance(QueueFactory.create(QueueBackend.MEMORY), InMemoryQueue)
        finally:
            QueueFactory.clear_instance()
