"""
FastAPI dependencies for dependency injection.

Every collaborator is built once (lru_cache singletons from the
backend factories) and injected into routes with Depends. Tests swap
any of them through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends

from shortlink_app.analytics.aggregator import AnalyticsAggregator
from shortlink_app.analytics.dispatcher import (
    AnalyticsDispatcher,
    DispatchMode,
    QueueDispatcher,
    TaskDispatcher,
)
from shortlink_app.analytics.geo import GeoLocator, GeoLocatorFactory
from shortlink_app.analytics.recorder import AnalyticsRecorder, RecordingFailureSink
from shortlink_app.cache.factory import CacheFactory, CacheBackend
from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import settings
from shortlink_app.queue.factory import QueueFactory, QueueBackend
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.services.link_service import LinkService
from shortlink_app.services.redirect_resolver import RedirectResolver
from shortlink_app.services.short_code_factory import ShortCodeFactory
from shortlink_app.services.short_code_strategies import ShortCodeStrategy
from shortlink_app.store.factory import RecordStoreFactory, RecordStoreBackend
from shortlink_app.store.strategies import RecordStoreStrategy


@lru_cache()
def get_record_store() -> RecordStoreStrategy:
    return RecordStoreFactory.create(RecordStoreBackend(settings.store_backend))


@lru_cache()
def get_cache() -> CacheStrategy:
    return CacheFactory.create(CacheBackend(settings.cache_backend))


@lru_cache()
def get_queue() -> QueueStrategy:
    return QueueFactory.create(QueueBackend(settings.queue_backend))


@lru_cache()
def get_geo_locator() -> GeoLocator:
    return GeoLocatorFactory.create()


@lru_cache()
def get_aggregator() -> AnalyticsAggregator:
    return AnalyticsAggregator(store=get_record_store(), cache=get_cache())


@lru_cache()
def get_recorder() -> AnalyticsRecorder:
    return AnalyticsRecorder(
        store=get_record_store(),
        geo=get_geo_locator(),
        aggregator=get_aggregator(),
        failure_sink=RecordingFailureSink(settings.failure_sink_size),
    )


@lru_cache()
def get_dispatcher() -> AnalyticsDispatcher:
    """
    Task dispatch records inside this process; queue dispatch leaves
    recording to the analytics worker.
    """
    mode = DispatchMode(settings.analytics_dispatch)
    if mode == DispatchMode.QUEUE:
        return QueueDispatcher(get_queue(), settings.queue_name)
    return TaskDispatcher(get_recorder())


@lru_cache()
def get_short_code_strategy() -> ShortCodeStrategy:
    return ShortCodeFactory.create_strategy(store=get_record_store())


def get_link_service(
    store: RecordStoreStrategy = Depends(get_record_store),
    code_strategy: ShortCodeStrategy = Depends(get_short_code_strategy),
    dispatcher: AnalyticsDispatcher = Depends(get_dispatcher),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
) -> LinkService:
    """
    LinkService with all dependencies injected.

    Routes depend on this one service instead of on the infrastructure.
    """
    return LinkService(
        store=store,
        code_strategy=code_strategy,
        resolver=RedirectResolver(store, dispatcher),
        aggregator=aggregator,
    )
