"""
Analytics Aggregator.

Folds the raw events of one link into browser / device / country
counters. Results can be cached per link; the recorder drops the cached
entry whenever it inserts a new event for that link.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import settings
from shortlink_app.schemas.analytics import AggregatedAnalytics
from shortlink_app.store.strategies import EVENTS, LINKS, RecordStoreStrategy


logger = logging.getLogger(__name__)


def aggregation_cache_key(link_id: str) -> str:
    return f"analytics:{link_id}"


def fold_events(link_id: str, events: Iterable[Dict[str, Any]]) -> AggregatedAnalytics:
    """
    Count every event once per dimension.

    "Unknown"/"unknown" are ordinary keys; nothing is filtered out, so
    each mapping sums to the number of events.
    """
    browsers, devices, countries = Counter(), Counter(), Counter()
    total = 0

    for event in events:
        browsers[event["browser"]] += 1
        devices[event["device_type"]] += 1
        countries[event["country"]] += 1
        total += 1

    return AggregatedAnalytics(
        link_id=link_id,
        total=total,
        browser_counts=dict(browsers),
        device_counts=dict(devices),
        country_counts=dict(countries),
    )


class AnalyticsAggregator:
    """
    Cache-aside aggregation over the event table.

    Storage errors propagate (StorageUnavailableError); cache errors
    only cost a recomputation.
    """

    def __init__(
        self,
        store: RecordStoreStrategy,
        cache: Optional[CacheStrategy] = None,
        cache_ttl: int = None
    ):
        self.store = store
        self.cache = cache
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.cache_ttl

    async def _click_count(self, link_id: str) -> int:
        link = await self.store.find_one(LINKS, {"id": link_id})
        return link["click_count"] if link else 0

    async def aggregate(self, link_id: str) -> AggregatedAnalytics:
        """
        Aggregation for link_id, served from the cache when still current.

        A cached entry is only trusted while its total equals the link's
        click_count. The store bumps click_count in the same write that
        inserts an event, so an entry that missed an event (for example
        one written after a worker process invalidated the key) is
        recomputed instead of served until its TTL runs out.
        """
        key = aggregation_cache_key(link_id)

        if self.cache:
            cached = await self.cache.get(key)
            if cached:
                try:
                    aggregation = AggregatedAnalytics.model_validate_json(cached)
                except PydanticValidationError as e:
                    logger.warning("Discarding unreadable cached aggregation for %s: %s", link_id, e)
                else:
                    if aggregation.total == await self._click_count(link_id):
                        return aggregation
                    logger.debug("Cached aggregation for %s is stale", link_id)

        events = await self.store.list_many(EVENTS, {"link_id": link_id})
        aggregation = fold_events(link_id, events)

        if self.cache:
            await self.cache.set(key, aggregation.model_dump_json(), ttl=self.cache_ttl)

        return aggregation

    async def invalidate(self, link_id: str) -> None:
        if self.cache:
            await self.cache.delete(aggregation_cache_key(link_id))
