"""
Analytics Recorder.

Turns one visit into one AnalyticsEvent row. Recording is best effort:
record() never raises, failures are logged and kept in a small ring
buffer (RecordingFailureSink) so they can be inspected.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Callable, List, NamedTuple, Optional

from shortlink_app.analytics.aggregator import AnalyticsAggregator
from shortlink_app.analytics.classifier import UserAgentInfo, classify
from shortlink_app.analytics.geo import GeoLocator, UNKNOWN_COUNTRY
from shortlink_app.store.strategies import EVENTS, RecordStoreStrategy


logger = logging.getLogger(__name__)


class RecordingFailure(NamedTuple):
    link_id: str
    error: str
    occurred_at: datetime


class RecordingFailureSink:
    """Keeps the most recent recording failures, oldest dropped first."""

    def __init__(self, capacity: int = 100):
        self._failures = deque(maxlen=capacity)

    def add(self, link_id: str, error: BaseException) -> None:
        self._failures.append(
            RecordingFailure(
                link_id=link_id,
                error=f"{type(error).__name__}: {error}",
                occurred_at=datetime.now(timezone.utc),
            )
        )

    def recent(self) -> List[RecordingFailure]:
        return list(self._failures)

    def __len__(self) -> int:
        return len(self._failures)


class AnalyticsRecorder:
    def __init__(
        self,
        store: RecordStoreStrategy,
        geo: GeoLocator,
        aggregator: Optional[AnalyticsAggregator] = None,
        failure_sink: Optional[RecordingFailureSink] = None,
        classifier: Callable[[str], UserAgentInfo] = classify
    ):
        self.store = store
        self.geo = geo
        self.aggregator = aggregator
        self.failure_sink = failure_sink if failure_sink is not None else RecordingFailureSink()
        self.classifier = classifier

    async def _country(self, client_ip: Optional[str]) -> str:
        # Lookups may block on the network; keep them off the event loop
        try:
            return await asyncio.to_thread(self.geo.resolve_country, client_ip) or UNKNOWN_COUNTRY
        except Exception as e:
            logger.warning("Geo lookup raised for %s: %s", client_ip, e)
            return UNKNOWN_COUNTRY

    async def record(
        self,
        link_id: str,
        user_agent: str = "",
        referrer: str = "",
        client_ip: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> None:
        """
        Classify the visit and append one event for link_id.

        The store bumps the link's click_count in the same write.
        """
        user_agent = user_agent or ""
        referrer = referrer or ""

        try:
            agent = self.classifier(user_agent)
            await self.store.insert_one(EVENTS, {
                "link_id": link_id,
                "user_agent": user_agent,
                "referrer": referrer,
                "browser": agent.browser,
                "os": agent.os,
                "device_type": agent.device_type.value,
                "country": await self._country(client_ip),
                "timestamp": timestamp or datetime.now(timezone.utc),
            })
        except Exception as e:
            logger.warning("Dropped analytics event for link %s: %s", link_id, e)
            self.failure_sink.add(link_id, e)
            return

        if self.aggregator:
            await self.aggregator.invalidate(link_id)
