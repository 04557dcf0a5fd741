"""
Redirect Resolver.

Lookup, analytics hand-off, destination. Nothing here is transactional:
a link deleted right after the lookup still redirects once, and its
analytics event is simply rejected by the store.
"""

import logging
from typing import Optional

from shortlink_app.analytics.dispatcher import AnalyticsDispatcher
from shortlink_app.schemas.redirect import (
    Found,
    NotFound,
    NotFoundReason,
    RedirectOutcome,
    VisitContext,
)
from shortlink_app.store.strategies import LINKS, RecordStoreStrategy


logger = logging.getLogger(__name__)


class RedirectResolver:
    def __init__(self, store: RecordStoreStrategy, dispatcher: AnalyticsDispatcher):
        self.store = store
        self.dispatcher = dispatcher

    async def resolve(self, code: str, visit: Optional[VisitContext] = None) -> RedirectOutcome:
        """
        Find the destination for code.

        Returns Found(destination_url) or NotFound. A storage failure is
        reported as NotFound too (reason=storage_error) and logged as an
        error; callers must not expose the difference.
        """
        try:
            link = await self.store.find_one(LINKS, {"short_code": code})
        except Exception as e:
            logger.error("Lookup of short code %r failed: %s", code, e)
            return NotFound(reason=NotFoundReason.STORAGE_ERROR)

        if link is None:
            logger.debug("Unknown short code %r", code)
            return NotFound(reason=NotFoundReason.MISSING)

        try:
            await self.dispatcher.dispatch(link["id"], visit or VisitContext())
        except Exception as e:
            logger.error("Analytics dispatch for %s failed: %s", link["id"], e)

        return Found(destination_url=link["original_url"])
