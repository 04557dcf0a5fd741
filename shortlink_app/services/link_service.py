import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from shortlink_app.analytics.aggregator import AnalyticsAggregator
from shortlink_app.errors import (
    DuplicateRecordError,
    NotFoundError,
    NotOwnerError,
    ShortCodeTakenError,
    ValidationError,
)
from shortlink_app.schemas.analytics import AggregatedAnalytics
from shortlink_app.schemas.link import ShortLink, ShortenResult
from shortlink_app.schemas.redirect import RedirectOutcome, VisitContext
from shortlink_app.services.redirect_resolver import RedirectResolver
from shortlink_app.services.short_code_strategies import ShortCodeStrategy
from shortlink_app.store.strategies import LINKS, RecordStoreStrategy


logger = logging.getLogger(__name__)

ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

# Top-level paths served by the app itself
RESERVED_CODES = {"api", "health", "docs", "redoc", "openapi.json"}

_url_adapter = TypeAdapter(HttpUrl)


class LinkService:
    """
    Entry point used by the HTTP layer (and any other front end).

    Collaborators are injected; the owner is always an explicit
    argument, never ambient state.
    """

    def __init__(
        self,
        store: RecordStoreStrategy,
        code_strategy: ShortCodeStrategy,
        resolver: RedirectResolver,
        aggregator: AnalyticsAggregator
    ):
        self.store = store
        self.code_strategy = code_strategy
        self.resolver = resolver
        self.aggregator = aggregator

    @staticmethod
    def _validate_url(original_url: str) -> str:
        original_url = str(original_url).strip()
        try:
            _url_adapter.validate_python(original_url)
        except PydanticValidationError as e:
            raise ValidationError(f"Not a valid absolute URL: {original_url!r}") from e
        # Keep the caller's spelling; HttpUrl would normalise it
        return original_url

    @staticmethod
    def _validate_alias(alias: Optional[str]) -> Optional[str]:
        if alias is None or not alias.strip():
            return None

        alias = alias.strip()
        if not ALIAS_PATTERN.match(alias):
            raise ValidationError(
                "Alias must be 1-64 characters of letters, digits, '-' or '_'"
            )
        if alias.lower() in RESERVED_CODES:
            raise ValidationError(f"Alias {alias!r} is reserved")
        return alias

    async def shorten(
        self,
        original_url: str,
        alias: Optional[str] = None,
        owner_id: Optional[str] = None
    ) -> ShortenResult:
        """
        Create a short link.

        A taken alias (or, rarely, a generated code that collided) raises
        ValidationError. Generation is not retried here; callers that
        want a guaranteed result call shorten() again.
        """
        url = self._validate_url(original_url)
        alias = self._validate_alias(alias)
        code = alias or await self.code_strategy.generate()

        try:
            await self.store.insert_one(LINKS, {
                "original_url": url,
                "short_code": code,
                "custom_alias": alias,
                "owner_id": owner_id,
                "created_at": datetime.now(timezone.utc),
            })
        except DuplicateRecordError as e:
            raise ShortCodeTakenError(f"Short code {code!r} is already taken") from e

        logger.info("Created short link %s (custom=%s)", code, alias is not None)
        return ShortenResult(short_code=code)

    async def resolve(self, code: str, visit: Optional[VisitContext] = None) -> RedirectOutcome:
        return await self.resolver.resolve(code, visit)

    async def get_link(self, link_id: str) -> ShortLink:
        record = await self.store.find_one(LINKS, {"id": link_id})
        if record is None:
            raise NotFoundError(f"Link {link_id} not found")
        return ShortLink(**record)

    async def list_for_owner(self, owner_id: str) -> List[ShortLink]:
        """Links of one owner, newest first. No analytics attached."""
        if not owner_id:
            raise ValidationError("owner_id is required")

        records = await self.store.list_many(
            LINKS, {"owner_id": owner_id}, order_by="created_at", descending=True
        )
        return [ShortLink(**record) for record in records]

    async def aggregate(self, link_id: str) -> AggregatedAnalytics:
        return await self.aggregator.aggregate(link_id)

    async def remove(self, link_id: str, requesting_owner_id: Optional[str]) -> None:
        """
        Delete a link owned by requesting_owner_id.

        Anonymous links have no owner and cannot be removed through
        this call.
        """
        record = await self.store.find_one(LINKS, {"id": link_id})
        if record is None:
            raise NotFoundError(f"Link {link_id} not found")

        if record["owner_id"] is None or record["owner_id"] != requesting_owner_id:
            raise NotOwnerError(f"Link {link_id} is not owned by the requester")

        if not await self.store.delete_one(LINKS, link_id):
            raise NotFoundError(f"Link {link_id} not found")

        await self.aggregator.invalidate(link_id)
        logger.info("Removed short link %s (%s)", record["short_code"], link_id)
