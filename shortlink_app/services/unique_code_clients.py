"""
Clients for the "generate unique code" call.

A central service can guarantee uniqueness by checking candidates
against existing codes before handing one out. Two ways to reach it:
- StoreUniqueCodeClient: retry loop directly against the record store
- HTTPUniqueCodeClient: remote RPC endpoint over HTTP
"""

import asyncio
import logging
import random
import string
from abc import ABC, abstractmethod

import requests

from shortlink_app.errors import UniqueCodeError
from shortlink_app.store.strategies import LINKS, RecordStoreStrategy


logger = logging.getLogger(__name__)


class UniqueCodeClient(ABC):
    """Produces a code that is not in use yet, or raises."""

    @abstractmethod
    async def generate_unique_code(self) -> str:
        pass


class StoreUniqueCodeClient(UniqueCodeClient):
    """
    Random candidates checked against the store for uniqueness.

    There is still a window between the check and the insert; the
    unique index on short_code closes it.
    """

    def __init__(self, store: RecordStoreStrategy, length: int = 10, max_retries: int = 5):
        self.store = store
        self.length = length
        self.max_retries = max_retries
        self.characters = string.ascii_letters + string.digits
        self._rng = random.SystemRandom()

    async def generate_unique_code(self) -> str:
        for attempt in range(self.max_retries):
            code = ''.join(self._rng.choice(self.characters) for _ in range(self.length))

            if await self.store.find_one(LINKS, {"short_code": code}) is None:
                return code

            logger.debug("Candidate code %s already taken (attempt %d)", code, attempt + 1)

        raise UniqueCodeError(
            f"Could not generate unique short code after {self.max_retries} attempts"
        )


class HTTPUniqueCodeClient(UniqueCodeClient):
    """
    POSTs to a unique-code endpoint.

    Accepts either a bare JSON string body ("aB3xY9kQ2z") or an object
    with a "code" field.
    """

    def __init__(self, url: str, timeout: float = 2.0, session: requests.Session = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    async def generate_unique_code(self) -> str:
        try:
            # requests is blocking; run it off the event loop
            response = await asyncio.to_thread(self.session.post, self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise UniqueCodeError(f"Unique code request failed: {e}") from e

        code = payload.get("code") if isinstance(payload, dict) else payload
        if not isinstance(code, str):
            raise UniqueCodeError(f"Unexpected unique code payload: {payload!r}")
        return code
