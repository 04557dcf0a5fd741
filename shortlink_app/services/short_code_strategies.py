"""
Short code generation strategies for the short-link service.
Uses Strategy Pattern to allow different generation algorithms.
"""

import logging
import random
import re
import string
from abc import ABC, abstractmethod

from shortlink_app.services.unique_code_clients import UniqueCodeClient


logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_letters + string.digits


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""

    @abstractmethod
    async def generate(self) -> str:
        """
        Generate a short code.

        Returns:
            A short code string. Uniqueness is only as strong as the
            strategy promises; the store's unique index is the final word.
        """
        pass


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Local random generation.

    Draws each character uniformly from [a-zA-Z0-9]. With length 10
    there are 62^10 (~5.95e17) codes, so a collision is unlikely but
    not impossible; nothing here checks the store.
    """

    def __init__(self, length: int = 10, rng: random.Random = None):
        self.length = length
        self.characters = CODE_ALPHABET
        self._rng = rng or random.SystemRandom()

    async def generate(self) -> str:
        return self.generate_now()

    def generate_now(self) -> str:
        """Synchronous draw, used directly as the fallback path"""
        return ''.join(self._rng.choice(self.characters) for _ in range(self.length))


class RemoteShortCodeStrategy(ShortCodeStrategy):
    """
    Ask a central unique-code service first, fall back to a local draw.

    Any failure of the remote call (exception, timeout, empty result,
    or a code that is not `length` characters of [a-zA-Z0-9]) switches
    to the local random strategy for this invocation only. The shape
    check also keeps remote codes off reserved routes like "health".
    """

    def __init__(self, client: UniqueCodeClient, fallback: RandomShortCodeStrategy):
        self.client = client
        self.fallback = fallback
        # Remote codes must look exactly like local ones
        self._code_pattern = re.compile("^[A-Za-z0-9]{%d}$" % fallback.length)

    async def generate(self) -> str:
        try:
            code = await self.client.generate_unique_code()
        except Exception as e:
            logger.warning("Unique code service failed, using local fallback: %s", e)
            return self.fallback.generate_now()

        code = (code or "").strip()
        if not code:
            logger.warning("Unique code service returned an empty code, using local fallback")
            return self.fallback.generate_now()

        if not self._code_pattern.match(code):
            logger.warning("Unique code service returned malformed code %r, using local fallback", code)
            return self.fallback.generate_now()

        return code
