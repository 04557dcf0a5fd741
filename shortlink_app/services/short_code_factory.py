"""
Factory for creating short code generation strategies.
"""

from enum import Enum

from shortlink_app.config import settings
from shortlink_app.services.short_code_strategies import (
    ShortCodeStrategy,
    RandomShortCodeStrategy,
    RemoteShortCodeStrategy,
)
from shortlink_app.services.unique_code_clients import (
    UniqueCodeClient,
    StoreUniqueCodeClient,
    HTTPUniqueCodeClient,
)
from shortlink_app.store.strategies import RecordStoreStrategy


class ShortCodeStrategyType(Enum):
    """Available short code generation strategies"""
    RANDOM = "random"
    REMOTE = "remote"


class UniqueCodeBackend(Enum):
    """Ways to reach the unique-code service"""
    STORE = "store"
    HTTP = "http"


class ShortCodeFactory:
    """Factory for creating short code generation strategies"""

    @classmethod
    def create_strategy(
        cls,
        strategy_type: ShortCodeStrategyType = None,
        store: RecordStoreStrategy = None
    ) -> ShortCodeStrategy:
        """
        Create a short code generation strategy.

        Args:
            strategy_type: Type of strategy to create.
                          If None, uses value from settings.
            store: Record store, required by the store-backed
                   unique-code client.

        Raises:
            ValueError: If strategy_type is unknown or misconfigured
        """
        if strategy_type is None:
            strategy_type = ShortCodeStrategyType(settings.short_code_strategy)

        local = RandomShortCodeStrategy(length=settings.short_code_length)

        if strategy_type == ShortCodeStrategyType.RANDOM:
            return local
        if strategy_type == ShortCodeStrategyType.REMOTE:
            return RemoteShortCodeStrategy(client=cls.create_client(store=store), fallback=local)

        raise ValueError(f"Unknown strategy type: {strategy_type}")

    @classmethod
    def create_client(
        cls,
        backend: UniqueCodeBackend = None,
        store: RecordStoreStrategy = None
    ) -> UniqueCodeClient:
        """Create the unique-code client configured in settings."""
        if backend is None:
            backend = UniqueCodeBackend(settings.unique_code_backend)

        if backend == UniqueCodeBackend.STORE:
            if store is None:
                raise ValueError("The store-backed unique code client needs a record store")
            return StoreUniqueCodeClient(
                store,
                length=settings.short_code_length,
                max_retries=settings.unique_code_max_retries,
            )
        if backend == UniqueCodeBackend.HTTP:
            if not settings.unique_code_rpc_url:
                raise ValueError("unique_code_rpc_url must be set for the http backend")
            return HTTPUniqueCodeClient(
                settings.unique_code_rpc_url,
                timeout=settings.unique_code_timeout_seconds,
            )

        raise ValueError(f"Unknown unique code backend: {backend}")
