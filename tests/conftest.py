"""
Test configuration and fixtures for the short-link service.
This centralizes all test setup, making individual tests clean.
"""

import os

# Must be set before shortlink_app.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("QUEUE_BACKEND", "memory")
os.environ.setdefault("GEO_BACKEND", "null")
os.environ.setdefault("ANALYTICS_DISPATCH", "task")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from shortlink_app.analytics.aggregator import AnalyticsAggregator
from shortlink_app.analytics.dispatcher import TaskDispatcher
from shortlink_app.analytics.geo import NullGeoLocator
from shortlink_app.analytics.recorder import AnalyticsRecorder
from shortlink_app.cache.strategies import InMemoryCache
from shortlink_app.database.connection import Base, build_engine
from shortlink_app.dependencies import (
    get_aggregator,
    get_dispatcher,
    get_record_store,
    get_short_code_strategy,
)
from shortlink_app.errors import StorageUnavailableError
from shortlink_app.services.link_service import LinkService
from shortlink_app.services.redirect_resolver import RedirectResolver
from shortlink_app.services.short_code_strategies import RandomShortCodeStrategy
from shortlink_app.store.strategies import (
    InMemoryRecordStore,
    RecordStoreStrategy,
    SQLAlchemyRecordStore,
)

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(SQLALCHEMY_DATABASE_URL, timeout=1.0)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class UnavailableStore(RecordStoreStrategy):
    """Every call fails the way a timed-out database would."""

    async def find_one(self, table, filters):
        raise StorageUnavailableError("timed out")

    async def insert_one(self, table, fields):
        raise StorageUnavailableError("timed out")

    async def delete_one(self, table, record_id):
        raise StorageUnavailableError("timed out")

    async def list_many(self, table, filters, order_by=None, descending=False):
        raise StorageUnavailableError("timed out")


def build_components(store, geo=None, classifier=None, code_strategy=None):
    """Wire the core around a store the same way dependencies.py does."""
    cache = InMemoryCache()
    aggregator = AnalyticsAggregator(store=store, cache=cache)
    recorder_kwargs = {"classifier": classifier} if classifier else {}
    recorder = AnalyticsRecorder(
        store=store,
        geo=geo or NullGeoLocator(),
        aggregator=aggregator,
        **recorder_kwargs
    )
    dispatcher = TaskDispatcher(recorder)
    resolver = RedirectResolver(store, dispatcher)
    code_strategy = code_strategy or RandomShortCodeStrategy(length=10)
    service = LinkService(
        store=store,
        code_strategy=code_strategy,
        resolver=resolver,
        aggregator=aggregator,
    )
    return SimpleNamespace(
        store=store,
        cache=cache,
        aggregator=aggregator,
        recorder=recorder,
        dispatcher=dispatcher,
        resolver=resolver,
        code_strategy=code_strategy,
        service=service,
    )


@pytest.fixture(scope="function")
def sql_store():
    """
    Record store on a fresh SQLite database for each test.
    """
    Base.metadata.create_all(bind=engine)
    try:
        yield SQLAlchemyRecordStore(TestingSessionLocal)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(params=["sqlalchemy", "memory"])
def store(request):
    """Runs a test against both record store implementations."""
    if request.param == "memory":
        yield InMemoryRecordStore()
    else:
        yield request.getfixturevalue("sql_store")


@pytest.fixture
def core(store):
    return build_components(store)


@pytest.fixture
def broken_core():
    return build_components(UnavailableStore())


@pytest.fixture(scope="function")
def client(sql_store):
    """
    Test client with every collaborator overridden.
    The wired components are reachable as client.components.
    """
    components = build_components(sql_store)

    app.dependency_overrides[get_record_store] = lambda: components.store
    app.dependency_overrides[get_short_code_strategy] = lambda: components.code_strategy
    app.dependency_overrides[get_dispatcher] = lambda: components.dispatcher
    app.dependency_overrides[get_aggregator] = lambda: components.aggregator

    with TestClient(app) as test_client:
        test_client.components = components
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()
