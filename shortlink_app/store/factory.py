"""
Factory for the record store.
"""

import logging
from enum import Enum

from .strategies import RecordStoreStrategy, SQLAlchemyRecordStore, InMemoryRecordStore


logger = logging.getLogger(__name__)


class RecordStoreBackend(Enum):
    """Available record store backends"""
    SQLALCHEMY = "sqlalchemy"
    MEMORY = "memory"


class RecordStoreFactory:
    """
    Builds the configured record store once and hands out the same instance.

    The SQLAlchemy backend creates missing tables on first use.
    """

    _instance: RecordStoreStrategy = None

    @classmethod
    def create(cls, backend: RecordStoreBackend) -> RecordStoreStrategy:
        if cls._instance is None:
            cls._instance = cls._build(backend)
        return cls._instance

    @staticmethod
    def _build(backend: RecordStoreBackend) -> RecordStoreStrategy:
        if backend == RecordStoreBackend.SQLALCHEMY:
            from shortlink_app.database.connection import Base, engine, SessionLocal
            import shortlink_app.models  # noqa: F401  (registers tables on Base)

            Base.metadata.create_all(bind=engine)
            logger.info("✅ SQL record store ready (%s)", engine.url.render_as_string(hide_password=True))
            return SQLAlchemyRecordStore(SessionLocal)

        if backend == RecordStoreBackend.MEMORY:
            logger.info("✅ In-memory record store ready")
            return InMemoryRecordStore()

        raise ValueError(f"Unknown record store backend: {backend}")

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
