"""
Record store module: persistence contract for links and analytics events.
Implements Strategy Pattern for pluggable storage engines.
"""

from .strategies import (
    LINKS,
    EVENTS,
    RecordStoreStrategy,
    SQLAlchemyRecordStore,
    InMemoryRecordStore,
)
from .factory import RecordStoreFactory, RecordStoreBackend

__all__ = [
    "LINKS",
    "EVENTS",
    "RecordStoreStrategy",
    "SQLAlchemyRecordStore",
    "InMemoryRecordStore",
    "RecordStoreFactory",
    "RecordStoreBackend",
]
