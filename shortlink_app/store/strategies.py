"""
Record store strategies using Strategy Pattern.

The core never talks to a database directly; it goes through this small
contract so the storage engine can be swapped:
- SQLAlchemy: SQLite for development, PostgreSQL in production
- In-memory: tests and throwaway demos

Every call is treated as a network round-trip that may fail. Failures
are reported with the StorageError family from shortlink_app.errors.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shortlink_app.errors import (
    DuplicateRecordError,
    MissingReferenceError,
    StorageUnavailableError,
)
from shortlink_app.models import ShortLink, AnalyticsEvent


logger = logging.getLogger(__name__)

LINKS = "links"
EVENTS = "analytics_events"

Record = Dict[str, Any]


class RecordStoreStrategy(ABC):
    """
    Abstract base class for record stores.

    Records are plain dicts keyed by column name. Two tables exist:
    LINKS and EVENTS. Inserting into EVENTS also increments the parent
    link's click_count in the same write.

    All methods are async because real backends involve network I/O.
    """

    @abstractmethod
    async def find_one(self, table: str, filters: Dict[str, Any]) -> Optional[Record]:
        """
        Find the first record matching all filters.

        Returns:
            The record, or None when nothing matches

        Raises:
            StorageUnavailableError: storage could not be reached
        """
        pass

    @abstractmethod
    async def insert_one(self, table: str, fields: Dict[str, Any]) -> Record:
        """
        Insert a record and return it with generated fields filled in.

        Raises:
            DuplicateRecordError: a unique column already holds the value
            MissingReferenceError: an event references an unknown link
            StorageUnavailableError: storage could not be reached
        """
        pass

    @abstractmethod
    async def delete_one(self, table: str, record_id: str) -> bool:
        """
        Delete a record by id. Deleting a link cascades to its events.

        Returns:
            True if a record was deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_many(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Record]:
        """List every record matching all filters, optionally ordered."""
        pass


class SQLAlchemyRecordStore(RecordStoreStrategy):
    """
    SQLAlchemy implementation (SQLite / PostgreSQL).

    Opens a short-lived session per call, so the store can be shared by
    request handlers and by analytics tasks that outlive the request.
    Timeouts are enforced by the engine (see database/connection.py).
    """

    MODELS = {
        LINKS: ShortLink,
        EVENTS: AnalyticsEvent,
    }

    def __init__(self, session_factory):
        """
        Args:
            session_factory: Callable returning a new SQLAlchemy Session
        """
        self.session_factory = session_factory

    def _model(self, table: str):
        try:
            return self.MODELS[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}")

    def _check_columns(self, model, names) -> None:
        columns = model.__table__.columns
        unknown = [name for name in names if name not in columns]
        if unknown:
            raise ValueError(f"Unknown column(s) for {model.__tablename__}: {unknown}")

    @staticmethod
    def _to_record(obj) -> Record:
        return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}

    async def find_one(self, table: str, filters: Dict[str, Any]) -> Optional[Record]:
        model = self._model(table)
        self._check_columns(model, filters)

        try:
            with self.session_factory() as session:
                obj = session.query(model).filter_by(**filters).first()
                return self._to_record(obj) if obj else None
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"find_one on {table} failed: {e}") from e

    async def insert_one(self, table: str, fields: Dict[str, Any]) -> Record:
        model = self._model(table)
        self._check_columns(model, fields)

        try:
            with self.session_factory() as session:
                obj = model(**fields)
                session.add(obj)

                if table == EVENTS:
                    # Atomic increment, no read-modify-write
                    result = session.execute(
                        update(ShortLink)
                        .where(ShortLink.id == obj.link_id)
                        .values(click_count=ShortLink.click_count + 1)
                    )
                    if result.rowcount == 0:
                        session.rollback()
                        raise MissingReferenceError(f"Link {obj.link_id} does not exist")

                session.commit()
                session.refresh(obj)
                return self._to_record(obj)

        except IntegrityError as e:
            if table == EVENTS:
                raise MissingReferenceError(f"Link {fields.get('link_id')} does not exist") from e
            raise DuplicateRecordError(f"Duplicate value in {table}: {e.orig}") from e
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"insert_one on {table} failed: {e}") from e

    async def delete_one(self, table: str, record_id: str) -> bool:
        model = self._model(table)

        try:
            with self.session_factory() as session:
                obj = session.get(model, record_id)
                if obj is None:
                    return False
                session.delete(obj)
                session.commit()
                return True
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"delete_one on {table} failed: {e}") from e

    async def list_many(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Record]:
        model = self._model(table)
        self._check_columns(model, list(filters) + ([order_by] if order_by else []))

        try:
            with self.session_factory() as session:
                query = session.query(model).filter_by(**filters)
                if order_by:
                    column = getattr(model, order_by)
                    query = query.order_by(column.desc() if descending else column.asc())
                return [self._to_record(obj) for obj in query.all()]
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"list_many on {table} failed: {e}") from e


class InMemoryRecordStore(RecordStoreStrategy):
    """
    In-memory record store using Python dicts.

    Pros:
    - No external dependencies
    - Same constraint behaviour as the SQL store (unique codes,
      foreign keys, cascade, click_count bump)

    Cons:
    - Lost on restart
    - Not shared between processes

    Used in tests and local experiments.
    """

    def __init__(self):
        self._tables: Dict[str, Dict[str, Record]] = {LINKS: {}, EVENTS: {}}
        self._lock = threading.Lock()

    def _table(self, table: str) -> Dict[str, Record]:
        try:
            return self._tables[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}")

    @staticmethod
    def _matches(record: Record, filters: Dict[str, Any]) -> bool:
        return all(record.get(key) == value for key, value in filters.items())

    async def find_one(self, table: str, filters: Dict[str, Any]) -> Optional[Record]:
        with self._lock:
            for record in self._table(table).values():
                if self._matches(record, filters):
                    return dict(record)
        return None

    async def insert_one(self, table: str, fields: Dict[str, Any]) -> Record:
        rows = self._table(table)
        now = datetime.now(timezone.utc)

        with self._lock:
            if table == LINKS:
                record = {
                    "id": str(uuid.uuid4()),
                    "custom_alias": None,
                    "owner_id": None,
                    "created_at": now,
                    "click_count": 0,
                    **fields,
                }
                if any(row["short_code"] == record["short_code"] for row in rows.values()):
                    raise DuplicateRecordError(f"Short code already exists: {record['short_code']}")
            else:
                record = {
                    "id": str(uuid.uuid4()),
                    "user_agent": "",
                    "referrer": "",
                    "device_type": "desktop",
                    "country": "unknown",
                    "timestamp": now,
                    **fields,
                }
                link = self._tables[LINKS].get(record["link_id"])
                if link is None:
                    raise MissingReferenceError(f"Link {record['link_id']} does not exist")
                link["click_count"] += 1

            rows[record["id"]] = record
            return dict(record)

    async def delete_one(self, table: str, record_id: str) -> bool:
        rows = self._table(table)

        with self._lock:
            if record_id not in rows:
                return False
            del rows[record_id]

            if table == LINKS:
                events = self._tables[EVENTS]
                for event_id in [key for key, row in events.items() if row["link_id"] == record_id]:
                    del events[event_id]
            return True

    async def list_many(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Record]:
        with self._lock:
            records = [dict(row) for row in self._table(table).values() if self._matches(row, filters)]

        if order_by:
            # Equal keys keep insertion order, newest first when descending
            if descending:
                records.reverse()
            records.sort(key=lambda row: row[order_by], reverse=descending)
        return records
