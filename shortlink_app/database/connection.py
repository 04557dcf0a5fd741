from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from shortlink_app.config import settings


def build_engine(database_url: str = None, timeout: float = None):
    """
    Create an engine whose calls are bounded by the storage timeout.

    SQLite gets a busy timeout and enforced foreign keys (needed for
    ON DELETE CASCADE and for rejecting events of vanished links).
    Other backends use the timeout for pool checkout.
    """
    database_url = database_url or settings.database_url
    timeout = timeout if timeout is not None else settings.storage_timeout_seconds

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(database_url, pool_timeout=timeout, pool_pre_ping=True)


engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
