"""Database engine and session management.

The engine is created on first use from Settings.DATABASE_URL so that
importing the engine does not require a database driver.
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from quote_pricing.config import get_settings
from quote_pricing.models.base import Base


def build_engine(database_url: str) -> Engine:
    """Create an engine with pooling suited to the backend.

    Pool settings only apply to PostgreSQL (not SQLite).
    """
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,  # Set to True for SQL query logging
    }
    if not database_url.startswith("sqlite"):
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10
    engine = create_engine(database_url, **engine_kwargs)
    if database_url.startswith("sqlite"):
        _enable_sqlite_savepoints(engine)
    return engine


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on pysqlite."""

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


@lru_cache()
def get_engine() -> Engine:
    return build_engine(get_settings().DATABASE_URL)


@lru_cache()
def get_session_factory() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def create_tables(engine: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine or get_engine())


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            repository = SqlQuoteRepository(session)

    Automatically commits on success, rolls back on exception.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
