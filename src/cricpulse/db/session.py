"""
Database session management for CricPulse.

The engine is built lazily from settings.database_url the first time a
session is requested, so importing this module never touches the database
driver. Everything that needs persistence (the cache store, bulk scraping,
the API) receives a session factory instead of reaching for a global,
which lets tests hand in a SQLite-backed sessionmaker.

Usage:
    from cricpulse.db.session import get_session

    with get_session() as session:
        teams = session.query(Team).all()
        # Commits on exit, rolls back on exception
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cricpulse.config import settings

SessionFactory = Callable[[], Session]


def engine_options(database_url: str) -> dict:
    """
    Keyword arguments for create_engine() suited to the database backend.

    PostgreSQL gets a sized connection pool. SQLite has no server pool to
    size; its connections may be used from the threads FastAPI runs sync
    dependencies on, and an in-memory database must stay on one connection.
    """
    options = {"pool_pre_ping": True, "echo": settings.log_level == "DEBUG"}
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        options.update(pool_size=settings.db_pool_size, max_overflow=settings.db_max_overflow)
        return options

    options["connect_args"] = {"check_same_thread": False}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


@lru_cache
def get_engine() -> Engine:
    """
    Create the process-wide SQLAlchemy engine.

    Pre-ping replaces connections dropped by the server transparently.
    SQL echo follows LOG_LEVEL=DEBUG.
    """
    return create_engine(settings.database_url, **engine_options(settings.database_url))


@lru_cache
def get_session_factory() -> sessionmaker:
    """Session factory bound to the process-wide engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


@contextmanager
def session_scope(factory: SessionFactory) -> Generator[Session, None, None]:
    """
    Open a session from `factory`, commit on success, roll back on error.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Transactional session against the configured database."""
    with session_scope(get_session_factory()) as session:
        yield session


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
