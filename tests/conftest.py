"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cricpulse.db.models import Base


def _memory_engine():
    # One shared connection so every session sees the same in-memory database
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture(scope="session")
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory for fast tests that don't need
    PostgreSQL-specific features.
    """
    return _memory_engine()


@pytest.fixture(scope="session")
def tables(test_engine):
    """
    Create all tables for testing.

    This fixture runs once per test session.
    """
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def db_session(test_engine, tables):
    """
    Create a database session for a test.

    Each test gets its own session with automatic rollback,
    ensuring tests don't affect each other.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    Session = sessionmaker(bind=connection)
    session = Session()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def session_factory():
    """
    Session factory over a fresh in-memory database.

    For code that opens and commits its own sessions (cache store, bulk
    scraping), where the rollback-per-test session above does not fit.
    """
    engine = _memory_engine()
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


class FakeClock:
    """Settable naive-UTC clock for expiry tests."""

    def __init__(self, start: datetime = datetime(2026, 10, 19, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()
