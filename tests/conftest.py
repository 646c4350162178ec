"""
Pytest fixtures for the test suite.

Data-layer tests use a fresh in-memory SQLite engine per test. ``StaticPool``
keeps one connection so every session opened by a store
sees the same database.
"""
from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.db.session import create_session_factory

TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from app.db.base import Base
    from app.models import profile, tenancy  # noqa: F401  (register tables)

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def session_factory(tables):
    return create_session_factory(tables)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()
