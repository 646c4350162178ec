from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def create_db_engine(db_url: str) -> Engine:
    """
    Build the engine for ``db_url``.

    SQLite connections are shared across the request threadpool, so the
    same-thread check is turned off for them.
    """

    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Stores hand detached rows back to the engine; keep attributes loaded after commit.
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, class_=Session)
