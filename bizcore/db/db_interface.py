#!/usr/bin/env python3
"""
Database Interface Configuration

Shared SQLAlchemy declarative base, engine and session factories, and the
transaction helpers every component runs inside.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from bizcore.env_var_injection import get_database_url

# Shared SQLAlchemy DbInterface
DbInterface = declarative_base()

# Lazy initialization to prevent real database connection during tests
_engine = None
_SessionLocal = None

CONSISTENT_READ_ISOLATION_LEVEL = "REPEATABLE READ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_engine():
    """Get the database engine, creating it if necessary."""
    global _engine
    if _engine is None:
        _engine = create_engine(get_database_url(), pool_pre_ping=True)
    return _engine


def get_session_local():
    """Get the session factory, creating it if necessary."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False)
    return _SessionLocal


@contextmanager
def transaction(session_factory=None) -> Generator[Session, None, None]:
    """One unit of work: commit on success, roll back on any error."""
    session = (session_factory or get_session_local())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def begin_consistent_read(session: Session) -> None:
    """
    Pin the session's transaction to a single snapshot so multi-row reads
    (e.g. every template of a merge) observe one point in time.

    Only effective before the first statement of the transaction; a caller
    that already started the transaction owns its isolation. SQLite already
    serializes writers and has no REPEATABLE READ level, so it is left alone.
    """
    if session.in_transaction():
        return
    bind = session.get_bind()
    if bind.dialect.name == "postgresql":
        session.connection(execution_options={"isolation_level": CONSISTENT_READ_ISOLATION_LEVEL})
