"""
Database connection and session management for the cache backing store.
Works with any SQLAlchemy URL; SQLite and PostgreSQL are the usual ones.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Engine for the backing store
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are used from the event loop thread and from FastAPI workers
        connect_args["check_same_thread"] = False

    return create_engine(database_url, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to engine."""
    return sessionmaker(bind=engine)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """
    Context manager for database session.

    Usage:
        with session_scope(factory) as db:
            # Use db session
            pass
    """
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine):
    """
    Initialize the database by creating all tables.
    """
    from disasterwatch.db_models import Base

    Base.metadata.create_all(bind=engine)
