from contextlib import contextmanager
from functools import lru_cache
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from ..errors import StoreUnavailable
from ..utils.logging import get_logger
from .schema import create_all

logger = get_logger(__name__)

# Failures that mean "the store is not reachable right now". Integrity and
# programming errors are not in this list and propagate unchanged.
TRANSIENT_STORE_ERRORS = (OperationalError, PoolTimeoutError, DisconnectionError)


@lru_cache(maxsize=None)
def get_engine(sqlite_path: str):
    engine_url = f"sqlite:///{sqlite_path}"
    engine = create_engine(engine_url, future=True)
    create_all(engine)
    return engine


def get_session(sqlite_path: str) -> Session:
    """Get a SQLAlchemy session (caller must close it)."""
    engine = get_engine(sqlite_path)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


@contextmanager
def session_context(sqlite_path: str) -> Generator[Session, None, None]:
    """
    Context manager for SQLAlchemy sessions.

    Rolls back on any exception and always closes the session. Commits are
    left to the caller: the write protocol commits exactly once per accepted
    mutation.

    Usage:
        with session_context(sqlite_path) as session:
            adapter.fetch_and_update_paging(session, spec, page_state)
    """
    session = get_session(sqlite_path)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def store_errors(operation: str) -> Generator[None, None, None]:
    """Re-raise transient SQLAlchemy failures as StoreUnavailable."""
    try:
        yield
    except TRANSIENT_STORE_ERRORS as e:
        logger.warning(f"Store unavailable during {operation}: {e}")
        raise StoreUnavailable(f"{operation} failed: {e}") from e
