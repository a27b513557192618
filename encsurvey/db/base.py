"""SQLAlchemy engine, session and schema bootstrap.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; this module only
manages connection lifecycle and the per-call transaction scope.
"""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from typing import Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or "sqlite+pysqlite:///:memory:"
    )


# Module-level cached Engine to ensure a single shared connection/engine
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None

# One lock per database URL; contract calls against it run one at a time
_CALL_LOCKS: Dict[str, threading.RLock] = {}
_CALL_LOCKS_GUARD = threading.Lock()


def get_engine(url: str | None = None) -> Engine:
    """Return a singleton SQLAlchemy Engine for the given URL.

    Reuses a module-level Engine so contract instances share the same
    connection pool. For SQLite in-memory URLs, use a StaticPool to keep a
    single connection alive across sessions and threads during tests.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        _ENGINE = build_engine(resolved_url)
        _ENGINE_URL = resolved_url

    return _ENGINE


def build_engine(url: str) -> Engine:
    """Create a new, unshared Engine for `url`."""
    kwargs: dict = {"future": True, "pool_pre_ping": True}
    if url.startswith("sqlite") and (":memory:" in url or url.rstrip("/").endswith("sqlite")):
        # Keep a single in-memory DB connection shared across the process
        kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })
    return create_engine(url, **kwargs)


def get_sessionmaker(engine: Engine | None = None) -> sessionmaker:
    engine = engine or get_engine()
    return sessionmaker(bind=engine, future=True, expire_on_commit=False)


def init_schema(engine: Engine) -> None:
    """Create all tables known to the ORM metadata if they are missing."""
    from encsurvey.models.base import Base
    import encsurvey.models  # noqa: F401  (registers every table on Base.metadata)

    Base.metadata.create_all(engine)
    logger.info("schema_ready tables=%s", sorted(Base.metadata.tables))


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Run one unit of work: commit on success, roll back on any error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.info("transaction rolled back")
        raise
    finally:
        session.close()


def call_lock(engine: Engine) -> threading.RLock:
    """Return the process-wide lock that serialises calls against `engine`'s database."""
    key = engine.url.render_as_string(hide_password=False)
    with _CALL_LOCKS_GUARD:
        lock = _CALL_LOCKS.get(key)
        if lock is None:
            lock = _CALL_LOCKS[key] = threading.RLock()
        return lock
