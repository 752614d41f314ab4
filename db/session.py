"""
db/session.py

Lazy engine and session factory shared by request handlers and processing
job runs.

Every background run opens its own session, so unless DB_POOL_SIZE is set
the pool is sized for PROCESSING_MAX_WORKERS runs on top of the request
handlers.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url

logger = logging.getLogger(__name__)

REQUEST_POOL_SIZE = 5

_lock = threading.Lock()
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _env_int(name: str, default: int) -> int:
    raw_value = os.getenv(name, "").strip()
    if not raw_value:
        return default
    try:
        return int(raw_value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw_value)
        return default


def _pool_size() -> int:
    workers = max(1, _env_int("PROCESSING_MAX_WORKERS", 4))
    return max(1, _env_int("DB_POOL_SIZE", REQUEST_POOL_SIZE + workers))


def create_db_engine() -> Engine:
    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    pool_size = _pool_size()
    logger.info("Creating database engine pool_size=%s", pool_size)
    return create_engine(
        database_url,
        echo=os.getenv("SQL_ECHO", "").strip().lower() in {"1", "true", "yes", "on"},
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=_env_int("DB_MAX_OVERFLOW", 10),
        pool_recycle=_env_int("DB_POOL_RECYCLE", 1800),
        pool_timeout=_env_int("DB_POOL_TIMEOUT", 30),
    )


def get_engine() -> Engine:
    """Return the shared engine, creating it on first use."""
    global _engine
    with _lock:
        if _engine is None:
            _engine = create_db_engine()
        return _engine


def _get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    engine = get_engine()
    with _lock:
        if _session_factory is None:
            _session_factory = sessionmaker(
                bind=engine,
                autoflush=False,
                expire_on_commit=False,
            )
        return _session_factory


def SessionLocal() -> Session:
    return _get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def dispose_engine() -> None:
    """
    Close pooled connections; the next session recreates the engine.
    """

    global _engine, _session_factory
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None
