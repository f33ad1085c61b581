"""
db/session.py

Engine and per-request sessions for the clinic metrics database.

Nothing connects at import time; the engine is built the first time a
session is requested.
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import env_bool, env_int, require_postgres, resolve_database_url


def engine_options() -> dict[str, Any]:
    """Pool and echo settings read from ``SQL_ECHO`` and ``DB_POOL_*``."""
    return {
        "echo": env_bool("SQL_ECHO"),
        "pool_pre_ping": True,
        "pool_recycle": env_int("DB_POOL_RECYCLE", 1800),
        "pool_size": env_int("DB_POOL_SIZE", 5),
        "max_overflow": env_int("DB_MAX_OVERFLOW", 10),
    }


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_engine(require_postgres(resolve_database_url()), **engine_options())


@lru_cache(maxsize=1)
def _session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


def SessionLocal() -> Session:
    return _session_factory()()


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request, closed afterwards."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
