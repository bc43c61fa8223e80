"""
db/session.py

Engine and session wiring for the organisations/usage database.

Nothing connects at import time; the engine is built on first use.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import get_pool_settings, resolve_database_url


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    pool = get_pool_settings()
    return create_engine(
        database_url,
        echo=pool.echo,
        pool_pre_ping=True,
        pool_recycle=pool.recycle_seconds,
        pool_size=pool.size,
        max_overflow=pool.max_overflow,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


def SessionLocal() -> Session:
    """New independent session; safe to open from worker threads."""
    return get_session_factory()()
