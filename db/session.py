"""
db/session.py

Engine and session factory shared by the identity store and the API.

Pool sizing comes from DB_POOL_* variables; ingestion runs synchronously in
FastAPI's threadpool, so the pool must cover concurrent uploads plus reads.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class PoolSettings:
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle: int = 1800
    connect_timeout: int = 10

    @classmethod
    def from_env(cls) -> PoolSettings:
        return cls(
            echo=_env_flag("SQL_ECHO"),
            pool_size=max(1, _env_int("DB_POOL_SIZE", 5)),
            max_overflow=max(0, _env_int("DB_MAX_OVERFLOW", 10)),
            pool_recycle=_env_int("DB_POOL_RECYCLE", 1800),
            connect_timeout=max(1, _env_int("DB_CONNECT_TIMEOUT", 10)),
        )


def create_db_engine(settings: PoolSettings | None = None) -> Engine:
    """
    Build a PostgreSQL engine. Other backends are rejected outside tests.
    """

    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    pool = settings or PoolSettings.from_env()
    return create_engine(
        database_url,
        echo=pool.echo,
        pool_pre_ping=True,
        pool_size=pool.pool_size,
        max_overflow=pool.max_overflow,
        pool_recycle=pool.pool_recycle,
        connect_args={"connect_timeout": pool.connect_timeout},
    )


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    Shared factory. Objects stay readable after commit so stores can map
    them to domain records outside the transaction.
    """

    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def SessionLocal() -> Session:
    return get_session_factory()()
