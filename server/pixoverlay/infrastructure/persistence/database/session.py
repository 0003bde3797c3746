# server/pixoverlay/infrastructure/persistence/database/session.py
from __future__ import annotations

"""SQLAlchemy engine/session setup."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pixoverlay.core.config import settings

_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def init_engine(url: str | None = None) -> Engine:
    """
    Create a singleton SQLAlchemy Engine, with dialect-aware connect_args.
    - SQLite: share in-memory DB across connections (StaticPool), disable same-thread check
    """
    global _engine
    if _engine is not None:
        return _engine

    database_url = url or settings.DATABASE_URL
    parsed = make_url(database_url)
    backend = parsed.get_backend_name()
    kwargs: dict = dict(future=True, pool_pre_ping=True)
    connect_args: dict = {}

    if backend.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        db_name = (parsed.database or "").strip()
        if db_name in ("", ":memory:"):
            kwargs["poolclass"] = StaticPool

    _engine = create_engine(database_url, connect_args=connect_args, **kwargs)
    return _engine


def init_sessionmaker() -> sessionmaker:
    """Create (once) and return the SessionLocal factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=init_engine(),
            future=True,
            autoflush=True,
            expire_on_commit=False,
        )
    return _SessionLocal


def init_db() -> None:
    """Crée les tables manquantes (pas de migrations : une seule table clé/valeur)."""
    from pixoverlay.infrastructure.persistence.database.base import Base

    Base.metadata.create_all(bind=init_engine())


def dispose_engine() -> None:
    """Ferme le pool et oublie le singleton (teardown, tests)."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_session() -> Session:
    """Return a new Session (caller is responsible for closing it)."""
    return init_sessionmaker()()


@contextmanager
def get_sync_session() -> Iterator[Session]:
    """Context manager: `with get_sync_session() as s:`"""
    s = get_session()
    try:
        yield s
    finally:
        s.close()
