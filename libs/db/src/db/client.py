"""Centralized SQLAlchemy engine/session helpers.

Usage
-----
from db.client import session_scope

with session_scope() as s:
    s.execute(...)

The URL comes from ``database_url=`` or the ``DATABASE_URL`` environment
variable. One engine is kept per URL for the life of the process;
:func:`reset_engines` disposes them (tests switch databases this way).
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_LOCK = threading.Lock()
_ENGINES: dict[str, tuple[Engine, sessionmaker[Session]]] = {}


def resolve_database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


def _entry(url: str) -> tuple[Engine, sessionmaker[Session]]:
    with _LOCK:
        entry = _ENGINES.get(url)
        if entry is None:
            engine = create_engine(url, pool_pre_ping=True)
            entry = (engine, sessionmaker(bind=engine, expire_on_commit=False, class_=Session))
            _ENGINES[url] = entry
        return entry


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the shared engine for the resolved URL, creating it on first use."""

    return _entry(resolve_database_url(database_url))[0]


def get_session(*, database_url: str | None = None) -> Session:
    """Return a new session bound to the shared engine."""

    return _entry(resolve_database_url(database_url))[1]()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reset_engines() -> None:
    """Dispose every cached engine."""

    with _LOCK:
        entries = list(_ENGINES.values())
        _ENGINES.clear()
    for engine, _ in entries:
        engine.dispose()


__all__ = [
    "resolve_database_url",
    "get_engine",
    "get_session",
    "session_scope",
    "reset_engines",
]
