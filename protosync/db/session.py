"""
Database session management for the preference store.

Engines are created lazily, one per database URL, and the schema is
created on first use.  ``get_session()`` is a context manager for
transactional work.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from protosync.db.models import Base

logger = logging.getLogger(__name__)

_engines: Dict[str, Engine] = {}
_session_factories: Dict[str, sessionmaker] = {}


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _ensure_sqlite_directory(url: str) -> None:
    database = make_url(url).database
    if database not in (None, "", ":memory:"):
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def get_engine(url: str) -> Engine:
    """Return (or create) the ``Engine`` for *url*, creating tables once."""
    engine = _engines.get(url)
    if engine is None:
        logger.info("Creating DB engine → %s", _redact(url))
        connect_args = {}
        if _is_sqlite(url):
            _ensure_sqlite_directory(url)
            # Preferences are read from worker and API threads alike.
            connect_args["check_same_thread"] = False
        engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
        Base.metadata.create_all(engine)
        _engines[url] = engine
    return engine


def get_session_factory(url: str) -> sessionmaker:
    factory = _session_factories.get(url)
    if factory is None:
        factory = sessionmaker(bind=get_engine(url), expire_on_commit=False)
        _session_factories[url] = factory
    return factory


@contextmanager
def get_session(url: str) -> Generator[Session, None, None]:
    """
    Context manager that yields a SQLAlchemy ``Session``.

    Commits on clean exit, rolls back on exception.
    """
    session = get_session_factory(url)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_connection(url: str) -> bool:
    """Quick connectivity check — returns ``True`` if the DB is reachable."""
    try:
        with get_engine(url).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.error("Database connection check failed: %s", exc)
        return False


def dispose_engines() -> None:
    """Close every cached engine.  Used on shutdown and between tests."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
    _session_factories.clear()


def _redact(url: str) -> str:
    """Redact password from a connection URL for logging."""
    return make_url(url).render_as_string(hide_password=True)
