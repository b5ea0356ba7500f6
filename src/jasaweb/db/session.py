"""
Shared SQLAlchemy engine and per-request sessions.

Every domain service receives a Session from get_db(); nothing else
talks to the database directly.
"""

from typing import Any, Dict, Generator, Optional

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _build_engine(url: str, echo: bool = False) -> Engine:
    kwargs: Dict[str, Any] = {"echo": echo}
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory databases live only as long as their single connection
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(url, **kwargs)


def get_engine() -> Engine:
    """Get or create the global engine from settings."""
    global _engine

    if _engine is None:
        settings = get_settings()
        _engine = _build_engine(settings.database.url, settings.database.echo)
        logger.info("Database engine created", backend=_engine.url.get_backend_name())

    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the global session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)

    return _session_factory


def init_db() -> None:
    """Create all tables that do not exist yet."""
    from . import tables  # noqa: F401  registers mappers on Base

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database schema ensured")


def ping_db() -> None:
    """Run a trivial query; raises if the database is unreachable."""
    with get_engine().connect() as connection:
        connection.execute(text("SELECT 1"))


def reset_engine() -> None:
    """Dispose the global engine (used on shutdown and between tests)."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()
