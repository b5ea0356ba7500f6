"""
Persistence package: engine, sessions and ORM tables.
"""

from .session import Base, get_db, get_engine, get_session_factory, init_db, ping_db, reset_engine

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_session_factory",
    "init_db",
    "ping_db",
    "reset_engine",
]
