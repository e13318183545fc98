"""Database helpers and SQLAlchemy session factories."""

from .engine import create_sync_engine
from .session import get_sessionmaker, session_scope, transactional

__all__ = [
    "create_sync_engine",
    "get_sessionmaker",
    "session_scope",
    "transactional",
]
