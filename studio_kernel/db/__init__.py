"""Database layer: declarative base, engine and session management."""

from studio_kernel.db.base import Base, TrackedBase
from studio_kernel.db.engine import create_tables, get_engine, get_session, session_scope

__all__ = [
    "Base",
    "TrackedBase",
    "create_tables",
    "get_engine",
    "get_session",
    "session_scope",
]
