"""Database bootstrap utilities for the encrypted survey service.

This module exposes convenience imports for engine/session construction,
schema creation and the per-database call lock. The DB layer does not leak
ORM models into route handlers.
"""

from encsurvey.db.base import build_engine, call_lock, get_engine, get_sessionmaker, init_schema, session_scope

__all__ = [
    "build_engine",
    "call_lock",
    "get_engine",
    "get_sessionmaker",
    "init_schema",
    "session_scope",
]
