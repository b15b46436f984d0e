"""Database layer: declarative base, column types, engine and sessions."""

from edges_kernel.db.base import RAW_SCHEMA, Base, StringifiedValue, TrackedBase, UUIDString
from edges_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    is_postgres,
    reset_engine,
    session_scope,
)

__all__ = [
    "RAW_SCHEMA",
    "Base",
    "StringifiedValue",
    "TrackedBase",
    "UUIDString",
    "build_engine",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "is_postgres",
    "reset_engine",
    "session_scope",
]
