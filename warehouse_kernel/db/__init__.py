"""Database layer - engine, base classes, immutability listeners and locks."""

from warehouse_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from warehouse_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "drop_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
