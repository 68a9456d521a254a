"""
Database Package.

Local mirror database: declarative base, async engine and session helpers.
"""

from grafana_console.database.base import Base, TimestampMixin, IntPrimaryKey, CreatedAt, UpdatedAt
from grafana_console.database.engine import get_engine, close_engine, DEFAULT_DATABASE_URL
from grafana_console.database.session import (
    get_session_factory,
    session_scope,
    close_db_connections,
    init_database,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "IntPrimaryKey",
    "CreatedAt",
    "UpdatedAt",
    # Engine
    "get_engine",
    "close_engine",
    "DEFAULT_DATABASE_URL",
    # Session
    "get_session_factory",
    "session_scope",
    "close_db_connections",
    "init_database",
]
