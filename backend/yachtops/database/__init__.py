"""Database module for YachtOps."""

from yachtops.database.base import Base, TimestampMixin
from yachtops.database.connection import (
    check_database_connection,
    close_db_engine,
    create_engine,
    create_session_factory,
    init_db_engine,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "create_engine",
    "create_session_factory",
    "check_database_connection",
    "init_db_engine",
    "close_db_engine",
]
