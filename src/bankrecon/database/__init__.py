"""Database layer for bankrecon application."""

from bankrecon.database.base import (
    Database,
    LedgerReader,
    LockManager,
    MovementStore,
    PartitionMapProvider,
)
from bankrecon.database.factories import create_sqlite_database

__all__ = [
    "Database",
    "LedgerReader",
    "LockManager",
    "MovementStore",
    "PartitionMapProvider",
    "create_sqlite_database",
]
