"""
Database package for Scan Reconcile.

    from backend.core.db import get_db, init_db, SQLiteSnapshotStore
"""

# Base - connection, initialization
from .base import (
    DB_PATH,
    SCHEMA,
    get_db,
    init_db,
)

# Session snapshots
from .snapshots import (
    SQLiteSnapshotStore,
    get_snapshot_info,
)

__all__ = [
    "DB_PATH",
    "SCHEMA",
    "get_db",
    "init_db",
    "SQLiteSnapshotStore",
    "get_snapshot_info",
]
