"""
Session snapshot storage backed by SQLite.
"""
import sqlite3
from datetime import datetime
from typing import Any, Dict, Optional

from nebula.scan_reconcile.errors import PersistenceError
from nebula.scan_reconcile.stores import SnapshotStore

from .base import get_db


class SQLiteSnapshotStore(SnapshotStore):
    """
    Keeps each snapshot as one row of session_snapshots.

    sqlite3 errors (locked database, disk full, missing table) are
    re-raised as PersistenceError so the session can log and carry on.
    """

    def read(self, key: str) -> Optional[bytes]:
        try:
            with get_db() as conn:
                row = conn.execute(
                    "SELECT payload FROM session_snapshots WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read snapshot '{key}': {e}") from e
        if row is None:
            return None
        payload = row["payload"]
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise PersistenceError(
                f"Snapshot '{key}' holds {type(payload).__name__}, expected a blob"
            )
        return bytes(payload)

    def write(self, key: str, blob: bytes) -> None:
        now = datetime.utcnow().isoformat()
        try:
            with get_db() as conn:
                conn.execute(
                    """INSERT INTO session_snapshots (key, payload, size, updated_at)
                       VALUES (?, ?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                           payload = excluded.payload,
                           size = excluded.size,
                           updated_at = excluded.updated_at""",
                    (key, sqlite3.Binary(blob), len(blob), now),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not write snapshot '{key}': {e}") from e

    def delete(self, key: str) -> None:
        try:
            with get_db() as conn:
                conn.execute("DELETE FROM session_snapshots WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not delete snapshot '{key}': {e}") from e


def get_snapshot_info(key: str) -> Optional[Dict[str, Any]]:
    """Size and last update of a stored snapshot, without the payload."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT key, size, updated_at FROM session_snapshots WHERE key = ?", (key,)
        ).fetchone()
    return dict(row) if row else None
