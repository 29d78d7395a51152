"""
Tests for the SQLite snapshot store.
"""
import sqlite3
from contextlib import contextmanager
from unittest.mock import patch

import pytest

from backend.core.db import SQLiteSnapshotStore, get_snapshot_info
from nebula.scan_reconcile import PersistenceError, ReconciliationSession, ScanStatus


class TestSQLiteSnapshotStore:

    def test_missing_key(self, patch_db):
        assert SQLiteSnapshotStore().read("scanProgress") is None
        assert get_snapshot_info("scanProgress") is None

    def test_write_overwrites(self, patch_db):
        store = SQLiteSnapshotStore()
        store.write("scanProgress", b"first")
        store.write("scanProgress", b"second!")

        assert store.read("scanProgress") == b"second!"
        assert patch_db.execute("SELECT COUNT(*) FROM session_snapshots").fetchone()[0] == 1
        assert get_snapshot_info("scanProgress")["size"] == 7

    def test_delete(self, patch_db):
        store = SQLiteSnapshotStore()
        store.write("scanProgress", b"x")
        store.delete("scanProgress")
        store.delete("scanProgress")
        assert store.read("scanProgress") is None

    def test_text_payload_is_persistence_error(self, patch_db):
        patch_db.execute(
            "INSERT INTO session_snapshots (key, payload) VALUES (?, ?)",
            ("scanProgress", "not a blob"),
        )
        patch_db.commit()

        with pytest.raises(PersistenceError):
            SQLiteSnapshotStore().read("scanProgress")
        assert ReconciliationSession.restore(SQLiteSnapshotStore()).state.is_empty

    def test_session_round_trip(self, patch_db, manifest_rows):
        session = ReconciliationSession(SQLiteSnapshotStore())
        session.load_manifest(manifest_rows)
        session.scan("123-1")

        restored = ReconciliationSession.restore(SQLiteSnapshotStore())
        assert restored.state == session.state
        assert restored.scan("123-1").status == ScanStatus.REJECTED_DUPLICATE_SUBCODE


class TestStorageFailure:

    @pytest.fixture()
    def broken_db(self):
        """get_db that fails like a database without the snapshot table."""
        conn = sqlite3.connect(":memory:")

        @contextmanager
        def _get_db():
            yield conn

        with patch("backend.core.db.snapshots.get_db", _get_db):
            yield
        conn.close()

    def test_errors_become_persistence_errors(self, broken_db):
        store = SQLiteSnapshotStore()
        with pytest.raises(PersistenceError):
            store.read("scanProgress")
        with pytest.raises(PersistenceError):
            store.write("scanProgress", b"x")
        with pytest.raises(PersistenceError):
            store.delete("scanProgress")

    def test_session_keeps_working(self, broken_db, manifest_rows):
        session = ReconciliationSession.restore(SQLiteSnapshotStore())
        assert session.state.is_empty

        assert session.load_manifest(manifest_rows) is False
        result = session.scan("123-1")
        assert result.accepted
        assert result.persisted is False
