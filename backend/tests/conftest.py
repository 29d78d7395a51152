"""
Test configuration and fixtures for the Scan Reconcile backend test suite.

Provides:
- In-memory SQLite test database (isolated per test)
- FastAPI TestClient fixture with a fresh scan session
- Manifest file factories
"""
import io
import sqlite3
from contextlib import contextmanager
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from backend.core.db.base import SCHEMA


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

def _create_test_db() -> sqlite3.Connection:
    """Create an in-memory SQLite database with the snapshot schema."""
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA)
    return conn


@contextmanager
def _test_get_db(conn: sqlite3.Connection):
    """Replacement for get_db() that uses the shared test connection."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


@pytest.fixture()
def test_db():
    """Provide a fresh in-memory SQLite database for each test."""
    conn = _create_test_db()
    yield conn
    conn.close()


@pytest.fixture()
def patch_db(test_db):
    """
    Patch the get_db context manager in every db module so that
    every database call uses the in-memory test database.
    """
    cm = lambda: _test_get_db(test_db)  # noqa: E731

    with (
        patch("backend.core.db.base.get_db", cm),
        patch("backend.core.db.snapshots.get_db", cm),
    ):
        yield test_db


@pytest.fixture()
def client(patch_db):
    """
    Provide a FastAPI TestClient with the database patched.

    The process-wide scan session is dropped before and after each test so
    every test restores from its own empty database.
    """
    from backend.api.main import app
    from backend.api.routers.scanning import reset_scan_state

    reset_scan_state()
    # Schema already exists in the test database
    with patch("backend.api.main.init_db"):
        with TestClient(app) as c:
            yield c
    reset_scan_state()


# ---------------------------------------------------------------------------
# Manifest factories
# ---------------------------------------------------------------------------

MANIFEST_ROWS = [
    {"codigo_barra": "123", "cantidad": "2", "ciudad": "Cali"},
    {"codigo_barra": "456", "cantidad": "1", "ciudad": "Pasto", "codigos_adicionales": "4560"},
]


@pytest.fixture()
def manifest_rows():
    return [dict(r) for r in MANIFEST_ROWS]


@pytest.fixture()
def manifest_csv() -> bytes:
    """CSV manifest body for upload tests."""
    lines = ["codigo_barra,cantidad,ciudad,codigos_adicionales"]
    for r in MANIFEST_ROWS:
        lines.append(
            f"{r['codigo_barra']},{r['cantidad']},{r['ciudad']},\"{r.get('codigos_adicionales', '')}\""
        )
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture()
def manifest_xlsx() -> bytes:
    """XLSX manifest body for upload tests."""
    wb = Workbook()
    ws = wb.active
    ws.append(["codigo_barra", "cantidad", "ciudad", "codigos_adicionales"])
    for r in MANIFEST_ROWS:
        ws.append([r["codigo_barra"], int(r["cantidad"]), r["ciudad"], r.get("codigos_adicionales")])
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture()
def loaded(client, manifest_rows):
    """Client with the default manifest already loaded."""
    resp = client.post("/api/scan/manifest/rows", json={"rows": manifest_rows})
    assert resp.status_code == 200
    return client
