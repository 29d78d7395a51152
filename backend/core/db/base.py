"""
Database base module - connection management and initialization.
"""
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from backend.core.config import settings

# Database location (relative paths resolve against the repo root)
ROOT_DIR = Path(__file__).resolve().parents[3]
DB_PATH = Path(settings.DB_PATH) if Path(settings.DB_PATH).is_absolute() else ROOT_DIR / settings.DB_PATH


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


SCHEMA = """
    -- One compressed session snapshot per key, overwritten on every change
    CREATE TABLE IF NOT EXISTS session_snapshots (
        key TEXT PRIMARY KEY,
        payload BLOB NOT NULL,
        size INTEGER DEFAULT 0,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    );
"""


def init_db():
    """Initialize database tables."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        # WAL lets status reads proceed while a scan is being saved
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        conn.executescript(SCHEMA)
