"""
Snapshot Stores - Where the session state lives between runs.

The store pattern lets us swap implementations (in-memory for tests, a
directory of files for the CLI, SQLite in the backend) without changing
session logic. A store only ever sees opaque bytes under a key.

The codec turns a SessionState into a compressed JSON blob and back.
"""

import json
import os
import re
import zlib
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

from .errors import PersistenceError
from .models import Product, ScanRecord, SessionState


SNAPSHOT_VERSION = 1


class SnapshotStore(ABC):
    """
    Abstract key -> blob storage for session snapshots.

    write() overwrites; there is never more than one blob per key.
    Implementations raise PersistenceError when the backing storage fails.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[bytes]:
        """Return the blob stored under key, or None if absent."""
        pass

    @abstractmethod
    def write(self, key: str, blob: bytes) -> None:
        """Store blob under key, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is not an error."""
        pass


class InMemorySnapshotStore(SnapshotStore):
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}

    def read(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    def write(self, key: str, blob: bytes) -> None:
        self._blobs[key] = bytes(blob)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._blobs)


class FileSnapshotStore(SnapshotStore):
    """
    One file per key inside a directory.

    Writes go to a temp file first and are moved into place, so an
    interrupted write never leaves a half-written snapshot behind.
    """

    def __init__(self, directory: str | Path):
        self._directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        safe = re.sub(r"[^\w\-.]", "_", key)
        return self._directory / f"{safe}.snapshot"

    def read(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Could not read snapshot {path}: {e}") from e

    def write(self, key: str, blob: bytes) -> None:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(blob)
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(f"Could not write snapshot {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not delete snapshot {path}: {e}") from e


# =============================================================================
# CODEC
# =============================================================================

def _record_to_dict(record: ScanRecord) -> dict:
    return {"code": record.code, "scanned_at": record.scanned_at.isoformat()}


def _record_from_dict(data: dict) -> ScanRecord:
    return ScanRecord(code=str(data["code"]), scanned_at=datetime.fromisoformat(data["scanned_at"]))


def encode_state(state: SessionState, compression_level: int = 6) -> bytes:
    """Serialize the whole state to a compressed JSON blob."""
    document = {
        "version": SNAPSHOT_VERSION,
        "products": [
            {
                "primary_code": p.primary_code,
                "valid_codes": list(p.valid_codes),
                "expected_quantity": p.expected_quantity,
                "city": p.city,
                "scanned_subcodes": list(p.scanned_subcodes),
                "no_suffix_count": p.no_suffix_count,
            }
            for p in state.products
        ],
        "scanned_units": dict(state.scanned_units),
        "total_units_expected": state.total_units_expected,
        "total_units_scanned": state.total_units_scanned,
        "accepted_log": [_record_to_dict(r) for r in state.accepted_log],
        "rejected_log": [_record_to_dict(r) for r in state.rejected_log],
    }
    raw = json.dumps(document, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return zlib.compress(raw, compression_level)


def decode_state(blob: bytes) -> SessionState:
    """
    Rebuild a SessionState from a blob written by encode_state.

    Raises:
        ValueError: The blob is not a readable snapshot
    """
    try:
        document = json.loads(zlib.decompress(blob).decode("utf-8"))
    except (zlib.error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Snapshot is not readable: {e}") from e

    if not isinstance(document, dict):
        raise ValueError("Snapshot root is not an object")
    if document.get("version") != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {document.get('version')!r}")

    try:
        products = [
            Product(
                primary_code=str(p["primary_code"]),
                valid_codes=[str(c) for c in p["valid_codes"]],
                expected_quantity=int(p["expected_quantity"]),
                city=str(p.get("city", "")),
                scanned_subcodes=[str(s) for s in p.get("scanned_subcodes", [])],
                no_suffix_count=int(p.get("no_suffix_count", 0)),
            )
            for p in document["products"]
        ]
        for product in products:
            if product.expected_quantity <= 0:
                raise ValueError(f"non-positive quantity for {product.primary_code!r}")
        return SessionState(
            products=products,
            scanned_units={str(k): int(v) for k, v in document["scanned_units"].items()},
            total_units_expected=int(document["total_units_expected"]),
            total_units_scanned=int(document["total_units_scanned"]),
            accepted_log=[_record_from_dict(r) for r in document.get("accepted_log", [])],
            rejected_log=[_record_from_dict(r) for r in document.get("rejected_log", [])],
        )
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise ValueError(f"Snapshot is malformed: {e}") from e
