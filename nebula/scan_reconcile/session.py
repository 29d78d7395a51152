"""
Reconciliation Session - Owns the state, the index and the snapshot store.

Every state change goes through here so persistence happens in one place:
load a manifest, scan, reset. Persistence is best-effort - a failing store
is logged and reported on the result, never allowed to undo or abort the
in-memory change that triggered it.
"""

import logging
import zlib
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from .config import ScanConfig
from .errors import PersistenceError
from .manifest import ManifestIndex, build_index, build_manifest
from .matcher import handle_scan
from .models import ScanResult, SessionState
from .report import ReportHeader, ReportPayload, project
from .stores import SnapshotStore, decode_state, encode_state

logger = logging.getLogger(__name__)


class ReconciliationSession:
    """
    One reconciliation run: a manifest, its counts and its audit logs.

    Not thread-safe on its own; wrap it in a ScanGateway when more than one
    producer feeds scans.
    """

    def __init__(
        self,
        store: SnapshotStore,
        config: Optional[ScanConfig] = None,
        state: Optional[SessionState] = None,
    ):
        self.store = store
        self.config = config or ScanConfig()
        self.state = state or SessionState()
        self.index: ManifestIndex = build_index(self.state.products)

    @classmethod
    def restore(cls, store: SnapshotStore, config: Optional[ScanConfig] = None) -> "ReconciliationSession":
        """
        Start a session from the stored snapshot, if there is a usable one.

        A missing or corrupt snapshot gives an empty session; it never
        blocks startup.
        """
        config = config or ScanConfig()
        key = config.snapshot_key

        try:
            blob = store.read(key)
        except PersistenceError as e:
            logger.warning(f"Could not read snapshot '{key}', starting empty: {e}")
            return cls(store, config)

        if blob is None:
            logger.info("No saved session found, starting empty")
            return cls(store, config)

        try:
            state = decode_state(blob)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable snapshot '{key}': {e}")
            return cls(store, config)

        logger.info(
            f"Restored session: {len(state.products)} products, "
            f"{state.total_units_scanned}/{state.total_units_expected} units scanned"
        )
        return cls(store, config, state)

    def persist(self) -> bool:
        """
        Save the whole state under the snapshot key.

        Returns:
            True if the store accepted the write, False otherwise
        """
        try:
            blob = encode_state(self.state, self.config.compression_level)
            self.store.write(self.config.snapshot_key, blob)
        except (PersistenceError, zlib.error, TypeError, ValueError) as e:
            # Encoding or storage failed; the in-memory change stands
            logger.warning(f"Could not persist session: {e}")
            return False
        return True

    def load_manifest(self, rows: Sequence[Mapping[str, Any]]) -> bool:
        """
        Replace the current manifest and all progress with a new one.

        Raises:
            ManifestError: The rows are invalid; the current state is kept

        Returns:
            Whether the new state was persisted
        """
        products = build_manifest(rows)
        self.state = SessionState.from_products(products)
        self.index = build_index(products)
        logger.info(
            f"Loaded manifest: {len(products)} products, "
            f"{self.state.total_units_expected} units expected"
        )
        return self.persist()

    def scan(self, raw: str, now: Optional[datetime] = None) -> ScanResult:
        """Evaluate one scan, then persist the resulting state."""
        result = handle_scan(
            raw,
            now or datetime.now(),
            self.state,
            self.index,
            separator=self.config.subcode_separator,
        )
        result.persisted = self.persist()
        return result

    def reset(self) -> bool:
        """
        Clear all state and remove the stored snapshot.

        Returns:
            Whether the stored snapshot was removed
        """
        self.state = SessionState()
        self.index = build_index([])
        logger.info("Session reset")
        try:
            self.store.delete(self.config.snapshot_key)
        except PersistenceError as e:
            logger.warning(f"Could not remove stored snapshot: {e}")
            return False
        return True

    def report(self, header: Optional[ReportHeader] = None) -> ReportPayload:
        """Project the current state into a report payload."""
        return project(self.state, header=header, config=self.config)
