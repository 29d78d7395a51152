# Scan Reconcile: unload verification against a manifest
# Siloed module - no imports from other Nebula components

from .models import Product, ScanRecord, SessionState, ScanStatus, ScanResult, ProductProgress
from .errors import (
    ScanReconcileError,
    ManifestError,
    DuplicateCodeError,
    InvalidQuantityError,
    MissingFieldError,
    PersistenceError,
    ReportError,
)
from .config import load_config, ScanConfig
from .manifest import normalize_code, build_manifest, build_index, ManifestIndex
from .manifest_loader import load_manifest_file, load_manifest_bytes
from .matcher import parse_scan, handle_scan, summarize_outcomes
from .stores import SnapshotStore, InMemorySnapshotStore, FileSnapshotStore, encode_state, decode_state
from .session import ReconciliationSession
from .gateway import ScanGateway, CameraFeed, TypedInputDebouncer
from .report import (
    ReportHeader,
    ReportPayload,
    project,
    missing_subcodes,
    product_progress,
    display_order,
    global_counter,
    format_console,
    export_csv,
    generate_report_filename,
)
from .sheet_writer import write_report_workbook, save_report_workbook

__version__ = "1.0.0"

__all__ = [
    # Models
    "Product",
    "ScanRecord",
    "SessionState",
    "ScanStatus",
    "ScanResult",
    "ProductProgress",
    # Errors
    "ScanReconcileError",
    "ManifestError",
    "DuplicateCodeError",
    "InvalidQuantityError",
    "MissingFieldError",
    "PersistenceError",
    "ReportError",
    # Config
    "ScanConfig",
    "load_config",
    # Manifest
    "normalize_code",
    "build_manifest",
    "build_index",
    "ManifestIndex",
    "load_manifest_file",
    "load_manifest_bytes",
    # Matcher
    "parse_scan",
    "handle_scan",
    "summarize_outcomes",
    # Persistence
    "SnapshotStore",
    "InMemorySnapshotStore",
    "FileSnapshotStore",
    "encode_state",
    "decode_state",
    "ReconciliationSession",
    # Input
    "ScanGateway",
    "CameraFeed",
    "TypedInputDebouncer",
    # Report
    "ReportHeader",
    "ReportPayload",
    "project",
    "missing_subcodes",
    "product_progress",
    "display_order",
    "global_counter",
    "format_console",
    "export_csv",
    "generate_report_filename",
    "write_report_workbook",
    "save_report_workbook",
]
