"""
Scan reconciliation API router.

One process-wide gateway serializes every change to the session, whether it
comes from the camera endpoint, the typed-input endpoint or a manifest load.
"""
import logging
import re
from dataclasses import asdict
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse

from backend.api.models import (
    ManifestRowsRequest, ScanRequest, ScanResponse, ScanSource, TypedInputRequest
)
from backend.api.security import require_api_key
from backend.core.config import settings
from backend.core.db import SQLiteSnapshotStore, get_snapshot_info

from nebula.scan_reconcile import (
    CameraFeed, ManifestError, ReconciliationSession, ReportError, ReportHeader,
    ScanGateway, ScanResult, TypedInputDebouncer, display_order, generate_report_filename,
    global_counter, load_config, load_manifest_bytes, product_progress,
)
from nebula.scan_reconcile.report import require_header_fields
from nebula.scan_reconcile.sheet_writer import write_report_workbook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/scan", tags=["Scanning"])

# Process-wide state (restored from the snapshot on first use)
_scan_state: Dict[str, Any] = {
    "gateway": None,
    "camera": None,
    "keyboard": None,
}


def _get_gateway() -> ScanGateway:
    """Restore the session and build the input producers if not already done."""
    if _scan_state["gateway"] is None:
        config = load_config(settings.SCAN_CONFIG_PATH or None)
        session = ReconciliationSession.restore(SQLiteSnapshotStore(), config)
        gateway = ScanGateway(session)
        _scan_state["gateway"] = gateway
        _scan_state["camera"] = CameraFeed(gateway, config.camera_cooldown_seconds)
        _scan_state["keyboard"] = TypedInputDebouncer(gateway, config.input_debounce_seconds)
    return _scan_state["gateway"]


def reset_scan_state() -> None:
    """Drop the in-process gateway so the next request restores from storage."""
    keyboard = _scan_state.get("keyboard")
    if keyboard is not None:
        keyboard.cancel()
    for key in _scan_state:
        _scan_state[key] = None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe use in Content-Disposition header."""
    safe = re.sub(r'[^\w\s\-\.]', '_', filename)
    return quote(safe, safe='')


def _to_response(result: ScanResult, gateway: ScanGateway) -> ScanResponse:
    product = result.product
    return ScanResponse(
        status=result.status.value,
        code=result.code,
        subcode=result.subcode,
        product_code=product.primary_code if product else None,
        scanned=result.new_count,
        expected=product.expected_quantity if product else None,
        reason=result.reason,
        persisted=result.persisted,
        counter=gateway.read(global_counter),
    )


def _header(plate: str, sender: str, date: Optional[str]) -> ReportHeader:
    return ReportHeader(plate=plate, sender=sender, date=date)


@router.get("/status")
def scan_status():
    """Totals, global counter and per-product progress (last scanned first)."""
    gateway = _get_gateway()

    last = gateway.last_result
    last_code = last.product.primary_code if last and last.product else None
    progress = display_order(gateway.read(product_progress), last_code)

    return {
        "loaded": not gateway.read(lambda s: s.is_empty),
        "total_units_expected": gateway.read(lambda s: s.total_units_expected),
        "total_units_scanned": gateway.read(lambda s: s.total_units_scanned),
        "counter": gateway.read(global_counter),
        "products": [asdict(p) for p in progress],
        "last_scan": _to_response(last, gateway).model_dump() if last else None,
        "snapshot": get_snapshot_info(gateway.config.snapshot_key),
    }


@router.post("/manifest")
async def upload_manifest(file: UploadFile = File(...)):
    """Load a CSV or XLSX manifest, replacing all current progress."""
    gateway = _get_gateway()
    data = await file.read()

    try:
        rows = load_manifest_bytes(data, file.filename or "")
        persisted = gateway.load_manifest(rows)
    except ManifestError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": True,
        "products": len(rows),
        "persisted": persisted,
        "counter": gateway.read(global_counter),
    }


@router.post("/manifest/rows")
def load_manifest_rows(request: ManifestRowsRequest):
    """Load already-decoded manifest rows."""
    gateway = _get_gateway()
    try:
        persisted = gateway.load_manifest(request.rows)
    except ManifestError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return {
        "success": True,
        "products": len(request.rows),
        "persisted": persisted,
        "counter": gateway.read(global_counter),
    }


@router.post("")
def submit_scan(request: ScanRequest):
    """
    Evaluate one scan.

    Camera scans go through the decode cooldown and come back as
    SUPPRESSED while it is active; manual scans are evaluated directly.
    """
    gateway = _get_gateway()

    if request.source == ScanSource.CAMERA:
        result = _scan_state["camera"].on_decode(request.code)
        if result is None:
            return {"status": "SUPPRESSED", "code": request.code}
    else:
        result = gateway.submit(request.code)

    return _to_response(result, gateway)


@router.post("/input")
def typed_input(request: TypedInputRequest):
    """
    Record the manual entry field's current value.

    The value is scanned once the operator stops typing for the configured
    debounce window; poll /status for the outcome.
    """
    _get_gateway()
    keyboard: TypedInputDebouncer = _scan_state["keyboard"]
    keyboard.on_input(request.value)
    return {"pending": keyboard.pending, "delay_seconds": keyboard.delay_seconds}


@router.get("/report")
def get_report(
    plate: str = Query(""),
    sender: str = Query(""),
    date: Optional[str] = Query(None),
):
    """Report payload as JSON (header fields optional here)."""
    gateway = _get_gateway()
    header = _header(plate, sender, date) if (plate or sender or date) else None
    return gateway.report(header).to_dict()


@router.get("/report/xlsx")
def export_report_xlsx(
    plate: str = Query(...),
    sender: str = Query(...),
    date: Optional[str] = Query(None),
):
    """Download the unload report as an XLSX workbook."""
    gateway = _get_gateway()
    try:
        header = require_header_fields(_header(plate, sender, date))
    except ReportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    buffer = write_report_workbook(gateway.report(header))
    safe_filename = sanitize_filename(generate_report_filename())

    def iterfile():
        yield buffer.getvalue()

    return StreamingResponse(
        iterfile(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={
            "Content-Disposition": f"attachment; filename=\"{safe_filename}\"; filename*=UTF-8''{safe_filename}"
        }
    )


@router.post("/finalize", dependencies=[Depends(require_api_key)])
def finalize_session():
    """Finish the unload: clear all progress and delete the stored snapshot."""
    gateway = _get_gateway()
    _scan_state["keyboard"].cancel()
    removed = gateway.reset()
    logger.info("Session finalized via API")
    return {"success": True, "snapshot_removed": removed}
