"""
Report Projector - Format session state for human consumption.

Everything here is a pure read of SessionState: the export payload handed
to the spreadsheet writer, progress views for a live display, plus console
and CSV renderers.

Missing subcodes assume labels are numbered "1".."N". A scan with any
other subcode is still counted, it just never appears as missing.
"""

import csv
import io
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Optional, TextIO

from .config import ScanConfig
from .errors import ReportError
from .models import Product, ProductProgress, ScanRecord, SessionState

PRODUCT_COLUMNS = [
    "Barcode",
    "Units Scanned (Scanned/Total)",
    "City",
    "Scanned Suffixes",
    "Missing Suffixes",
]
ACCEPTED_COLUMNS = ["#", "Correct Code", "Scan Time"]
REJECTED_COLUMNS = ["#", "Incorrect Code", "Scan Time"]


@dataclass
class ReportHeader:
    """Unload metadata entered by the operator when exporting."""
    plate: str = ""
    sender: str = ""
    date: Optional[str] = None

    def rows(self) -> list[list[str]]:
        unload_date = self.date or date.today().strftime("%Y-%m-%d")
        return [
            ["Vehicle Plate", self.plate],
            ["Sender", self.sender],
            ["Unload Date", unload_date],
        ]


@dataclass
class ProductRow:
    code: str
    units: str
    city: str
    scanned_subcodes: str
    missing_subcodes: str

    def as_list(self) -> list[str]:
        return [self.code, self.units, self.city, self.scanned_subcodes, self.missing_subcodes]


@dataclass
class AuditRow:
    seq: int
    code: str
    time: str

    def as_list(self) -> list:
        return [self.seq, self.code, self.time]


@dataclass
class ReportPayload:
    """
    Report-ready view of a session.

    Attributes:
        header_rows: Label/value metadata rows (empty without a header)
        products: One row per product, manifest order
        accepted: Accepted-scan audit trail, 1-based sequence
        rejected: Rejected-scan audit trail, 1-based sequence
        total_units_scanned / total_units_expected: Global counter
    """
    header_rows: list[list[str]] = field(default_factory=list)
    products: list[ProductRow] = field(default_factory=list)
    accepted: list[AuditRow] = field(default_factory=list)
    rejected: list[AuditRow] = field(default_factory=list)
    total_units_scanned: int = 0
    total_units_expected: int = 0

    def as_rows(self) -> list[list]:
        """Flat table layout for spreadsheet writers. Empty lists are blank rows."""
        rows: list[list] = []
        if self.header_rows:
            rows.extend(self.header_rows)
            rows.append([])

        rows.append(list(PRODUCT_COLUMNS))
        rows.extend(r.as_list() for r in self.products)

        rows.append([])
        rows.append(list(ACCEPTED_COLUMNS))
        rows.extend(r.as_list() for r in self.accepted)

        rows.append([])
        rows.append(list(REJECTED_COLUMNS))
        rows.extend(r.as_list() for r in self.rejected)
        return rows

    def to_dict(self) -> dict:
        return {
            "header": [{"label": label, "value": value} for label, value in self.header_rows],
            "products": [asdict(r) for r in self.products],
            "accepted": [asdict(r) for r in self.accepted],
            "rejected": [asdict(r) for r in self.rejected],
            "total_units_scanned": self.total_units_scanned,
            "total_units_expected": self.total_units_expected,
        }


def require_header_fields(header: ReportHeader) -> ReportHeader:
    """Reject an export header without plate or sender."""
    missing = [name for name in ("plate", "sender") if not (getattr(header, name) or "").strip()]
    if missing:
        raise ReportError(f"Missing report fields: {', '.join(missing)}")
    return header


def missing_subcodes(product: Product, scanned: int) -> list[str]:
    """
    Subcodes "1".."N" not yet scanned, or [] once the product is complete.

    Args:
        product: Manifest product
        scanned: Units counted for it (scanned_units[primary_code])
    """
    if scanned == product.expected_quantity:
        return []
    seen = set(product.scanned_subcodes)
    return [str(n) for n in range(1, product.expected_quantity + 1) if str(n) not in seen]


def _audit_rows(log: list[ScanRecord], time_format: str) -> list[AuditRow]:
    return [
        AuditRow(seq=i, code=record.code, time=record.scanned_at.strftime(time_format))
        for i, record in enumerate(log, start=1)
    ]


def project(
    state: SessionState,
    header: Optional[ReportHeader] = None,
    config: Optional[ScanConfig] = None,
) -> ReportPayload:
    """
    Build the export payload for a session.

    Args:
        state: Session to report on (not modified)
        header: Optional unload metadata
        config: Placeholder and time format settings

    Returns:
        ReportPayload
    """
    config = config or ScanConfig()
    product_rows = []
    for product in state.products:
        scanned = state.scanned_units.get(product.primary_code, 0)
        product_rows.append(ProductRow(
            code=product.primary_code,
            units=f"{scanned} / {product.expected_quantity}",
            city=product.city,
            scanned_subcodes=", ".join(product.scanned_subcodes) or config.none_placeholder,
            missing_subcodes=", ".join(missing_subcodes(product, scanned)),
        ))

    return ReportPayload(
        header_rows=header.rows() if header else [],
        products=product_rows,
        accepted=_audit_rows(state.accepted_log, config.time_format),
        rejected=_audit_rows(state.rejected_log, config.time_format),
        total_units_scanned=state.total_units_scanned,
        total_units_expected=state.total_units_expected,
    )


# =============================================================================
# LIVE PROGRESS VIEWS
# =============================================================================

def product_progress(state: SessionState) -> list[ProductProgress]:
    """Per-product completion for a live display, manifest order."""
    progress = []
    for product in state.products:
        scanned = state.scanned_units.get(product.primary_code, 0)
        if product.is_complete:
            status = "complete"
        elif scanned > 0:
            status = "partial"
        else:
            status = "pending"
        progress.append(ProductProgress(
            code=product.primary_code,
            scanned=scanned,
            expected=product.expected_quantity,
            city=product.city,
            valid_codes=list(product.valid_codes),
            percent=round(scanned / product.expected_quantity * 100, 1),
            status=status,
        ))
    return progress


def display_order(progress: list[ProductProgress], last_code: Optional[str] = None) -> list[ProductProgress]:
    """Most recently scanned product first, the rest in manifest order."""
    if not last_code:
        return list(progress)
    return sorted(progress, key=lambda p: 0 if p.code == last_code else 1)


def global_counter(state: SessionState) -> str:
    return f"Units unloaded: {state.total_units_scanned} of {state.total_units_expected}"


# =============================================================================
# RENDERERS
# =============================================================================

def format_console(payload: ReportPayload) -> str:
    """
    Format a report payload for console display.

    Returns:
        Formatted string for console output
    """
    lines = []

    for label, value in payload.header_rows:
        lines.append(f"{label + ':':<16} {value}")

    if not payload.products:
        lines.append("No manifest loaded.")
        return "\n".join(lines) + "\n"

    lines.append("")
    lines.append("PRODUCTS")
    lines.append("=" * 70)
    lines.append(f"{'BARCODE':<15} {'UNITS':>9}  {'CITY':<15} {'SCANNED':<12} {'MISSING':<12}")
    lines.append("-" * 70)
    for r in payload.products:
        lines.append(
            f"{r.code:<15} {r.units:>9}  {r.city[:15]:<15} "
            f"{r.scanned_subcodes[:12]:<12} {r.missing_subcodes[:12]}"
        )

    for title, rows in (("CORRECT CODES", payload.accepted), ("INCORRECT CODES", payload.rejected)):
        lines.append(f"\n{title} ({len(rows)})")
        lines.append("-" * 70)
        for r in rows:
            lines.append(f"{r.seq:>4}  {r.code:<20} {r.time}")

    lines.append("\n" + "=" * 70)
    lines.append(f"Units unloaded: {payload.total_units_scanned} of {payload.total_units_expected}")
    lines.append("=" * 70)

    return "\n".join(lines)


def export_csv(payload: ReportPayload, output: TextIO | None = None) -> str:
    """
    Export a report payload to CSV, same layout as the spreadsheet.

    Args:
        payload: Report to export
        output: Optional file handle to write to

    Returns:
        CSV string (also writes to output if provided)
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    for row in payload.as_rows():
        writer.writerow(row)

    csv_content = buffer.getvalue()

    if output:
        output.write(csv_content)

    return csv_content


def generate_report_filename(report_date: Optional[date] = None, extension: str = "xlsx") -> str:
    """
    Generate a filename for the report.

    Returns:
        Filename like "unload_report_2026-01-08.xlsx"
    """
    date_str = (report_date or datetime.now()).strftime("%Y-%m-%d")
    return f"unload_report_{date_str}.{extension}"
