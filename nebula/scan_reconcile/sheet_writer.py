"""
Report Workbook Writer - Render a ReportPayload as an Excel file.

Single sheet, same layout as ReportPayload.as_rows(): unload metadata,
product table, correct-code audit, incorrect-code audit, separated by
blank rows. Section header rows are bolded.
"""

import logging
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .report import ACCEPTED_COLUMNS, PRODUCT_COLUMNS, REJECTED_COLUMNS, ReportPayload

logger = logging.getLogger(__name__)

SHEET_TITLE = "Unload Report"

# Widest column we will size to, in characters
MAX_COLUMN_WIDTH = 60

_SECTION_HEADERS = (PRODUCT_COLUMNS, ACCEPTED_COLUMNS, REJECTED_COLUMNS)


def build_report_workbook(payload: ReportPayload) -> Workbook:
    """Create the workbook for a report payload."""
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    widths: dict[int, int] = {}
    for row_idx, row in enumerate(payload.as_rows(), 1):
        ws.append(row)

        if row in _SECTION_HEADERS:
            for cell in ws[row_idx]:
                cell.font = Font(bold=True)

        for col_idx, value in enumerate(row, 1):
            widths[col_idx] = max(widths.get(col_idx, 0), len(str(value)))

    # Metadata labels are bold too
    for row_idx in range(1, len(payload.header_rows) + 1):
        ws.cell(row=row_idx, column=1).font = Font(bold=True)

    for col_idx, width in widths.items():
        ws.column_dimensions[get_column_letter(col_idx)].width = min(width + 2, MAX_COLUMN_WIDTH)

    return wb


def write_report_workbook(payload: ReportPayload) -> BytesIO:
    """
    Render a report payload to an in-memory XLSX file.

    Returns:
        BytesIO buffer containing the Excel file, positioned at 0
    """
    wb = build_report_workbook(payload)
    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer


def save_report_workbook(payload: ReportPayload, output_path: str | Path) -> Path:
    """Write a report payload to an XLSX file on disk."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    build_report_workbook(payload).save(path)
    logger.info(f"Saved report workbook: {path}")
    return path
