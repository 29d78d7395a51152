"""
Manifest Loader - Decode manifest files into raw rows.

Supports CSV (header row, UTF-8 with or without BOM) and XLSX (first
sheet, header on row 1). Output rows are plain dicts keyed by the lowercased
header name; validation is left to manifest.build_manifest.
"""

import csv
import io
import zipfile
from pathlib import Path
from typing import Any, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

SUPPORTED_SUFFIXES = {".csv", ".xlsx", ".xlsm"}


def _cell_text(value: Any) -> Any:
    """Spreadsheet cells hold numbers; keep integral floats from turning into '123.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _is_blank(row: dict) -> bool:
    return all(v is None or str(v).strip() == "" for v in row.values())


def read_csv_rows(text: str) -> list[dict]:
    """Parse manifest rows from CSV text, skipping empty lines."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))

    rows = []
    for raw in reader:
        # Overflow cells land under the None key
        row = {k.strip().lower(): v for k, v in raw.items() if k is not None}
        if not _is_blank(row):
            rows.append(row)
    return rows


def read_xlsx_rows(data: bytes | Path, source: str = "XLSX") -> list[dict]:
    """Parse manifest rows from the first sheet of a workbook."""
    handle = io.BytesIO(data) if isinstance(data, bytes) else data
    try:
        workbook = load_workbook(handle, read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError) as e:
        raise ValueError(f"Invalid Excel file: {source}") from e
    try:
        sheet = workbook.worksheets[0]
        rows_iter = sheet.iter_rows(values_only=True)
        header_cells = next(rows_iter, None)
        if header_cells is None:
            raise ValueError(f"No header row found in {source}")

        headers = [str(h).strip().lower() if h is not None else "" for h in header_cells]

        rows = []
        for cells in rows_iter:
            row = {
                header: _cell_text(cells[i]) if i < len(cells) else None
                for i, header in enumerate(headers)
                if header
            }
            if not _is_blank(row):
                rows.append(row)
        return rows
    finally:
        workbook.close()


def load_manifest_bytes(data: bytes, filename: str) -> list[dict]:
    """
    Decode an uploaded manifest file.

    Args:
        data: Raw file contents
        filename: Original name, used to pick the format

    Returns:
        List of row dicts
    """
    suffix = Path(filename).suffix.lower()
    if suffix == ".csv":
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            text = data.decode("latin-1")
        return read_csv_rows(text)
    if suffix in SUPPORTED_SUFFIXES:
        return read_xlsx_rows(data, source=filename)
    raise ValueError(f"Unsupported file format: {suffix or filename}")


def load_manifest_file(file_path: str | Path, encoding: Optional[str] = None) -> list[dict]:
    """Decode a manifest file from disk."""
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Manifest file not found: {path}")

    if encoding and path.suffix.lower() == ".csv":
        return read_csv_rows(path.read_text(encoding=encoding))
    return load_manifest_bytes(path.read_bytes(), path.name)
