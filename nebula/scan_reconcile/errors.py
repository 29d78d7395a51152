"""Exception types for Scan Reconcile."""

from typing import Optional


class ScanReconcileError(Exception):
    """Base class for all scan reconciliation errors."""
    pass


class ManifestError(ScanReconcileError, ValueError):
    """
    A manifest could not be loaded.

    Always fatal to the whole load - no partial manifest is kept.
    """

    def __init__(self, message: str, row: Optional[int] = None):
        self.row = row
        if row is not None:
            message = f"Row {row}: {message}"
        super().__init__(message)


class DuplicateCodeError(ManifestError):
    """Two manifest rows share a valid code after normalization."""

    def __init__(self, code: str, row: int, first_row: int):
        self.code = code
        self.first_row = first_row
        super().__init__(f"code '{code}' already declared on row {first_row}", row=row)


class InvalidQuantityError(ManifestError):
    """Quantity is not a positive integer."""

    def __init__(self, value, row: int):
        self.value = value
        super().__init__(f"quantity {value!r} is not a positive integer", row=row)


class MissingFieldError(ManifestError):
    """A required manifest column is absent or blank."""

    def __init__(self, field_name: str, row: int):
        self.field_name = field_name
        super().__init__(f"required field '{field_name}' is missing", row=row)


class PersistenceError(ScanReconcileError):
    """Snapshot storage is unavailable or rejected the write."""
    pass


class ReportError(ScanReconcileError, ValueError):
    """Report cannot be generated from the given inputs."""
    pass
