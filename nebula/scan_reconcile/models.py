"""
Data models for Scan Reconcile.

All structured data uses dataclasses for type hints, __eq__, and __repr__.
SessionState is the single mutable source of truth; everything else either
reads it or is a value produced from it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ScanStatus(Enum):
    """
    Outcome of a single scan event.

    Each value maps to a distinct operator signal (tone / message)
    owned by whatever UI sits in front of the engine.
    """
    ACCEPTED = "ACCEPTED"
    REJECTED_AT_CAPACITY = "REJECTED_AT_CAPACITY"
    REJECTED_DUPLICATE_SUBCODE = "REJECTED_DUPLICATE_SUBCODE"
    REJECTED_NO_MATCH = "REJECTED_NO_MATCH"


@dataclass
class Product:
    """
    A single manifest line item.

    Codes are stored normalized (trimmed, leading zeros stripped).
    scanned_subcodes keeps first-seen order; the matcher enforces uniqueness.
    """
    primary_code: str
    valid_codes: list[str]
    expected_quantity: int
    city: str = ""
    scanned_subcodes: list[str] = field(default_factory=list)
    no_suffix_count: int = 0

    @property
    def scanned_count(self) -> int:
        """Units counted so far, with and without subcode."""
        return len(self.scanned_subcodes) + self.no_suffix_count

    @property
    def is_complete(self) -> bool:
        return self.scanned_count >= self.expected_quantity


@dataclass
class ScanRecord:
    """One audit log entry: the normalized code and when it was scanned."""
    code: str
    scanned_at: datetime


@dataclass
class SessionState:
    """
    Mutable reconciliation state for one loaded manifest.

    Attributes:
        products: Manifest line items in row order
        scanned_units: primary_code -> units counted (mirrors Product.scanned_count)
        total_units_expected: Sum of expected quantities, fixed at load
        total_units_scanned: Running total of accepted scans
        accepted_log: Scans whose code matched a product
        rejected_log: Scans with no manifest match
    """
    products: list[Product] = field(default_factory=list)
    scanned_units: dict[str, int] = field(default_factory=dict)
    total_units_expected: int = 0
    total_units_scanned: int = 0
    accepted_log: list[ScanRecord] = field(default_factory=list)
    rejected_log: list[ScanRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when no manifest is loaded."""
        return not self.products

    @classmethod
    def from_products(cls, products: list[Product]) -> "SessionState":
        """Fresh state for a newly loaded manifest."""
        return cls(
            products=products,
            scanned_units={p.primary_code: p.scanned_count for p in products},
            total_units_expected=sum(p.expected_quantity for p in products),
            total_units_scanned=sum(p.scanned_count for p in products),
        )


@dataclass
class ScanResult:
    """
    Output of the matcher for a single scan.

    `persisted` is filled in by the session after it tries to save.
    """
    status: ScanStatus
    code: str
    subcode: str = ""
    product: Optional[Product] = None
    new_count: Optional[int] = None
    reason: str = ""
    persisted: bool = True

    @property
    def accepted(self) -> bool:
        return self.status == ScanStatus.ACCEPTED


@dataclass
class ProductProgress:
    """Display view of one product's completion."""
    code: str
    scanned: int
    expected: int
    city: str
    valid_codes: list[str]
    percent: float
    status: str  # complete / partial / pending
