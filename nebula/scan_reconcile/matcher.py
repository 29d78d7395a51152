"""
Scan Matcher - Core counting engine.

Resolves one raw scan against the manifest and applies the counting policy.

Decision Matrix (after the code matched a product):
| At capacity? | Subcode given and qty > 1? | Subcode seen? | Result |
|--------------|----------------------------|---------------|--------|
| yes          | -                          | -             | REJECTED_AT_CAPACITY |
| no           | no                         | -             | ACCEPTED (no-suffix, while no_suffix_count < qty) |
| no           | yes                        | no            | ACCEPTED |
| no           | yes                        | yes           | REJECTED_DUPLICATE_SUBCODE |

A code that matches a product is written to the accepted audit log before
the capacity and duplicate checks run. Report consumers rely on that, so
over-capacity and duplicate scans still show up as "correct" codes.
"""

import logging
from datetime import datetime
from typing import Iterable

from .manifest import ManifestIndex, normalize_code
from .models import Product, ScanRecord, ScanResult, ScanStatus, SessionState

logger = logging.getLogger(__name__)


def parse_scan(raw: str, separator: str = "-") -> tuple[str, str]:
    """
    Split a raw scan into (normalized primary code, subcode).

    Only the first separator splits, so "12-3-4" gives ("12", "3-4").
    The subcode is "" when absent.
    """
    primary, _, subcode = (raw or "").partition(separator)
    return normalize_code(primary), subcode.strip()


def handle_scan(
    raw: str,
    now: datetime,
    state: SessionState,
    index: ManifestIndex,
    separator: str = "-",
) -> ScanResult:
    """
    Evaluate one scan and mutate state accordingly.

    Args:
        raw: Scan text, "CODE" or "CODE-SUBCODE"
        now: Timestamp recorded in the audit log
        state: Session state to mutate
        index: Lookup built from state.products
        separator: Subcode separator

    Returns:
        ScanResult describing the outcome
    """
    code, subcode = parse_scan(raw, separator)

    product = index.lookup(code)
    if product is None:
        state.rejected_log.append(ScanRecord(code=code, scanned_at=now))
        logger.debug(f"No match for scan {raw!r} (normalized {code!r})")
        return ScanResult(
            status=ScanStatus.REJECTED_NO_MATCH,
            code=code,
            subcode=subcode,
            reason="Scanned code does not match any product",
        )

    state.accepted_log.append(ScanRecord(code=code, scanned_at=now))

    current = state.scanned_units.get(product.primary_code, 0)
    if current >= product.expected_quantity:
        return _at_capacity(product, code, subcode, current)

    if subcode == "" or product.expected_quantity == 1:
        if product.no_suffix_count >= product.expected_quantity:
            return _at_capacity(product, code, subcode, current)
        product.no_suffix_count += 1
    else:
        if subcode in product.scanned_subcodes:
            logger.debug(f"Duplicate subcode -{subcode} for {product.primary_code}")
            return ScanResult(
                status=ScanStatus.REJECTED_DUPLICATE_SUBCODE,
                code=code,
                subcode=subcode,
                product=product,
                new_count=current,
                reason=f"Subcode -{subcode} of {code} was already scanned",
            )
        product.scanned_subcodes.append(subcode)

    new_count = current + 1
    state.scanned_units[product.primary_code] = new_count
    state.total_units_scanned += 1
    logger.debug(f"Accepted {product.primary_code} ({new_count}/{product.expected_quantity})")

    return ScanResult(
        status=ScanStatus.ACCEPTED,
        code=code,
        subcode=subcode,
        product=product,
        new_count=new_count,
        reason=f"{new_count} of {product.expected_quantity} units scanned",
    )


def _at_capacity(product: Product, code: str, subcode: str, current: int) -> ScanResult:
    logger.debug(f"{product.primary_code} already at {current}/{product.expected_quantity}")
    return ScanResult(
        status=ScanStatus.REJECTED_AT_CAPACITY,
        code=code,
        subcode=subcode,
        product=product,
        new_count=current,
        reason=f"Product {code} already reached its total of {product.expected_quantity} units",
    )


def summarize_outcomes(results: Iterable[ScanResult]) -> dict:
    """Generate summary counts for a batch of scan results."""
    counts = {
        "total": 0,
        "accepted": 0,
        "at_capacity": 0,
        "duplicate_subcode": 0,
        "no_match": 0,
    }

    for result in results:
        counts["total"] += 1
        if result.status == ScanStatus.ACCEPTED:
            counts["accepted"] += 1
        elif result.status == ScanStatus.REJECTED_AT_CAPACITY:
            counts["at_capacity"] += 1
        elif result.status == ScanStatus.REJECTED_DUPLICATE_SUBCODE:
            counts["duplicate_subcode"] += 1
        elif result.status == ScanStatus.REJECTED_NO_MATCH:
            counts["no_match"] += 1

    counts["rejected"] = counts["total"] - counts["accepted"]
    return counts
