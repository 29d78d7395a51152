"""
Manifest Index - Turn raw manifest rows into matchable products.

Rows arrive already decoded (see manifest_loader). We normalize every code
once, reject the whole manifest on the first bad row, and build a single
lookup dict so each scan is an O(1) exact match:
- by_code: every valid code (primary or alias) -> Product
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from .errors import DuplicateCodeError, InvalidQuantityError, MissingFieldError
from .models import Product

logger = logging.getLogger(__name__)

# Manifest column names
COL_BARCODE = "codigo_barra"
COL_QUANTITY = "cantidad"
COL_CITY = "ciudad"
COL_ALIASES = "codigos_adicionales"

REQUIRED_COLUMNS = (COL_BARCODE, COL_QUANTITY, COL_CITY)


def normalize_code(raw: Any) -> str:
    """
    Normalize a barcode for matching.

    Trims whitespace and strips leading zeros, so "007" and "7" are the
    same code. A code made only of zeros normalizes to "".
    """
    if raw is None:
        return ""
    return str(raw).strip().lstrip("0")


def _text(row: Mapping[str, Any], column: str) -> str:
    value = row.get(column)
    if value is None:
        return ""
    return str(value).strip()


def _parse_quantity(value: Any, row_num: int) -> int:
    """Strict positive integer; 2.0 from a spreadsheet cell is fine, "2.5" is not."""
    if isinstance(value, bool):
        raise InvalidQuantityError(value, row_num)
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidQuantityError(value, row_num)
        quantity = int(value)
    else:
        text = str(value).strip()
        try:
            quantity = int(text)
        except ValueError:
            raise InvalidQuantityError(value, row_num) from None

    if quantity <= 0:
        raise InvalidQuantityError(value, row_num)
    return quantity


def _parse_row(row: Mapping[str, Any], row_num: int) -> Product:
    for column in REQUIRED_COLUMNS:
        if _text(row, column) == "":
            raise MissingFieldError(column, row_num)

    primary = normalize_code(row[COL_BARCODE])
    if not primary:
        raise MissingFieldError(COL_BARCODE, row_num)

    quantity = _parse_quantity(row[COL_QUANTITY], row_num)

    valid_codes = [primary]
    aliases = _text(row, COL_ALIASES)
    if aliases:
        for token in aliases.split(","):
            code = normalize_code(token)
            # Empty tokens and repeats within the same row are dropped
            if code and code not in valid_codes:
                valid_codes.append(code)

    return Product(
        primary_code=primary,
        valid_codes=valid_codes,
        expected_quantity=quantity,
        city=_text(row, COL_CITY),
    )


def build_manifest(rows: Sequence[Mapping[str, Any]]) -> list[Product]:
    """
    Build products from raw manifest rows.

    Args:
        rows: Decoded rows keyed by manifest column name

    Returns:
        Products in the same order as the input rows

    Raises:
        MissingFieldError: A required column is absent or blank
        InvalidQuantityError: cantidad is not a positive integer
        DuplicateCodeError: Two rows share a valid code
    """
    products: list[Product] = []
    seen: dict[str, int] = {}  # code -> 1-based row number that declared it

    for row_num, row in enumerate(rows, start=1):
        product = _parse_row(row, row_num)

        for code in product.valid_codes:
            if code in seen:
                raise DuplicateCodeError(code, row=row_num, first_row=seen[code])
        for code in product.valid_codes:
            seen[code] = row_num

        products.append(product)

    logger.debug(f"Built manifest: {len(products)} products, {len(seen)} valid codes")
    return products


@dataclass
class ManifestIndex:
    """
    Lookup structure over the products held in a SessionState.

    Attributes:
        by_code: Dict mapping every valid code -> Product
        product_count: Number of products indexed
    """
    by_code: dict[str, Product] = field(default_factory=dict)
    product_count: int = 0

    def lookup(self, code: str) -> Optional[Product]:
        """Look up a product by exact normalized code."""
        return self.by_code.get(code)

    def __len__(self) -> int:
        return len(self.by_code)


def build_index(products: Sequence[Product]) -> ManifestIndex:
    """
    Build the code lookup for already-validated products.

    The index points at the same Product objects the state owns, so the
    matcher mutates state through it. Rebuild after every load or restore.
    """
    index = ManifestIndex()
    for product in products:
        for code in product.valid_codes:
            index.by_code[code] = product
    index.product_count = len(products)
    return index
