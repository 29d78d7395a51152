"""
Pydantic request/response models for the API.
"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


# ============== Manifest ==============

class ManifestRowsRequest(BaseModel):
    """Already-decoded manifest rows (codigo_barra, cantidad, ciudad, codigos_adicionales)."""
    rows: List[Dict[str, Any]]


# ============== Scanning ==============

class ScanSource(str, Enum):
    CAMERA = "camera"
    MANUAL = "manual"


class ScanRequest(BaseModel):
    code: str = Field(..., min_length=1)
    source: ScanSource = ScanSource.MANUAL


class TypedInputRequest(BaseModel):
    """Current value of the manual entry field, sent on every keystroke."""
    value: str = ""


class ScanResponse(BaseModel):
    status: str
    code: str
    subcode: str = ""
    product_code: Optional[str] = None
    scanned: Optional[int] = None
    expected: Optional[int] = None
    reason: str = ""
    persisted: bool = True
    counter: str = ""
