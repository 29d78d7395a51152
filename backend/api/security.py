"""
Operator key check for endpoints that destroy unload progress.

Finalizing wipes the saved session, so when SCAN_API_KEY is set the caller
must present it, either as X-API-Key or as a Bearer token.
"""
import secrets
from typing import Optional

from fastapi import Header, HTTPException

from backend.core.config import settings


def _presented_key(x_api_key: Optional[str], authorization: Optional[str]) -> str:
    if x_api_key:
        return x_api_key
    scheme, _, token = (authorization or "").partition(" ")
    return token.strip() if scheme.lower() == "bearer" else ""


def require_api_key(
    x_api_key: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> None:
    """No-op unless SCAN_API_KEY is configured."""
    if not settings.API_KEY:
        return
    presented = _presented_key(x_api_key, authorization)
    if not secrets.compare_digest(presented.encode(), settings.API_KEY.encode()):
        raise HTTPException(status_code=401, detail="Invalid API key")
