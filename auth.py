import secrets
from typing import Any, Dict, Optional

from fastapi import Header, HTTPException

from database import find_document


def new_api_key() -> str:
    return secrets.token_hex(16)


def _lookup(collection: str, x_api_key: Optional[str]) -> Dict[str, Any]:
    if not x_api_key:
        raise HTTPException(status_code=401, detail="Access denied. No API key provided.")
    doc = find_document(collection, {"api_key": x_api_key})
    if not doc:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return doc


def current_rider(x_api_key: Optional[str] = Header(None)) -> Dict[str, Any]:
    """Resolves the X-API-Key header to a rider document."""
    return _lookup("rider", x_api_key)


def current_driver(x_api_key: Optional[str] = Header(None)) -> Dict[str, Any]:
    """Resolves the X-API-Key header to an approved driver document."""
    doc = _lookup("driver", x_api_key)
    if not doc.get("is_approved"):
        raise HTTPException(status_code=403, detail="Driver is not approved yet")
    return doc
