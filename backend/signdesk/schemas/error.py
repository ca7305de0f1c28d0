from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str
    field: Optional[str] = None
    # Engine errors carry {"stage": "geometry" | "source_fetch" | "parse" | "font" | "persist", ...}
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Body returned for every failed API request."""
    error: ErrorDetail
    request_id: Optional[str] = None
