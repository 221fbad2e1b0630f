"""Common Pydantic schemas."""

from typing import Dict, Optional
from pydantic import BaseModel, Field


class Problem(BaseModel):
    """RFC 9457 Problem Details response, as returned by every JSON endpoint on failure."""

    ok: bool = Field(False, description="Always false for problem responses")
    type: Optional[str] = Field(None, description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="URI reference for this occurrence")
    errors: Optional[Dict[str, str]] = Field(None, description="Field name to validation message")
    error_id: Optional[str] = Field(None, description="Correlation id of a server-side failure")
