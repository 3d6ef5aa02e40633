"""
Error and probe bodies shared by all routers.
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

ProbeState = Literal['ok', 'mismatch', 'error']


class ErrorResponse(BaseModel):
    """Body of every non-2xx JSON response."""

    error: str = Field(..., description="Short error title")
    detail: Optional[Dict[str, Any]] = Field(None, description="Extra context, e.g. the missing entity")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    path: Optional[str] = Field(None, description="URL that failed")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Resource not found",
                "detail": {
                    "path": "/api/bulk/refunds/template",
                    "message": "No upload template for 'refunds'. "
                               "Available: contributions, loan-repayments, members"
                },
                "timestamp": "2025-10-15T12:00:00Z",
                "path": "http://localhost:8000/api/bulk/refunds/template"
            }
        }


class HealthCheckResponse(BaseModel):
    """Outcome of the CSV and Excel round-trip probes."""

    status: Literal['healthy', 'degraded', 'unhealthy']
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str
    csv_parser: ProbeState = Field(..., description="CSV export/parse round trip")
    excel_parser: ProbeState = Field(..., description="XLSX export/parse round trip")
