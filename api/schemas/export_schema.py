"""
Export-related Pydantic schemas.

This module contains request schemas for CSV and Excel downloads.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ExportRequest(BaseModel):
    """Records to serialize for download."""

    records: List[Dict[str, Any]] = Field(default_factory=list, description="Rows to export")
    headers: Optional[List[str]] = Field(
        None,
        description="Column order; defaults to the first record's keys"
    )
    filename: Optional[str] = Field(
        None,
        max_length=255,
        description="Download file name without extension"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "records": [
                    {"Member ID": "FRSC/HMS/2024/001", "Amount": 50000},
                    {"Member ID": "FRSC/HMS/2024/002", "Amount": 75000}
                ],
                "headers": ["Member ID", "Amount"],
                "filename": "contributions-report"
            }
        }


class ExcelExportRequest(ExportRequest):
    """Records to serialize as an .xlsx workbook."""

    sheet_name: Optional[str] = Field(None, description="Worksheet title")


class TemplateListResponse(BaseModel):
    """Entities that have a bulk-upload template."""

    entities: List[str] = Field(..., description="Entity names usable in template URLs")
