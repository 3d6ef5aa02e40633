"""
Import-related Pydantic schemas.

This module contains schemas for file parse responses.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from backend.models.parse_result import ImportSummary, ParseErrorKind, ParseResult


class ParseErrorDetail(BaseModel):
    """Structured form of one parse error."""

    kind: ParseErrorKind = Field(..., description="Error tag")
    message: str = Field(..., description="Human-readable message")
    row: Optional[int] = Field(None, description="1-based row or line number")
    expected: Optional[int] = Field(None, description="Expected column count")
    found: Optional[int] = Field(None, description="Found column count")

    class Config:
        json_schema_extra = {
            "example": {
                "kind": "row_shape_mismatch",
                "message": "Row 3: Expected 6 columns, found 7",
                "row": 3,
                "expected": 6,
                "found": 7
            }
        }


class ParseResultResponse(BaseModel):
    """
    Response for a parsed upload.

    Returned with 200 even when the file was rejected: rejection is
    reported in ``errors`` and ``summary.failed``.
    """

    filename: str = Field(..., description="Uploaded file name")
    data: List[Dict[str, str]] = Field(default_factory=list, description="Parsed records")
    errors: List[str] = Field(default_factory=list, description="Error messages")
    error_details: List[ParseErrorDetail] = Field(default_factory=list, description="Structured errors")
    summary: ImportSummary = Field(..., description="Imported/skipped counts")

    @classmethod
    def from_result(cls, filename: str, result: ParseResult) -> 'ParseResultResponse':
        return cls(
            filename=filename,
            data=result.data,
            errors=result.messages,
            error_details=[
                ParseErrorDetail(
                    kind=error.kind,
                    message=error.message,
                    row=error.row,
                    expected=error.expected,
                    found=error.found
                )
                for error in result.errors
            ],
            summary=result.summary()
        )

    class Config:
        json_schema_extra = {
            "example": {
                "filename": "contributions.csv",
                "data": [
                    {"Member ID": "FRSC/HMS/2024/001", "Amount": "50000"}
                ],
                "errors": ["Row 3: Expected 2 columns, found 3"],
                "error_details": [
                    {
                        "kind": "row_shape_mismatch",
                        "message": "Row 3: Expected 2 columns, found 3",
                        "row": 3,
                        "expected": 2,
                        "found": 3
                    }
                ],
                "summary": {"imported": 1, "skipped": 1, "failed": False}
            }
        }
