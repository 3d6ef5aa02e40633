"""
Parse result models for tabular imports.

This module defines the value types passed between the file parsers and
their callers: the uploaded file, the tagged error variants, and the
one-shot result of a parse call.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field


class ParseErrorKind(str, Enum):
    """Kind of problem found while importing a file."""
    FILE_TOO_LARGE = 'file_too_large'
    UNSUPPORTED_EXTENSION = 'unsupported_extension'
    EMPTY_FILE = 'empty_file'
    NO_HEADERS = 'no_headers'
    ROW_SHAPE_MISMATCH = 'row_shape_mismatch'
    IO_FAILURE = 'io_failure'
    DECODE_FAILURE = 'decode_failure'


# Kinds that describe a single rejected row rather than the whole file
ROW_LEVEL_KINDS = {ParseErrorKind.ROW_SHAPE_MISMATCH}


class ParseError(BaseModel):
    """
    One diagnostic produced by a parse call.

    The structured fields are the contract; ``message`` renders them for
    display and is only computed when asked for.
    """

    kind: ParseErrorKind = Field(..., description="Error tag")
    source: Optional[str] = Field(None, description="'csv' or 'excel' when known")
    row: Optional[int] = Field(None, description="1-based row or line number")
    expected: Optional[int] = Field(None, description="Expected column count")
    found: Optional[int] = Field(None, description="Found column count")
    extension: Optional[str] = Field(None, description="Rejected file extension")
    size: Optional[int] = Field(None, description="File size in bytes")
    limit: Optional[int] = Field(None, description="Size limit in bytes")
    detail: Optional[str] = Field(None, description="Underlying error text")

    class Config:
        frozen = True

    @property
    def message(self) -> str:
        """Human-readable rendering of this error."""
        kind = self.kind
        label = 'Excel file' if self.source == 'excel' else 'file'

        if kind == ParseErrorKind.FILE_TOO_LARGE:
            limit_mb = (self.limit or 0) / (1024 * 1024)
            return f"File size exceeds {limit_mb:g}MB limit"

        if kind == ParseErrorKind.UNSUPPORTED_EXTENSION:
            return (f"Unsupported file type: {self.extension}. "
                    f"Please use CSV, XLSX, or XLS files.")

        if kind == ParseErrorKind.EMPTY_FILE:
            return 'Excel file is empty' if self.source == 'excel' else 'File is empty'

        if kind == ParseErrorKind.NO_HEADERS:
            return f"No headers found in {label}"

        if kind == ParseErrorKind.ROW_SHAPE_MISMATCH:
            if self.source == 'excel' and (self.found or 0) > (self.expected or 0):
                return (f"Row {self.row}: More columns than headers "
                        f"({self.found} > {self.expected})")
            return f"Row {self.row}: Expected {self.expected} columns, found {self.found}"

        if kind == ParseErrorKind.IO_FAILURE:
            name = 'Excel' if self.source == 'excel' else 'CSV'
            text = f"Error reading {name} file"
            return f"{text}: {self.detail}" if self.detail else text

        if kind == ParseErrorKind.DECODE_FAILURE:
            name = 'Excel' if self.source == 'excel' else 'CSV'
            return f"Error parsing {name} file: {self.detail or 'Unknown error'}"

        return self.detail or kind.value

    @property
    def is_row_level(self) -> bool:
        return self.kind in ROW_LEVEL_KINDS

    def __str__(self) -> str:
        return self.message

    # Constructors for each variant

    @classmethod
    def file_too_large(cls, size: int, limit: int) -> 'ParseError':
        return cls(kind=ParseErrorKind.FILE_TOO_LARGE, size=size, limit=limit)

    @classmethod
    def unsupported_extension(cls, extension: str) -> 'ParseError':
        return cls(kind=ParseErrorKind.UNSUPPORTED_EXTENSION, extension=extension)

    @classmethod
    def empty_file(cls, source: str) -> 'ParseError':
        return cls(kind=ParseErrorKind.EMPTY_FILE, source=source)

    @classmethod
    def no_headers(cls, source: str) -> 'ParseError':
        return cls(kind=ParseErrorKind.NO_HEADERS, source=source)

    @classmethod
    def row_shape_mismatch(cls, source: str, row: int, expected: int, found: int) -> 'ParseError':
        return cls(
            kind=ParseErrorKind.ROW_SHAPE_MISMATCH,
            source=source,
            row=row,
            expected=expected,
            found=found
        )

    @classmethod
    def io_failure(cls, source: str, detail: Optional[str] = None) -> 'ParseError':
        return cls(kind=ParseErrorKind.IO_FAILURE, source=source, detail=detail)

    @classmethod
    def decode_failure(cls, source: str, detail: str) -> 'ParseError':
        return cls(kind=ParseErrorKind.DECODE_FAILURE, source=source, detail=detail)


class ImportSummary(BaseModel):
    """Counts shown to the user after an import ("N imported, M skipped")."""

    imported: int = Field(..., description="Number of records produced")
    skipped: int = Field(..., description="Number of rows rejected")
    failed: bool = Field(False, description="Whether the whole file was rejected")


class ParseResult(BaseModel):
    """
    Outcome of parsing one file.

    ``data`` holds one dict per accepted row, keyed by header in header
    order. ``errors`` holds every problem found, in the order found.
    """

    data: List[Dict[str, str]] = Field(default_factory=list)
    errors: List[ParseError] = Field(default_factory=list)

    @property
    def records(self) -> List[Dict[str, str]]:
        return self.data

    @property
    def messages(self) -> List[str]:
        """Rendered error messages."""
        return [error.message for error in self.errors]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def error_kinds(self) -> List[ParseErrorKind]:
        return [error.kind for error in self.errors]

    def summary(self) -> ImportSummary:
        skipped = sum(1 for error in self.errors if error.is_row_level)
        failed = not self.data and any(not error.is_row_level for error in self.errors)
        return ImportSummary(imported=len(self.data), skipped=skipped, failed=failed)

    @classmethod
    def failure(cls, error: ParseError) -> 'ParseResult':
        """Result with no data and a single file-level error."""
        return cls(data=[], errors=[error])


class RawFile:
    """
    An uploaded file: declared name and size plus a one-shot reader.

    The reader is only invoked by the parser, after the size and extension
    checks pass.
    """

    def __init__(self, name: str, size: Optional[int], reader: Callable[[], bytes]):
        """
        Args:
            name: Declared file name (used for the extension)
            size: Size in bytes, or None when the source cannot tell up front
            reader: Callable returning the file content as bytes
        """
        self.name = name or ''
        self.size = size
        self._reader = reader

    @property
    def extension(self) -> str:
        """Lower-cased extension without the leading dot ('' if none)."""
        return Path(self.name).suffix.lower().lstrip('.')

    def read(self) -> bytes:
        data = self._reader()
        if isinstance(data, str):
            data = data.encode('utf-8')
        return data

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> 'RawFile':
        return cls(name, len(data), lambda: data)

    @classmethod
    def from_path(cls, path: Any) -> 'RawFile':
        """
        Build a RawFile backed by a file on disk.

        The size is taken from the file system; content is read lazily.
        A missing file surfaces as an I/O failure at parse time.
        """
        path = Path(path)
        try:
            size = path.stat().st_size
        except OSError:
            size = None
        return cls(path.name, size, path.read_bytes)

    def __repr__(self) -> str:
        return f"<RawFile(name='{self.name}', size={self.size})>"
