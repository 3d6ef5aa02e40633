"""
File Parser Service - single entry point for tabular imports.

This module checks an uploaded file's size and extension, reads it once,
and hands the content to the CSV or Excel parser. It always returns a
ParseResult; nothing a user can upload makes it raise.
"""

import logging
from typing import Iterable, Optional

from backend.models.parse_result import ParseError, ParseResult, RawFile
from services.csv_service import DEFAULT_ENCODING, CSVParser
from services.excel_service import MAX_SHEET_CELLS, ExcelReader

logger = logging.getLogger(__name__)

# Default configuration (can be overridden)
DEFAULT_MAX_FILE_SIZE_MB = 10
DEFAULT_CSV_EXTENSIONS = ('csv', 'txt')
DEFAULT_EXCEL_EXTENSIONS = ('xlsx', 'xls')


class FileParserService:
    """
    Framework-agnostic import parser.

    Routes files by extension to the CSV or Excel parser after enforcing
    the size limit.
    """

    def __init__(
        self,
        max_file_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB,
        csv_extensions: Iterable[str] = DEFAULT_CSV_EXTENSIONS,
        excel_extensions: Iterable[str] = DEFAULT_EXCEL_EXTENSIONS,
        csv_encoding: str = DEFAULT_ENCODING,
        max_sheet_cells: int = MAX_SHEET_CELLS
    ):
        """
        Initialize file parser service.

        Args:
            max_file_size_mb: Largest accepted file, in MiB (inclusive)
            csv_extensions: Extensions parsed as CSV text (without dots)
            excel_extensions: Extensions parsed as workbooks (without dots)
            csv_encoding: Text encoding for CSV content
            max_sheet_cells: Cell budget for the sheet read from a workbook
        """
        self.max_file_size_bytes = int(max_file_size_mb * 1024 * 1024)
        self.csv_extensions = {e.lower().lstrip('.') for e in csv_extensions}
        self.excel_extensions = {e.lower().lstrip('.') for e in excel_extensions}
        self.csv_encoding = csv_encoding
        self.max_sheet_cells = max_sheet_cells

    def check_size(self, size: Optional[int]) -> Optional[ParseError]:
        """Return a size error if ``size`` exceeds the limit, else None."""
        if size is not None and size > self.max_file_size_bytes:
            logger.warning(f"File size {size} bytes exceeds limit of "
                           f"{self.max_file_size_bytes} bytes")
            return ParseError.file_too_large(size, self.max_file_size_bytes)
        return None

    def _read(self, raw_file: RawFile, source: str):
        """
        Read file content once.

        Returns:
            (content, error) - exactly one of them is None
        """
        try:
            content = raw_file.read()
        except Exception as e:
            logger.error(f"Error reading {raw_file.name}: {e}")
            return None, ParseError.io_failure(source, str(e) or None)

        # Size could not be checked up front
        if raw_file.size is None:
            error = self.check_size(len(content))
            if error:
                return None, error

        return content, None

    def _guarded(self, parse, *args, source: str) -> ParseResult:
        """Run a parser, turning an unexpected exception into a parse error."""
        try:
            return parse(*args)
        except Exception as e:
            logger.error(f"Unexpected error parsing {source} content: {e}", exc_info=True)
            return ParseResult.failure(ParseError.decode_failure(source, str(e) or type(e).__name__))

    def parse_file(self, raw_file: RawFile) -> ParseResult:
        """
        Parse an uploaded CSV or Excel file.

        Args:
            raw_file: File to parse

        Returns:
            ParseResult with records and errors. File-level problems (too
            large, unsupported type, unreadable, empty, no headers) produce
            no records and a single error.
        """
        extension = raw_file.extension
        logger.info(f"Parsing {raw_file.name} ({raw_file.size} bytes)")

        size_error = self.check_size(raw_file.size)
        if size_error:
            return ParseResult.failure(size_error)

        if extension in self.excel_extensions:
            content, error = self._read(raw_file, 'excel')
            if error:
                return ParseResult.failure(error)
            result = self._guarded(ExcelReader.parse_bytes, content, self.max_sheet_cells, source='excel')

        elif extension in self.csv_extensions:
            content, error = self._read(raw_file, 'csv')
            if error:
                return ParseResult.failure(error)
            result = self._guarded(CSVParser.parse_bytes, content, self.csv_encoding, source='csv')

        else:
            logger.warning(f"Unsupported file extension: '{extension}' ({raw_file.name})")
            return ParseResult.failure(ParseError.unsupported_extension(extension or raw_file.name))

        logger.info(f"Parsed {raw_file.name}: {len(result.data)} records, "
                    f"{len(result.errors)} errors")
        return result


def parse_file(raw_file: RawFile) -> ParseResult:
    """Parse a file with the default size limit and extensions."""
    return FileParserService().parse_file(raw_file)
