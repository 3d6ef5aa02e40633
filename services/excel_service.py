"""
Excel service for reading uploaded spreadsheets.

This module decodes .xlsx (openpyxl) and legacy .xls (xlrd) workbooks,
reads the first worksheet into rows of normalized text cells, and maps
those rows onto the header row. Only the first sheet is read and formulas
are not evaluated: cells carry the value cached in the file.
"""

import logging
from datetime import date, datetime, time
from io import BytesIO
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import openpyxl
import xlrd

from backend.models.parse_result import ParseError, ParseResult

logger = logging.getLogger(__name__)

SOURCE = 'excel'

# Container signatures
ZIP_SIGNATURE = b'PK\x03\x04'
OLE2_SIGNATURE = b'\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1'

# Cells decoded from one sheet, blanks inside a row's span included
MAX_SHEET_CELLS = 2_000_000

# (sheet_row_number, cells)
NumberedRow = Tuple[int, List[str]]


def normalize_cell(value: Any) -> str:
    """
    Convert a decoded cell value to trimmed text.

    Blank cells become ''. Whole floats lose their trailing '.0', booleans
    render as Excel shows them, and dates without a time part render as
    ISO dates.
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=' ')
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value).strip()


class ExcelReader:
    """
    Read the first worksheet of an Excel workbook into records.

    Rows are kept sparse: only rows holding a value are materialized, each
    as ``(sheet_row_number, cells)`` with trailing blanks dropped. Each call
    decodes the workbook from scratch; no decoder state is kept between
    calls.
    """

    @staticmethod
    def detect_format(content: bytes) -> Optional[str]:
        """
        Identify the container format from its leading bytes.

        Returns:
            'xlsx' for OOXML (zip) containers, 'xls' for OLE2 compound
            documents, None if neither
        """
        if content.startswith(ZIP_SIGNATURE):
            return 'xlsx'
        if content.startswith(OLE2_SIGNATURE):
            return 'xls'
        return None

    @staticmethod
    def collect_rows(raw_rows: Iterable[Tuple[int, Sequence[Any]]],
                     convert: Callable[[Any], str],
                     max_cells: int = MAX_SHEET_CELLS) -> List[NumberedRow]:
        """
        Convert decoded rows to text, keeping only rows with a value.

        Args:
            raw_rows: (sheet_row_number, values) pairs in sheet order
            convert: Turns one decoded value into text
            max_cells: Budget for cells decoded across the sheet, blanks
                inside a row's span included

        Raises:
            ValueError: If the sheet needs more than ``max_cells`` cells
        """
        rows: List[NumberedRow] = []
        cell_count = 0

        for row_number, values in raw_rows:
            cell_count += len(values)
            if cell_count > max_cells:
                raise ValueError(f"Sheet has more than {max_cells} cells")

            cells = [convert(value) for value in values]
            while cells and not cells[-1]:
                cells.pop()
            if cells:
                rows.append((row_number, cells))

        return rows

    @staticmethod
    def _read_xlsx(content: bytes, max_cells: int) -> Optional[List[NumberedRow]]:
        workbook = openpyxl.load_workbook(BytesIO(content), read_only=True, data_only=True)
        try:
            if not workbook.worksheets:
                return None
            worksheet = workbook.worksheets[0]
            logger.debug(f"Reading sheet '{worksheet.title}' "
                         f"(declared {worksheet.max_row} rows x {worksheet.max_column} columns)")

            # The declared dimension may span far more than the stored cells:
            # without it, missing rows come back empty and each row stops at
            # its own last cell.
            worksheet.reset_dimensions()
            return ExcelReader.collect_rows(
                enumerate(worksheet.iter_rows(values_only=True), 1),
                normalize_cell,
                max_cells
            )
        finally:
            workbook.close()

    @staticmethod
    def _xls_cell_value(cell, datemode: int) -> str:
        if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
            return ''
        if cell.ctype == xlrd.XL_CELL_BOOLEAN:
            return normalize_cell(bool(cell.value))
        if cell.ctype == xlrd.XL_CELL_DATE:
            try:
                return normalize_cell(xlrd.xldate.xldate_as_datetime(cell.value, datemode))
            except xlrd.xldate.XLDateError:
                return normalize_cell(cell.value)
        if cell.ctype == xlrd.XL_CELL_ERROR:
            return xlrd.error_text_from_code.get(cell.value, '#ERR')
        return normalize_cell(cell.value)

    @staticmethod
    def _read_xls(content: bytes, max_cells: int) -> Optional[List[NumberedRow]]:
        # ragged_rows keeps each row at its own length instead of padding to ncols
        book = xlrd.open_workbook(file_contents=content, on_demand=True, ragged_rows=True)
        try:
            if book.nsheets == 0:
                return None
            sheet = book.sheet_by_index(0)
            logger.debug(f"Reading sheet '{sheet.name}' ({sheet.nrows} rows x {sheet.ncols} columns)")
            return ExcelReader.collect_rows(
                ((row_idx + 1, sheet.row(row_idx)) for row_idx in range(sheet.nrows)),
                lambda cell: ExcelReader._xls_cell_value(cell, book.datemode),
                max_cells
            )
        finally:
            book.release_resources()

    @staticmethod
    def trim_used_range(rows: List[NumberedRow]) -> List[NumberedRow]:
        """Drop leading columns that are blank in every row."""
        if not rows:
            return rows

        first_col = min(
            next(i for i, cell in enumerate(cells) if cell)
            for _, cells in rows
        )
        if first_col:
            rows = [(number, cells[first_col:]) for number, cells in rows]

        return rows

    @staticmethod
    def read_rows(content: bytes, max_cells: int = MAX_SHEET_CELLS) -> Optional[List[NumberedRow]]:
        """
        Decode a workbook and return the non-blank rows of its first sheet.

        Returns:
            List of (sheet_row_number, cells) with cells as normalized
            text, or None when the workbook has no worksheets

        Raises:
            ValueError: If the content is not a recognized workbook or the
                sheet exceeds ``max_cells``
            Exception: Whatever the underlying decoder raises for corrupt files
        """
        container = ExcelReader.detect_format(content)

        if container == 'xlsx':
            return ExcelReader._read_xlsx(content, max_cells)
        if container == 'xls':
            return ExcelReader._read_xls(content, max_cells)

        raise ValueError("File is not a valid XLSX or XLS workbook")

    @staticmethod
    def map_rows(rows: List[NumberedRow]) -> ParseResult:
        """
        Map sheet rows onto the header row.

        The first row is the header row. Missing trailing cells read as ''.
        A row with nothing under any header is skipped. A row whose
        non-empty cell count exceeds the header count is rejected with a
        row-shape error.

        Args:
            rows: (sheet_row_number, cells) pairs, header row first
        """
        if not rows:
            return ParseResult.failure(ParseError.empty_file(SOURCE))

        _, header_cells = rows[0]
        # Header cells keep their source column
        header_columns = [(cell, column) for column, cell in enumerate(header_cells) if cell]

        if not header_columns:
            return ParseResult.failure(ParseError.no_headers(SOURCE))

        header_count = len(header_columns)
        data: List[Dict[str, str]] = []
        errors: List[ParseError] = []

        for row_number, row in rows[1:]:
            record = {
                header: row[column] if column < len(row) else ''
                for header, column in header_columns
            }

            if not any(record.values()):
                continue

            non_empty = sum(1 for cell in row if cell)
            if non_empty > header_count:
                logger.debug(f"Row {row_number}: {non_empty} values for {header_count} headers")
                errors.append(ParseError.row_shape_mismatch(
                    SOURCE, row_number, header_count, non_empty
                ))
                continue

            data.append(record)

        logger.info(f"Parsed Excel sheet: {len(data)} records, {len(errors)} rejected rows")
        return ParseResult(data=data, errors=errors)

    @staticmethod
    def parse_bytes(content: bytes, max_cells: int = MAX_SHEET_CELLS) -> ParseResult:
        """
        Parse Excel file content into records.

        Never raises: decoder failures, and sheets over the cell budget,
        become a single decode error.
        """
        if not content:
            return ParseResult.failure(ParseError.empty_file(SOURCE))

        try:
            rows = ExcelReader.read_rows(content, max_cells)
        except Exception as e:
            logger.error(f"Failed to decode workbook: {e}")
            return ParseResult.failure(ParseError.decode_failure(SOURCE, str(e) or type(e).__name__))

        if rows is None:
            logger.warning("Workbook has no worksheets")
            return ParseResult.failure(ParseError.empty_file(SOURCE))

        return ExcelReader.map_rows(ExcelReader.trim_used_range(rows))
