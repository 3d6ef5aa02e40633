"""
Export Service - turn records back into downloadable files.

This module serializes lists of dict records to CSV text or to an .xlsx
workbook (openpyxl). Header order is the explicit ``headers`` argument
when given, otherwise the key order of the first record.
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, List, Mapping, Optional, Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = 'Sheet1'

# Excel limits for worksheet titles
MAX_SHEET_NAME_LENGTH = 31
INVALID_SHEET_NAME_RE = re.compile(r'[\\/*?:\[\]]')

# Values written to workbooks as-is; anything else is stringified
NATIVE_CELL_TYPES = (str, int, float, bool, Decimal, datetime, date)


def escape_csv_value(value: Any) -> str:
    """
    Stringify a value for CSV output.

    The value is wrapped in double quotes, with inner quotes doubled, only
    when it contains a comma, a quote or a newline.
    """
    text = '' if value is None else str(value)
    if ',' in text or '"' in text or '\n' in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def sanitize_sheet_name(name: Optional[str], default: str = DEFAULT_SHEET_NAME) -> str:
    """Make ``name`` a valid worksheet title."""
    cleaned = INVALID_SHEET_NAME_RE.sub('', name or '').strip().strip("'")
    cleaned = cleaned[:MAX_SHEET_NAME_LENGTH]
    return cleaned or default


class ExportService:
    """Serialize records to CSV text or XLSX bytes."""

    @staticmethod
    def resolve_headers(records: Sequence[Mapping[str, Any]],
                        headers: Optional[Sequence[str]] = None) -> List[str]:
        """Explicit headers, else the first record's keys, else []."""
        if headers is not None:
            return list(headers)
        if records:
            return list(records[0].keys())
        return []

    @staticmethod
    def array_to_csv(records: Sequence[Mapping[str, Any]],
                     headers: Optional[Sequence[str]] = None) -> str:
        """
        Convert records to CSV text.

        Args:
            records: Rows to write, as mappings of column name to value
            headers: Column order; defaults to the first record's keys

        Returns:
            Header line plus one line per record, joined with '\\n'.
            Empty ``records`` give '' (no header line), even when
            ``headers`` is given.
        """
        if not records:
            return ''

        columns = ExportService.resolve_headers(records, headers)

        lines = [','.join(escape_csv_value(header) for header in columns)]
        for record in records:
            lines.append(','.join(escape_csv_value(record.get(header)) for header in columns))

        logger.debug(f"Serialized {len(records)} records to CSV ({len(columns)} columns)")
        return '\n'.join(lines)

    @staticmethod
    def _cell_value(value: Any) -> Any:
        if value is None or value == '':
            return None
        if not isinstance(value, NATIVE_CELL_TYPES):
            value = str(value)
        if isinstance(value, str):
            value = ILLEGAL_CHARACTERS_RE.sub('', value)
        return value

    @staticmethod
    def build_workbook(records: Sequence[Mapping[str, Any]],
                       headers: Optional[Sequence[str]] = None,
                       sheet_name: str = DEFAULT_SHEET_NAME,
                       column_widths: Optional[Dict[str, float]] = None) -> Workbook:
        """
        Build a single-sheet workbook from records.

        The header row is always written when there are headers, so empty
        ``records`` with explicit headers give a header-only sheet.

        Args:
            records: Rows to write
            headers: Column order; defaults to the first record's keys
            sheet_name: Worksheet title (sanitized to Excel's rules)
            column_widths: Optional width per header name
        """
        columns = ExportService.resolve_headers(records, headers)

        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sanitize_sheet_name(sheet_name)

        if columns:
            worksheet.append([ExportService._cell_value(header) for header in columns])

        for record in records:
            worksheet.append([ExportService._cell_value(record.get(header)) for header in columns])

        if column_widths:
            for index, header in enumerate(columns, 1):
                if header in column_widths:
                    worksheet.column_dimensions[get_column_letter(index)].width = column_widths[header]

        return workbook

    @staticmethod
    def array_to_excel(records: Sequence[Mapping[str, Any]],
                       headers: Optional[Sequence[str]] = None,
                       sheet_name: str = DEFAULT_SHEET_NAME,
                       column_widths: Optional[Dict[str, float]] = None) -> bytes:
        """
        Convert records to an .xlsx file.

        Returns:
            The workbook as bytes
        """
        workbook = ExportService.build_workbook(records, headers, sheet_name, column_widths)

        buffer = BytesIO()
        workbook.save(buffer)

        logger.debug(f"Serialized {len(records)} records to XLSX "
                     f"(sheet '{workbook.active.title}')")
        return buffer.getvalue()


def array_to_csv(records: Sequence[Mapping[str, Any]],
                 headers: Optional[Sequence[str]] = None) -> str:
    """Convert records to CSV text."""
    return ExportService.array_to_csv(records, headers)


def array_to_excel(records: Sequence[Mapping[str, Any]],
                   headers: Optional[Sequence[str]] = None,
                   sheet_name: str = DEFAULT_SHEET_NAME) -> bytes:
    """Convert records to .xlsx bytes."""
    return ExportService.array_to_excel(records, headers, sheet_name)
