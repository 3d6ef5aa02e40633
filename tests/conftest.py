"""
Pytest configuration and fixtures for tabular import/export tests.
"""

from io import BytesIO

import openpyxl
import pytest

from backend.models.parse_result import RawFile


@pytest.fixture
def make_xlsx():
    """
    Build .xlsx bytes in memory.

    Usage:
        content = make_xlsx([['name', 'age'], ['Alice', 30]])
        content = make_xlsx(rows, extra_sheets={'Other': [['x']]})
    """
    def _make(rows, sheet_title='Sheet1', extra_sheets=None):
        workbook = openpyxl.Workbook()
        worksheet = workbook.active
        worksheet.title = sheet_title
        for row in rows:
            worksheet.append(row)

        for name, sheet_rows in (extra_sheets or {}).items():
            sheet = workbook.create_sheet(name)
            for row in sheet_rows:
                sheet.append(row)

        buffer = BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def contributions_csv():
    """Contribution upload with one malformed line (line 3)."""
    return (
        "Member ID,Member Name,Amount\n"
        "FRSC/HMS/2024/001,John Doe,50000\n"
        "FRSC/HMS/2024/002,\"Smith, Jane\",50000,extra\n"
        "FRSC/HMS/2024/003,\"Okafor, Ada\",75000\n"
    )


@pytest.fixture
def failing_file():
    """RawFile whose read fails with an I/O error."""
    def _reader():
        raise OSError("disk unavailable")

    return RawFile('members.csv', 128, _reader)


@pytest.fixture
def tracking_file():
    """
    RawFile factory that records whether its content was read.

    Returns (raw_file, calls) where calls is a list appended to on read.
    """
    def _make(name, size, content=b'a,b\n1,2'):
        calls = []

        def _reader():
            calls.append(name)
            return content

        return RawFile(name, size, _reader), calls

    return _make


@pytest.fixture
def far_corner_xlsx():
    """
    A few-KB workbook whose used range reaches the last column (XFD) at row 20000.

    A1 and A2 hold a header and one record; XFD20000 holds a stray value.
    """
    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet['A1'] = 'name'
    worksheet['A2'] = 'Alice'
    worksheet.cell(row=20000, column=16384, value='x')

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
