"""
Tests for CSV and Excel export.
"""

from io import BytesIO

import openpyxl
import pytest

from services.csv_service import CSVParser
from services.excel_service import ExcelReader
from services.export_service import (
    ExportService,
    array_to_csv,
    array_to_excel,
    escape_csv_value,
    sanitize_sheet_name,
)


def load_sheet(content):
    workbook = openpyxl.load_workbook(BytesIO(content))
    return workbook, workbook.worksheets[0]


class TestEscapeCsvValue:
    """Test escape_csv_value()."""

    @pytest.mark.parametrize('value,expected', [
        ('plain', 'plain'),
        ('1,2', '"1,2"'),
        ('She said "hi"', '"She said ""hi"""'),
        ('line1\nline2', '"line1\nline2"'),
        (None, ''),
        (42, '42'),
        ('', ''),
    ])
    def test_values(self, value, expected):
        assert escape_csv_value(value) == expected


class TestArrayToCsv:
    """Test array_to_csv()."""

    def test_quotes_values_with_commas(self):
        assert array_to_csv([{'a': '1,2', 'b': 'x'}]) == 'a,b\n"1,2",x'

    def test_empty_records(self):
        assert array_to_csv([]) == ''

    def test_empty_records_with_headers(self):
        """No header line is written without records."""
        assert array_to_csv([], ['a', 'b']) == ''

    def test_explicit_header_order(self):
        records = [{'a': '1', 'b': '2', 'c': '3'}]

        assert array_to_csv(records, ['c', 'a']) == 'c,a\n3,1'

    def test_missing_and_none_values(self):
        records = [{'a': '1', 'b': None}, {'a': '2'}]

        assert array_to_csv(records) == 'a,b\n1,\n2,'

    def test_headers_from_first_record(self):
        records = [{'a': '1'}, {'a': '2', 'extra': 'x'}]

        assert array_to_csv(records) == 'a\n1\n2'

    def test_non_string_values(self):
        assert array_to_csv([{'amount': 50000, 'paid': True}]) == 'amount,paid\n50000,True'

    def test_no_trailing_newline(self):
        assert not ExportService.array_to_csv([{'a': '1'}]).endswith('\n')

    def test_parses_back(self):
        records = [
            {'name': 'Smith, John', 'quote': 'She said "hi"', 'age': '42'},
            {'name': 'Bob', 'quote': '', 'age': '40'},
        ]

        result = CSVParser.parse_content(array_to_csv(records))

        assert result.data == records
        assert result.errors == []


class TestArrayToExcel:
    """Test array_to_excel()."""

    def test_rows_written(self):
        content = array_to_excel([{'name': 'Alice', 'amount': 50000}, {'name': 'Bob', 'amount': 75000}])

        _, sheet = load_sheet(content)
        assert list(sheet.iter_rows(values_only=True)) == [
            ('name', 'amount'),
            ('Alice', 50000),
            ('Bob', 75000),
        ]

    def test_empty_records_with_headers(self):
        """Unlike CSV, the header row is kept."""
        workbook, sheet = load_sheet(array_to_excel([], ['a', 'b']))

        assert len(workbook.worksheets) == 1
        assert list(sheet.iter_rows(values_only=True)) == [('a', 'b')]

    def test_empty_records_without_headers(self):
        _, sheet = load_sheet(array_to_excel([]))

        assert sheet['A1'].value is None
        assert sheet.max_row == 1

    def test_sheet_name(self):
        workbook, sheet = load_sheet(array_to_excel([{'a': '1'}], sheet_name='Contributions'))

        assert sheet.title == 'Contributions'
        assert workbook.sheetnames == ['Contributions']

    def test_blank_values_left_empty(self):
        _, sheet = load_sheet(array_to_excel([{'a': '1', 'b': None, 'c': ''}]))

        assert sheet['B2'].value is None
        assert sheet['C2'].value is None

    def test_illegal_characters_removed(self):
        _, sheet = load_sheet(array_to_excel([{'note': 'bad\x07value'}]))

        assert sheet['A2'].value == 'badvalue'

    def test_other_types_stringified(self):
        _, sheet = load_sheet(array_to_excel([{'tags': ['a', 'b']}]))

        assert sheet['A2'].value == "['a', 'b']"

    def test_column_widths(self):
        content = ExportService.array_to_excel(
            [{'a': '1', 'b': '2'}], column_widths={'b': 30}
        )

        _, sheet = load_sheet(content)
        assert sheet.column_dimensions['B'].width == 30

    def test_reads_back(self):
        records = [{'name': 'Alice', 'age': '30'}, {'name': 'Bob', 'age': '40'}]

        result = ExcelReader.parse_bytes(array_to_excel(records))

        assert result.data == records


class TestSanitizeSheetName:
    """Test sanitize_sheet_name()."""

    @pytest.mark.parametrize('name,expected', [
        ('Members', 'Members'),
        ('Report: Q1/2025', 'Report Q12025'),
        ('[draft]*?', 'draft'),
        ("'quoted'", 'quoted'),
        ('', 'Sheet1'),
        (None, 'Sheet1'),
        ('///', 'Sheet1'),
    ])
    def test_names(self, name, expected):
        assert sanitize_sheet_name(name) == expected

    def test_truncated_to_31_characters(self):
        assert sanitize_sheet_name('x' * 40) == 'x' * 31
