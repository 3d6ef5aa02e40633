"""
CSV service for parsing uploaded delimited text.

This module provides the quote-aware line tokenizer and the content parser
that maps each data line onto the header row. Problems are collected as
ParseError entries; parsing never stops at the first bad row.

Quoted fields cannot span lines: the text is split into lines before any
line is tokenized.
"""

import logging
import re
from typing import Dict, List, Tuple

from backend.models.parse_result import ParseError, ParseResult

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = 'utf-8-sig'

SOURCE = 'csv'

# CRLF or LF line endings
LINE_SPLIT_PATTERN = re.compile(r'\r?\n')


class CSVParser:
    """Parse CSV text into header-keyed records."""

    @staticmethod
    def tokenize_line(line: str) -> List[str]:
        """
        Split one CSV line into fields.

        Commas inside double quotes are data, not delimiters. A doubled quote
        inside a quoted section yields one literal quote. Every field is
        trimmed of surrounding whitespace.

        Args:
            line: A single line of text (no line terminator)

        Returns:
            List of field values, always at least one entry
        """
        fields = []
        current = []
        in_quotes = False
        i = 0
        length = len(line)

        while i < length:
            char = line[i]

            if char == '"':
                if in_quotes and i + 1 < length and line[i + 1] == '"':
                    # Escaped quote
                    current.append('"')
                    i += 1
                else:
                    in_quotes = not in_quotes
            elif char == ',' and not in_quotes:
                fields.append(''.join(current).strip())
                current = []
            else:
                current.append(char)

            i += 1

        fields.append(''.join(current).strip())
        return fields

    @staticmethod
    def split_lines(text: str) -> List[Tuple[int, str]]:
        """
        Split text into non-blank lines.

        Returns:
            List of (line_number, line) tuples, line numbers 1-based and
            counted over the full text including blank lines.
        """
        return [
            (number, line)
            for number, line in enumerate(LINE_SPLIT_PATTERN.split(text), 1)
            if line.strip()
        ]

    @staticmethod
    def parse_content(text: str) -> ParseResult:
        """
        Parse full CSV text.

        The first non-blank line is the header row. Each later line becomes a
        record when its field count equals the header count; otherwise the
        line is skipped and a row-shape error naming its line number is added.

        Args:
            text: Full file content

        Returns:
            ParseResult with the accepted records and all errors found
        """
        data: List[Dict[str, str]] = []
        errors: List[ParseError] = []

        lines = CSVParser.split_lines(text or '')

        if not lines:
            logger.warning("CSV content is empty")
            return ParseResult.failure(ParseError.empty_file(SOURCE))

        _, header_line = lines[0]
        headers = CSVParser.tokenize_line(header_line)

        if not any(headers):
            logger.warning("CSV header line has no column names")
            return ParseResult.failure(ParseError.no_headers(SOURCE))

        for line_number, line in lines[1:]:
            values = CSVParser.tokenize_line(line.strip())

            if len(values) != len(headers):
                logger.debug(f"Line {line_number}: expected {len(headers)} fields, "
                             f"got {len(values)}")
                errors.append(ParseError.row_shape_mismatch(
                    SOURCE, line_number, len(headers), len(values)
                ))
                continue

            data.append(dict(zip(headers, values)))

        logger.info(f"Parsed CSV: {len(data)} records, {len(errors)} rejected rows")
        return ParseResult(data=data, errors=errors)

    @staticmethod
    def decode(content: bytes, encoding: str = DEFAULT_ENCODING) -> str:
        """
        Decode file bytes to text.

        Undecodable bytes are replaced rather than rejected, and a UTF-8 byte
        order mark is dropped when the default encoding is used.
        """
        return content.decode(encoding, errors='replace')

    @staticmethod
    def parse_bytes(content: bytes, encoding: str = DEFAULT_ENCODING) -> ParseResult:
        """Decode and parse CSV file content."""
        return CSVParser.parse_content(CSVParser.decode(content, encoding))


def tokenize_csv_line(line: str) -> List[str]:
    """Split one CSV line into trimmed fields."""
    return CSVParser.tokenize_line(line)


def parse_csv_content(text: str) -> ParseResult:
    """Parse CSV text into records and errors."""
    return CSVParser.parse_content(text)
