"""Models package for tabular import results."""
from backend.models.parse_result import (
    ImportSummary, ParseError, ParseErrorKind, ParseResult, RawFile
)

__all__ = ['ImportSummary', 'ParseError', 'ParseErrorKind', 'ParseResult', 'RawFile']
