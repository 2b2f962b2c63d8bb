"""File parsers for expense imports."""

from spend_sentinel.parsers.base import BaseParser, ParseError, RowError
from spend_sentinel.parsers.csv_parser import CSVParser, generate_sample_csv

__all__ = [
    "BaseParser",
    "ParseError",
    "RowError",
    "CSVParser",
    "generate_sample_csv",
]
