"""Statement ingestion: decoding, header location, column mapping, row normalization."""

from .column_mapper import detect_column_mapping
from .header_locator import find_header_row
from .normalizers import normalize_rows, parse_amount, parse_date
from .parser import parse_sheet, parse_statement_file
from .workbook import StatementReadError, UnsupportedStatementError, read_sheet

__all__ = [
    "StatementReadError",
    "UnsupportedStatementError",
    "detect_column_mapping",
    "find_header_row",
    "normalize_rows",
    "parse_amount",
    "parse_date",
    "parse_sheet",
    "parse_statement_file",
    "read_sheet",
]
