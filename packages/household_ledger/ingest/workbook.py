"""Decode a statement file into a :data:`~household_ledger.cells.RawSheet`.

Only the first worksheet is read. XLSX/XLSM files go through ``openpyxl`` in
read-only, values-only mode (formulas resolved to their cached values). CSV
exports of the same tables are read with the stdlib :mod:`csv` module; the
delimiter is sniffed among comma, semicolon and tab since French banks
commonly export semicolon-separated files.
"""

from __future__ import annotations

import csv
from io import StringIO
from os import PathLike
from pathlib import Path
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..cells import Cell, Empty, to_row
from ..logging_setup import get_logger

_logger = get_logger("household_ledger.ingest.workbook")

EXCEL_SUFFIXES = frozenset({".xlsx", ".xlsm"})
CSV_SUFFIXES = frozenset({".csv", ".txt"})
_CSV_ENCODINGS: tuple[str, ...] = ("utf-8-sig", "cp1252")
_CSV_DELIMITERS = ",;\t"


class UnsupportedStatementError(ValueError):
    """Raised for file types the ingestion pipeline cannot decode."""


class StatementReadError(ValueError):
    """Raised when a statement file exists but cannot be decoded."""


def _trim_trailing_empty(row: list[Cell]) -> list[Cell]:
    end = len(row)
    while end > 0 and isinstance(row[end - 1], Empty):
        end -= 1
    return row[:end]


def read_excel_sheet(path: Path) -> list[list[Cell]]:
    try:
        wb = load_workbook(filename=path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as exc:
        raise StatementReadError(f"cannot open workbook {path.name}: {exc}") from exc
    try:
        ws = wb.worksheets[0]
        rows = [_trim_trailing_empty(to_row(values)) for values in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
    return rows


def _decode_csv_text(path: Path) -> str:
    data = path.read_bytes()
    for encoding in _CSV_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise StatementReadError(f"cannot decode {path.name} as text")


def read_csv_sheet(path: Path) -> list[list[Cell]]:
    text = _decode_csv_text(path)
    try:
        dialect: type[csv.Dialect] | csv.Dialect = csv.Sniffer().sniff(
            text[:8192], delimiters=_CSV_DELIMITERS
        )
    except csv.Error:
        dialect = csv.excel
    reader = csv.reader(StringIO(text, newline=""), dialect)
    try:
        return [_trim_trailing_empty(to_row(r)) for r in reader]
    except csv.Error as exc:
        raise StatementReadError(f"failed to parse CSV {path.name}: {exc}") from exc


def read_sheet(path: str | PathLike[str]) -> list[list[Cell]]:
    """Read the first sheet of ``path`` as rows of cells.

    Raises ``FileNotFoundError`` for a missing file,
    :class:`UnsupportedStatementError` for unknown extensions and
    :class:`StatementReadError` for corrupt content.
    """

    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"statement file not found: {p}")
    suffix = p.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        rows = read_excel_sheet(p)
    elif suffix in CSV_SUFFIXES:
        rows = read_csv_sheet(p)
    else:
        raise UnsupportedStatementError(
            f"unsupported statement format {suffix or '(none)'!r}; "
            f"expected one of {sorted(EXCEL_SUFFIXES | CSV_SUFFIXES)}"
        )
    _logger.debug("read %d rows from %s", len(rows), p.name)
    return rows


__all__ = [
    "StatementReadError",
    "UnsupportedStatementError",
    "read_csv_sheet",
    "read_excel_sheet",
    "read_sheet",
]
