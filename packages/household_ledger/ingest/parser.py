"""Statement parsing orchestration: raw sheet -> :class:`ParseResult`.

Wires Header Locator, Column Mapper and Row Normalizer together. Structural
uncertainty never aborts the import: the header and mapping steps always
produce a guess, and residual problems show up as row-level errors.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from ..cells import RawSheet
from ..logging_setup import get_logger
from ..models import ColumnMapping, ParseError, ParseResult
from .column_mapper import detect_column_mapping
from .header_locator import MAX_ROWS_TO_CHECK, find_header_row
from .normalizers import normalize_rows
from .workbook import read_sheet

_logger = get_logger("household_ledger.ingest.parser")

MIN_SHEET_ROWS = 2
EMPTY_FILE_MESSAGE = "File is empty or invalid"


def parse_sheet(
    sheet: RawSheet,
    *,
    filename: str = "",
    header_scan_rows: int = MAX_ROWS_TO_CHECK,
) -> ParseResult:
    """Parse an already decoded sheet. Never raises."""

    if len(sheet) < MIN_SHEET_ROWS:
        _logger.info(
            "rejecting %s: %d row(s), need at least %d", filename, len(sheet), MIN_SHEET_ROWS
        )
        return ParseResult(
            rows=(),
            headers=(),
            errors=(ParseError(row=0, field="file", message=EMPTY_FILE_MESSAGE, value=None),),
            detected_mapping=ColumnMapping(),
            filename=filename,
        )

    header_index = find_header_row(sheet, max_rows=header_scan_rows)
    headers = tuple(c.text for c in sheet[header_index])
    mapping = detect_column_mapping(headers)

    data_rows = sheet[header_index + 1 :]
    rows, errors = normalize_rows(
        data_rows,
        mapping,
        headers,
        # 1-based spreadsheet numbering: header is row header_index + 1
        first_row_number=header_index + 2,
    )

    _logger.info(
        "parsed %s: header at row %d, %d row(s), %d error(s)",
        filename or "<sheet>",
        header_index + 1,
        len(rows),
        len(errors),
    )
    return ParseResult(
        rows=tuple(rows),
        headers=headers,
        errors=tuple(errors),
        detected_mapping=mapping,
        filename=filename,
        header_row_index=header_index,
    )


def parse_statement_file(
    path: str | PathLike[str], *, header_scan_rows: int = MAX_ROWS_TO_CHECK
) -> ParseResult:
    """Decode ``path`` (first sheet only) and parse it.

    File-level I/O problems propagate (see
    :func:`~household_ledger.ingest.workbook.read_sheet`); content problems
    are reported inside the returned :class:`ParseResult`.
    """

    p = Path(path)
    sheet = read_sheet(p)
    return parse_sheet(sheet, filename=p.name, header_scan_rows=header_scan_rows)


__all__ = ["EMPTY_FILE_MESSAGE", "parse_sheet", "parse_statement_file"]
