"""Cell -> typed field normalization for statement rows.

Implements the Row Normalizer: dates become ISO ``YYYY-MM-DD`` strings,
amounts become non-negative ``Decimal`` debit/credit pairs, and every row gets
a non-empty description. Only an unparseable date rejects a row; amounts
degrade to zero without an error so formatting noise does not flood the
error list.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from ..cells import (
    Cell,
    DateValue,
    Empty,
    Number,
    RawRow,
    Text,
    cell_at,
    is_blank_row,
    to_cell,
)
from ..models import ColumnMapping, ParsedRow, ParseError
from ..text import strip_accents

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

# Spreadsheet serial day 0 (accounts for the 1900 leap-year bug).
EXCEL_EPOCH = date(1899, 12, 30)
TWO_DIGIT_YEAR_PIVOT = 50
MIN_DATE_TEXT_LEN = 6

_MONTHS: dict[str, int] = {
    "jan": 1,
    "fev": 2,
    "feb": 2,
    "mar": 3,
    "avr": 4,
    "apr": 4,
    "mai": 5,
    "may": 5,
    "jun": 6,
    "juin": 6,
    # Bare "jui" is read as juillet
    "jui": 7,
    "jul": 7,
    "juil": 7,
    "aou": 8,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

# Generic last-resort formats, tried after the fixed statement patterns.
_FALLBACK_FORMATS: tuple[str, ...] = (
    "%d %B %Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d-%b-%Y",
    "%d-%b-%y",
    "%Y%m%d",
    "%a, %d %b %Y %H:%M:%S",
)


def _expand_year(yy: str) -> int:
    n = int(yy)
    return 1900 + n if n > TWO_DIGIT_YEAR_PIVOT else 2000 + n


def _dmy(m: re.Match[str]) -> date:
    return date(int(m["y"]), int(m["m"]), int(m["d"]))


def _dmy_short(m: re.Match[str]) -> date:
    return date(_expand_year(m["y"]), int(m["m"]), int(m["d"]))


def _month_name(m: re.Match[str]) -> date:
    name = strip_accents(m["mon"]).lower().rstrip(".")
    # "juin"/"juillet" share their first three letters; check the longer keys first.
    month = _MONTHS.get(name[:4]) or _MONTHS.get(name[:3])
    if month is None:
        raise ValueError(f"unknown month name: {m['mon']!r}")
    return date(int(m["y"]), month, int(m["d"]))


_DATE_PATTERNS: tuple[tuple[re.Pattern[str], Callable[[re.Match[str]], date]], ...] = (
    (re.compile(r"^(?P<d>\d{1,2})/(?P<m>\d{1,2})/(?P<y>\d{4})$"), _dmy),
    (re.compile(r"^(?P<d>\d{1,2})/(?P<m>\d{1,2})/(?P<y>\d{2})$"), _dmy_short),
    (re.compile(r"^(?P<d>\d{1,2})-(?P<m>\d{1,2})-(?P<y>\d{4})$"), _dmy),
    (re.compile(r"^(?P<d>\d{1,2})-(?P<m>\d{1,2})-(?P<y>\d{2})$"), _dmy_short),
    # ISO, optionally followed by a time component
    (re.compile(r"^(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})"), _dmy),
    (re.compile(r"^(?P<d>\d{1,2})\.(?P<m>\d{1,2})\.(?P<y>\d{4})$"), _dmy),
    (re.compile(r"^(?P<d>\d{1,2})\.(?P<m>\d{1,2})\.(?P<y>\d{2})$"), _dmy_short),
    (re.compile(r"^(?P<y>\d{4})/(?P<m>\d{1,2})/(?P<d>\d{1,2})$"), _dmy),
    (
        re.compile(
            r"^(?P<d>\d{1,2})\s+(?P<mon>(?:jan|f[eé]v|feb|mar|avr|apr|mai|may|jun|jui|jul|ao[uû]|aug"
            r"|sep|oct|nov|d[eé]c)[a-zéû]*\.?)\s+(?P<y>\d{4})$",
            re.IGNORECASE,
        ),
        _month_name,
    ),
)


def _parse_date_text(s: str) -> date:
    for rx, build in _DATE_PATTERNS:
        m = rx.match(s)
        if m:
            # A matched pattern with impossible components (31/02) is invalid;
            # do not fall through to the generic formats.
            return build(m)

    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"cannot parse date: {s!r}")


def parse_date(value: Cell | Any) -> str:
    """Return ``value`` as an ISO ``YYYY-MM-DD`` string.

    Accepts date cells, spreadsheet serial numbers and the textual statement
    formats (``DD/MM/YYYY``, ``DD/MM/YY``, ``DD-MM-YYYY``, ISO, ``DD.MM.YYYY``,
    ``YYYY/MM/DD``, ``15 nov 2025`` ...). Two-digit years above 50 map to the
    1900s, the rest to the 2000s.

    Raises ``ValueError`` when the value cannot be interpreted.
    """

    cell = to_cell(value)
    match cell:
        case DateValue(value=d):
            return d.isoformat()
        case Number(value=n):
            try:
                return (EXCEL_EPOCH + timedelta(days=int(n))).isoformat()
            except (OverflowError, ValueError, InvalidOperation) as exc:
                raise ValueError(f"serial date out of range: {n}") from exc
        case Text():
            s = cell.text
            if len(s) < MIN_DATE_TEXT_LEN:
                raise ValueError(f"too short for a date: {s!r}")
            return _parse_date_text(s).isoformat()
        case _:
            raise ValueError("empty date")


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_CURRENCY_NOISE_RE = re.compile(r"[^\d,.\-\s]")
_COMMA_DECIMAL_RE = re.compile(r",\d{1,2}$")
_THOUSANDS_DOT_RE = re.compile(r"\.(?=\d{3})")
_WHITESPACE_RE = re.compile(r"\s")
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")

ZERO = Decimal(0)


def _amount_from_text(raw: str) -> Decimal:
    s = raw.strip()
    negative = False
    # Accounting notation: "(12,50)" is a negative amount.
    if len(s) >= 2 and s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1].strip()
    # Currency signs and codes ("42,50 €", "EUR 12.00") hide the decimal comma.
    s = _CURRENCY_NOISE_RE.sub("", s).strip()

    if _COMMA_DECIMAL_RE.search(s):
        s = _WHITESPACE_RE.sub("", s)
        s = _THOUSANDS_DOT_RE.sub("", s)
        s = s.replace(",", ".", 1)
    else:
        s = _WHITESPACE_RE.sub("", s)

    s = _NON_NUMERIC_RE.sub("", s)

    # Keep only the last dot as the decimal point.
    parts = s.split(".")
    if len(parts) > 2:
        s = "".join(parts[:-1]) + "." + parts[-1]

    m = _LEADING_NUMBER_RE.match(s)
    if not m:
        return ZERO
    try:
        d = Decimal(m.group(0))
    except InvalidOperation:
        return ZERO
    return -d if negative else d


def parse_amount(value: Cell | Any) -> Decimal:
    """Parse a monetary cell into a ``Decimal``. Never raises.

    Numbers pass through. Text in French notation (``"1 234,56"``,
    ``"1.234,56"``) or English notation (``"1,234.56"``) is normalized;
    currency symbols and other noise are dropped. Anything unparseable is
    ``Decimal(0)``.
    """

    match to_cell(value):
        case Number(value=n):
            return n if n.is_finite() else ZERO
        case Text(value=s):
            return _amount_from_text(s)
        case _:
            return ZERO


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------

_NUMERIC_LIKE_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
MIN_FALLBACK_TEXT_LEN = 3
DESCRIPTION_JOINER = " - "


def _is_numeric_text(s: str) -> bool:
    return bool(_NUMERIC_LIKE_RE.fullmatch(re.sub(r"[,.\s]", "", s)))


def _fallback_description(row: RawRow, mapping: ColumnMapping) -> str:
    skip = {mapping.date} | mapping.amount_columns
    parts: list[str] = []
    for i, cell in enumerate(row):
        if i in skip or not isinstance(cell, Text):
            continue
        val = cell.text
        if len(val) >= MIN_FALLBACK_TEXT_LEN and not _is_numeric_text(val):
            parts.append(val)
    return DESCRIPTION_JOINER.join(parts)


def _header_key(headers: Sequence[str], i: int) -> str:
    if i < len(headers) and headers[i]:
        return headers[i]
    return f"column_{i + 1}"


def _json_value(value: Any) -> Any:
    # original_row is stored in a JSON column.
    if isinstance(value, date | datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, float) and value != value:
        return None
    return value


def _raw_record(row: RawRow, headers: Sequence[str]) -> dict[str, Any]:
    width = max(len(row), len(headers))
    return {_header_key(headers, i): _json_value(cell_at(row, i).raw) for i in range(width)}


def _resolve_amounts(row: RawRow, mapping: ColumnMapping) -> tuple[Decimal, Decimal]:
    amount_cell = cell_at(row, mapping.amount)
    if not isinstance(amount_cell, Empty):
        amount = parse_amount(amount_cell)
        if amount < 0:
            return abs(amount), ZERO
        return ZERO, amount

    debit = parse_amount(cell_at(row, mapping.debit))
    credit = parse_amount(cell_at(row, mapping.credit))
    return abs(debit), abs(credit)


def normalize_row(
    row: RawRow,
    mapping: ColumnMapping,
    headers: Sequence[str],
    *,
    row_number: int,
) -> ParsedRow:
    """Normalize a single non-blank row. Raises ``ValueError`` on a bad date."""

    date_iso = parse_date(cell_at(row, mapping.date))
    debit, credit = _resolve_amounts(row, mapping)

    type_text = cell_at(row, mapping.type).text
    desc_text = cell_at(row, mapping.description).text

    description = desc_text or type_text
    if not description:
        description = _fallback_description(row, mapping) or f"Transaction du {date_iso}"

    return ParsedRow(
        date=date_iso,
        type=type_text,
        description=description,
        debit=debit,
        credit=credit,
        raw=_raw_record(row, headers),
        row_number=row_number,
    )


def normalize_rows(
    rows: Sequence[RawRow],
    mapping: ColumnMapping,
    headers: Sequence[str],
    *,
    first_row_number: int = 2,
) -> tuple[list[ParsedRow], list[ParseError]]:
    """Normalize data rows (everything after the header). Never raises.

    ``first_row_number`` is the 1-based spreadsheet row number of
    ``rows[0]``; it is used to label :class:`ParseError` entries so users can
    find the offending line in their spreadsheet.
    """

    parsed: list[ParsedRow] = []
    errors: list[ParseError] = []

    for offset, row in enumerate(rows):
        row_number = first_row_number + offset
        if is_blank_row(row):
            continue
        try:
            parsed.append(normalize_row(row, mapping, headers, row_number=row_number))
        except ValueError as exc:
            errors.append(
                ParseError(
                    row=row_number,
                    field="date",
                    message=f"Invalid date: {exc}",
                    value=cell_at(row, mapping.date).raw,
                )
            )

    return parsed, errors


__all__ = [
    "EXCEL_EPOCH",
    "normalize_row",
    "normalize_rows",
    "parse_amount",
    "parse_date",
]
