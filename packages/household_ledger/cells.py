"""Closed cell variant produced at the spreadsheet decoding boundary.

Spreadsheet decoders hand back loosely typed values (``None``, strings,
numbers, dates). :func:`to_cell` converts each value once into one of four
frozen variants so the rest of the pipeline can dispatch with ``match``
instead of sprinkling ``isinstance`` checks.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True, slots=True)
class Empty:
    """A blank cell (``None``, empty or whitespace-only text)."""

    raw: Any = None

    @property
    def text(self) -> str:
        return ""


@dataclass(frozen=True, slots=True)
class Number:
    value: Decimal
    raw: Any = None

    @property
    def text(self) -> str:
        return format(self.value, "f")


@dataclass(frozen=True, slots=True)
class Text:
    value: str

    @property
    def raw(self) -> str:
        return self.value

    @property
    def text(self) -> str:
        return self.value.strip()


@dataclass(frozen=True, slots=True)
class DateValue:
    value: date
    raw: Any = None

    @property
    def text(self) -> str:
        return self.value.isoformat()


type Cell = Empty | Number | Text | DateValue
type RawRow = Sequence[Cell]
type RawSheet = Sequence[RawRow]

EMPTY = Empty()


def to_cell(value: Any) -> Cell:
    """Convert a decoded spreadsheet value to its :data:`Cell` variant."""

    if value is None:
        return EMPTY
    if isinstance(value, Empty | Number | Text | DateValue):
        return value
    # bool is an int subclass; spreadsheets use it for TRUE/FALSE, not amounts.
    if isinstance(value, bool):
        return Text(str(value).upper())
    if isinstance(value, datetime):
        return DateValue(value.date(), raw=value)
    if isinstance(value, date):
        return DateValue(value, raw=value)
    if isinstance(value, Decimal):
        return Number(value, raw=value)
    if isinstance(value, int | float):
        if isinstance(value, float) and value != value:  # NaN
            return Empty(raw=value)
        return Number(Decimal(str(value)), raw=value)
    s = str(value)
    if not s.strip():
        return Empty(raw=value)
    return Text(s)


def to_row(values: Iterable[Any]) -> list[Cell]:
    return [to_cell(v) for v in values]


def is_blank_row(row: RawRow) -> bool:
    return all(isinstance(c, Empty) for c in row)


def non_empty_count(row: RawRow) -> int:
    return sum(1 for c in row if not isinstance(c, Empty))


def cell_at(row: RawRow, index: int | None) -> Cell:
    """Return the cell at ``index`` or :data:`EMPTY` for short rows/unmapped fields."""

    if index is None or index < 0 or index >= len(row):
        return EMPTY
    return row[index]


__all__ = [
    "Cell",
    "DateValue",
    "EMPTY",
    "Empty",
    "Number",
    "RawRow",
    "RawSheet",
    "Text",
    "cell_at",
    "is_blank_row",
    "non_empty_count",
    "to_cell",
    "to_row",
]
