"""Data models for statement ingestion.

Records here are frozen dataclasses with explicit field order, in the same
spirit as a canonical transaction view: everything downstream of the Row
Normalizer reads these shapes and never the raw spreadsheet cells.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Literal

# Semantic fields a header column can be mapped to, in detection order.
type MappedField = Literal["date", "type", "description", "debit", "credit", "amount"]

MAPPED_FIELDS: tuple[MappedField, ...] = (
    "date",
    "type",
    "description",
    "debit",
    "credit",
    "amount",
)


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Zero-based column index per semantic field; unmapped fields are ``None``.

    A usable mapping always has ``date`` plus at least one of ``amount``,
    ``debit`` or ``credit``. The Column Mapper guarantees ``date``; the amount
    side is best-effort and surfaces later as zero amounts when wrong.
    """

    date: int | None = None
    type: int | None = None
    description: int | None = None
    debit: int | None = None
    credit: int | None = None
    amount: int | None = None

    def as_dict(self) -> dict[str, int]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @property
    def amount_columns(self) -> frozenset[int]:
        return frozenset(i for i in (self.debit, self.credit, self.amount) if i is not None)


@dataclass(frozen=True, slots=True)
class ParsedRow:
    """One normalized statement row.

    ``debit`` and ``credit`` are non-negative; the signed amount is
    ``credit - debit``. ``raw`` keeps the original cell values keyed by
    header text for auditing.
    """

    date: str
    type: str
    description: str
    debit: Decimal
    credit: Decimal
    raw: Mapping[str, Any] = field(default_factory=dict)
    row_number: int = 0

    @property
    def amount(self) -> Decimal:
        return self.credit - self.debit


@dataclass(frozen=True, slots=True)
class ParseError:
    """A non-fatal defect attached to a row (``row=0`` for file-level errors)."""

    row: int
    field: str
    message: str
    value: Any = None


@dataclass(frozen=True, slots=True)
class ParseResult:
    rows: tuple[ParsedRow, ...]
    headers: tuple[str, ...]
    errors: tuple[ParseError, ...]
    detected_mapping: ColumnMapping
    filename: str
    header_row_index: int = 0

    @property
    def ok(self) -> bool:
        return not any(e.field == "file" for e in self.errors)


__all__ = [
    "MAPPED_FIELDS",
    "ColumnMapping",
    "MappedField",
    "ParseError",
    "ParseResult",
    "ParsedRow",
]
