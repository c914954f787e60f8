"""Transaction materialization from parsed statement rows.

Turns :class:`~household_ledger.models.ParsedRow` values into
:class:`Transaction` entities (identifiers, signed amount, category and type)
and re-runs categorization over existing transactions.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Literal

from .categorizer import TransactionCategorizer
from .context import CategorizationContext
from .logging_setup import get_logger
from .models import ParsedRow

_logger = get_logger("household_ledger.transactions")

type TransactionSource = Literal["import", "manual"]
type ImportStatus = Literal["pending", "processing", "completed", "error"]


@dataclass(frozen=True, slots=True)
class Transaction:
    """A categorized ledger entry. ``amount`` is signed: positive is a credit."""

    id: str
    date: str
    type: str
    description: str
    amount: Decimal
    category: str
    import_id: str | None = None
    original_row: Mapping[str, Any] | None = None
    source: TransactionSource = "import"
    is_manually_edited: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_expense(self) -> bool:
        return self.amount < 0


@dataclass(frozen=True, slots=True)
class ImportBatch:
    id: str
    filename: str
    imported_at: datetime
    transaction_count: int = 0
    period_start: str | None = None
    period_end: str | None = None
    status: ImportStatus = "pending"
    errors: tuple[str, ...] = ()


def signed_amount(row: ParsedRow) -> Decimal:
    """Credit wins when both sides are set; otherwise the debit, negated."""

    return row.credit if row.credit > 0 else -row.debit


def convert_to_transactions(
    rows: Iterable[ParsedRow],
    import_id: str,
    categorizer: TransactionCategorizer,
    *,
    now: datetime | None = None,
) -> list[Transaction]:
    """Materialize parsed rows as categorized transactions.

    The stored ``type`` is the coarse label from
    :meth:`TransactionCategorizer.detect_type`; the bank's own type text
    stays available in ``original_row``.
    """

    ts = now or datetime.now(UTC)
    out: list[Transaction] = []
    for row in rows:
        amount = signed_amount(row)
        category = categorizer.categorize(row.description, row.type, amount < 0)
        out.append(
            Transaction(
                id=str(uuid.uuid4()),
                date=row.date,
                type=categorizer.detect_type(row.description),
                description=row.description,
                amount=amount,
                category=category,
                import_id=import_id,
                original_row=dict(row.raw),
                source="import",
                is_manually_edited=False,
                created_at=ts,
                updated_at=ts,
            )
        )
    return out


def transaction_period(
    transactions: Sequence[Transaction], *, today: date | None = None
) -> tuple[str, str]:
    """Return the ``(start, end)`` ISO dates covered by ``transactions``.

    An empty sequence yields today's date for both ends.
    """

    if not transactions:
        d = (today or datetime.now(UTC).date()).isoformat()
        return d, d
    dates = sorted(t.date for t in transactions)
    return dates[0], dates[-1]


def recategorize_transactions(
    context: CategorizationContext,
    transactions: Iterable[Transaction],
    *,
    now: datetime | None = None,
) -> tuple[list[Transaction], int]:
    """Re-run categorization on transactions the user has not edited.

    Returns every transaction (updated or not) plus the number whose category
    changed.
    """

    ts = now or datetime.now(UTC)
    categorizer = context.categorizer
    out: list[Transaction] = []
    changed = 0
    for tx in transactions:
        if tx.is_manually_edited:
            out.append(tx)
            continue
        category = categorizer.categorize(tx.description, tx.type, tx.is_expense)
        if category != tx.category:
            tx = replace(tx, category=category, updated_at=ts)
            changed += 1
        out.append(tx)
    _logger.info("recategorized %d of %d transaction(s)", changed, len(out))
    return out, changed


__all__ = [
    "ImportBatch",
    "ImportStatus",
    "Transaction",
    "TransactionSource",
    "convert_to_transactions",
    "recategorize_transactions",
    "signed_amount",
    "transaction_period",
]
