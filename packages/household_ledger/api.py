"""Use-case orchestration for ``household_ledger``.

These functions tie the ingestion pipeline, the categorizer and the learning
subsystem together. They work on in-memory values and an explicit
:class:`~household_ledger.context.CategorizationContext`; storage of the
resulting transactions is left to the caller (see
:mod:`household_ledger.persistence`).
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from os import PathLike
from pathlib import Path

from .config import Settings
from .context import CategorizationContext
from .ingest.parser import parse_statement_file
from .learning import learn_from_correction
from .logging_setup import get_logger
from .models import ParseResult
from .transactions import (
    ImportBatch,
    Transaction,
    convert_to_transactions,
    transaction_period,
)

_logger = get_logger("household_ledger.api")


@dataclass(frozen=True, slots=True)
class ImportOutcome:
    batch: ImportBatch
    transactions: tuple[Transaction, ...]
    parse_result: ParseResult


def parse_statement(path: str | PathLike[str], *, settings: Settings | None = None) -> ParseResult:
    """Parse the first sheet of a statement file into normalized rows."""

    s = settings or Settings()
    return parse_statement_file(path, header_scan_rows=s.header_scan_rows)


def import_statement(
    path: str | PathLike[str],
    context: CategorizationContext,
    *,
    now: datetime | None = None,
) -> ImportOutcome:
    """Parse, categorize and materialize a statement as one import batch.

    The batch status is ``"completed"`` when at least one row was imported
    and ``"error"`` otherwise. Row-level parse errors are carried in
    ``batch.errors`` as ``"row N: message"`` strings.
    """

    ts = now or datetime.now(UTC)
    result = parse_statement(path, settings=context.settings)
    import_id = str(uuid.uuid4())

    # One snapshot for the whole batch.
    context.refresh()
    transactions = convert_to_transactions(result.rows, import_id, context.categorizer, now=ts)
    start, end = transaction_period(transactions, today=ts.date())
    errors = tuple(f"row {e.row}: {e.message}" for e in result.errors)
    batch = ImportBatch(
        id=import_id,
        filename=result.filename or Path(path).name,
        imported_at=ts,
        transaction_count=len(transactions),
        period_start=start,
        period_end=end,
        status="completed" if transactions else "error",
        errors=errors,
    )
    _logger.info(
        "import %s: %d transaction(s), %d error(s), status=%s",
        batch.filename,
        batch.transaction_count,
        len(errors),
        batch.status,
    )
    return ImportOutcome(batch=batch, transactions=tuple(transactions), parse_result=result)


def correct_category(
    context: CategorizationContext,
    transaction: Transaction,
    new_category_id: str,
    *,
    now: datetime | None = None,
) -> Transaction:
    """Apply a user's category change, learning from it first.

    Learning sees the pre-correction transaction. A change to the current
    category is a no-op.
    """

    if new_category_id == transaction.category:
        return transaction
    ts = now or datetime.now(UTC)
    learn_from_correction(context, transaction, new_category_id, now=ts)
    return replace(
        transaction,
        category=new_category_id,
        is_manually_edited=True,
        updated_at=ts,
    )


def correct_categories(
    context: CategorizationContext,
    transactions: Iterable[Transaction],
    new_category_id: str,
    *,
    now: datetime | None = None,
) -> list[Transaction]:
    """Bulk variant of :func:`correct_category`."""

    return [correct_category(context, tx, new_category_id, now=now) for tx in transactions]


__all__ = [
    "ImportOutcome",
    "correct_categories",
    "correct_category",
    "import_statement",
    "parse_statement",
]
