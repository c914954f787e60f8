# ruff: noqa: I001
"""Persistence integration for household_ledger.

Functions here read and write categories, import batches and transactions in
the shared database owned by ``libs/db``. They take an explicit SQLAlchemy
``Session`` (usually from ``db.client.session_scope``) and never commit on
their own. Learned rules live behind :class:`household_ledger.rules.SqlRuleStore`.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.finance import HlCategory, HlImport, HlTransaction
from .categories import DEFAULT_CATEGORIES, Category
from .logging_setup import get_logger
from .transactions import ImportBatch, Transaction

_logger = get_logger("household_ledger.persistence")

_CENT = Decimal("0.01")


def _to_amount(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _to_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value)


# ---------------------------
# Categories
# ---------------------------


def seed_default_categories(
    session: Session, categories: Iterable[Category] = DEFAULT_CATEGORIES
) -> int:
    """Insert missing categories; existing ids are left untouched.

    Returns the number of rows inserted.
    """

    existing = set(session.scalars(select(HlCategory.id)))
    inserted = 0
    for c in categories:
        if c.id in existing:
            continue
        session.add(HlCategory(id=c.id, name=c.name, is_income=c.is_income, sort_order=c.order))
        inserted += 1
    session.flush()
    _logger.info("seeded %d categor%s", inserted, "y" if inserted == 1 else "ies")
    return inserted


def load_categories(session: Session) -> list[Category]:
    """Return the taxonomy stored in ``hl_categories`` ordered for display."""

    rows = session.scalars(
        select(HlCategory).order_by(func.coalesce(HlCategory.sort_order, 10_000), HlCategory.id)
    ).all()
    if not rows:
        raise RuntimeError("no categories present in hl_categories; run seed-categories first")
    return [
        Category(id=r.id, name=r.name, is_income=bool(r.is_income), order=r.sort_order or 0)
        for r in rows
    ]


# ---------------------------
# Imports and transactions
# ---------------------------


def _row_to_transaction(row: HlTransaction) -> Transaction:
    return Transaction(
        id=row.id,
        date=row.date.isoformat(),
        type=row.type,
        description=row.description,
        amount=Decimal(row.amount),
        category=row.category,
        import_id=row.import_id,
        original_row=row.original_row,
        source=row.source,  # type: ignore[arg-type]
        is_manually_edited=bool(row.is_manually_edited),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def save_import(
    session: Session, batch: ImportBatch, transactions: Iterable[Transaction]
) -> int:
    """Insert an import batch and its transactions. Returns the row count."""

    session.add(
        HlImport(
            id=batch.id,
            filename=batch.filename,
            imported_at=batch.imported_at,
            transaction_count=batch.transaction_count,
            period_start=_to_date(batch.period_start),
            period_end=_to_date(batch.period_end),
            status=batch.status,
            errors=list(batch.errors),
        )
    )
    # Parent row first so the transaction foreign key resolves.
    session.flush()
    n = 0
    for tx in transactions:
        session.add(
            HlTransaction(
                id=tx.id,
                date=date.fromisoformat(tx.date),
                type=tx.type,
                description=tx.description,
                amount=_to_amount(tx.amount),
                category=tx.category,
                import_id=tx.import_id,
                original_row=dict(tx.original_row) if tx.original_row is not None else None,
                source=tx.source,
                is_manually_edited=tx.is_manually_edited,
                created_at=tx.created_at,
                updated_at=tx.updated_at,
            )
        )
        n += 1
    session.flush()
    _logger.info("saved import %s (%s): %d transaction(s)", batch.id, batch.filename, n)
    return n


def list_transactions(session: Session, *, import_id: str | None = None) -> list[Transaction]:
    stmt = select(HlTransaction).order_by(HlTransaction.date, HlTransaction.id)
    if import_id is not None:
        stmt = stmt.where(HlTransaction.import_id == import_id)
    return [_row_to_transaction(r) for r in session.scalars(stmt)]


def get_transaction(session: Session, transaction_id: str) -> Transaction | None:
    row = session.get(HlTransaction, transaction_id)
    return _row_to_transaction(row) if row is not None else None


def update_transactions(session: Session, transactions: Iterable[Transaction]) -> int:
    """Write back category/type/edit flags. Unknown ids are skipped.

    Returns the number of rows updated.
    """

    n = 0
    for tx in transactions:
        row = session.get(HlTransaction, tx.id)
        if row is None:
            _logger.warning("transaction %s not found; skipping update", tx.id)
            continue
        row.category = tx.category
        row.type = tx.type
        row.is_manually_edited = tx.is_manually_edited
        row.updated_at = tx.updated_at
        n += 1
    session.flush()
    return n


__all__ = [
    "get_transaction",
    "list_transactions",
    "load_categories",
    "save_import",
    "seed_default_categories",
    "update_transactions",
]
