from __future__ import annotations

import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: hl_categories
# ---------------------------


class HlCategory(Base):
    __tablename__ = "hl_categories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Income categories only receive credits; everything else is an expense
    # category except the polarity-neutral fallback.
    is_income: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


# ---------------------------
# Import batches: hl_imports
# ---------------------------


class HlImport(Base):
    __tablename__ = "hl_imports"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    imported_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    transaction_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    period_start: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    period_end: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'pending'"))
    errors: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint(
            "status in ('pending','processing','completed','error')",
            name="ck_hl_imports_status",
        ),
    )


# ---------------------------
# Core: hl_transactions
# ---------------------------


class HlTransaction(Base):
    __tablename__ = "hl_transactions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # Signed: positive is a credit, negative a debit.
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    category: Mapped[str] = mapped_column(
        String,
        ForeignKey("hl_categories.id", deferrable=True, initially="DEFERRED"),
        nullable=False,
    )
    import_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("hl_imports.id", ondelete="CASCADE"), nullable=True, index=True
    )
    original_row: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'import'"))
    is_manually_edited: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("source in ('import','manual')", name="ck_hl_tx_source"),
    )


# ---------------------------
# Categorization rules: hl_rules
# ---------------------------


class HlRule(Base):
    __tablename__ = "hl_rules"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    category_id: Mapped[str] = mapped_column(String, nullable=False)
    # Regex source text; compiled when a categorization snapshot is built.
    pattern: Mapped[str] = mapped_column(Text, nullable=False)
    field: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'description'"))
    priority: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
    hits: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("field in ('description','type')", name="ck_hl_rules_field"),
        CheckConstraint("hits >= 0", name="ck_hl_rules_hits"),
    )


__all__ = [
    "Base",
    "HlCategory",
    "HlImport",
    "HlRule",
    "HlTransaction",
]
