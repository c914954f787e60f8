# ruff: noqa: I001
"""Household ledger core tables and seed categories.

Revision ID: 0001_hl_core
Revises: None
Create Date: 2026-10-17
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_hl_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


# Mirrored from household_ledger.categories.DEFAULT_CATEGORIES; migrations do
# not import application code.
_SEED_CATEGORIES: tuple[tuple[str, str, bool], ...] = (
    ("food-grocery", "Courses", False),
    ("food-restaurant", "Restaurants", False),
    ("transport", "Transport", False),
    ("abonnements", "Abonnements", False),
    ("entertainment", "Loisirs", False),
    ("amazon", "Amazon", False),
    ("shopping", "Shopping", False),
    ("housing", "Logement", False),
    ("telecom", "Télécom", False),
    ("health", "Santé", False),
    ("bank-fees", "Frais bancaires", False),
    ("transfer-out", "Virements émis", False),
    ("internal", "Prélèvements divers", False),
    ("salary", "Salaire", True),
    ("caf", "CAF", True),
    ("compte-a-compte", "Compte à compte", True),
    ("transfer-in", "Virements reçus", True),
    ("refund", "Remboursements", True),
    ("other", "Autre", False),
)


def upgrade() -> None:
    op.create_table(
        "hl_categories",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_income", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sort_order", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "hl_imports",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("imported_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("transaction_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("period_start", sa.Date(), nullable=True),
        sa.Column("period_end", sa.Date(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("errors", sa.JSON(), nullable=False),
        sa.CheckConstraint(
            "status in ('pending','processing','completed','error')",
            name="ck_hl_imports_status",
        ),
    )

    op.create_table(
        "hl_transactions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(), nullable=False, server_default=sa.text("''")),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column(
            "category",
            sa.String(),
            sa.ForeignKey("hl_categories.id", deferrable=True, initially="DEFERRED"),
            nullable=False,
        ),
        sa.Column(
            "import_id",
            sa.String(),
            sa.ForeignKey("hl_imports.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("original_row", sa.JSON(), nullable=True),
        sa.Column("source", sa.String(), nullable=False, server_default=sa.text("'import'")),
        sa.Column("is_manually_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("source in ('import','manual')", name="ck_hl_tx_source"),
    )
    op.create_index("ix_hl_transactions_import_id", "hl_transactions", ["import_id"])
    op.create_index("ix_hl_transactions_date", "hl_transactions", ["date"])

    op.create_table(
        "hl_rules",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("category_id", sa.String(), nullable=False),
        sa.Column("pattern", sa.Text(), nullable=False),
        sa.Column("field", sa.String(), nullable=False, server_default=sa.text("'description'")),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("hits", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("field in ('description','type')", name="ck_hl_rules_field"),
        sa.CheckConstraint("hits >= 0", name="ck_hl_rules_hits"),
    )

    op.bulk_insert(
        sa.table(
            "hl_categories",
            sa.column("id", sa.String()),
            sa.column("name", sa.String()),
            sa.column("is_income", sa.Boolean()),
            sa.column("sort_order", sa.Integer()),
        ),
        [
            {"id": cid, "name": name, "is_income": is_income, "sort_order": i}
            for i, (cid, name, is_income) in enumerate(_SEED_CATEGORIES)
        ],
    )


def downgrade() -> None:
    op.drop_table("hl_rules")
    op.drop_index("ix_hl_transactions_date", table_name="hl_transactions")
    op.drop_index("ix_hl_transactions_import_id", table_name="hl_transactions")
    op.drop_table("hl_transactions")
    op.drop_table("hl_imports")
    op.drop_table("hl_categories")
