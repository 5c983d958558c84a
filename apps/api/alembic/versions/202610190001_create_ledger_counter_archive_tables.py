"""create ledger, entry counter and archive tables

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19 10:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


_LEDGER_TABLES = (
    ("agent", "agent_name"),
    ("vendor", "vendor_name"),
    ("office_accounts", "bank_name"),
)


def _create_ledger_table(table: str, account_column: str) -> None:
    op.create_table(
        table,
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(account_column, sa.String(length=255), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("employee", sa.String(length=255), nullable=True),
        sa.Column("entry", sa.String(length=64), nullable=True),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("credit", sa.Numeric(18, 2), nullable=True),
        sa.Column("debit", sa.Numeric(18, 2), nullable=True),
        sa.Column("balance", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("is_opening_balance", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("credit IS NULL OR credit >= 0", name=f"ck_{table}_credit_nonnegative"),
        sa.CheckConstraint("debit IS NULL OR debit >= 0", name=f"ck_{table}_debit_nonnegative"),
        sa.CheckConstraint(
            "NOT (COALESCE(credit, 0) > 0 AND COALESCE(debit, 0) > 0)",
            name=f"ck_{table}_single_sided",
        ),
    )
    op.create_index(f"ix_{table}_account_id", table, [account_column, "id"])


def upgrade() -> None:
    for table, account_column in _LEDGER_TABLES:
        _create_ledger_table(table, account_column)

    op.create_table(
        "entry_counters",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("form_type", sa.String(length=64), nullable=False),
        sa.Column("current_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("form_type", name="uq_entry_counters_form_type"),
    )

    op.create_table(
        "entry_global_counter",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("global_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "archived_data",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("module_name", sa.String(length=64), nullable=False),
        sa.Column("original_record_id", sa.Integer(), nullable=False),
        sa.Column("record_data", sa.JSON(), nullable=False),
        sa.Column("deleted_by", sa.String(length=255), nullable=False, server_default="system"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_archived_data_module", "archived_data", ["module_name", "deleted_at"])


def downgrade() -> None:
    op.drop_index("ix_archived_data_module", table_name="archived_data")
    op.drop_table("archived_data")
    op.drop_table("entry_global_counter")
    op.drop_table("entry_counters")
    for table, _ in reversed(_LEDGER_TABLES):
        op.drop_index(f"ix_{table}_account_id", table_name=table)
        op.drop_table(table)
