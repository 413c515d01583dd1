# ruff: noqa: I001
"""Spend snapshot and optimizer result tables.

Revision ID: 0001_sr_core
Revises: None
Create Date: 2025-03-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_sr_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "sr_spend_snapshots",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("buckets", sa.JSON(), nullable=False),
        sa.Column("total_spend", sa.Numeric(18, 2), nullable=False),
        sa.Column("transaction_count", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("user_id", "month", name="pk_sr_spend_snapshots"),
        sa.CheckConstraint("total_spend >= 0", name="ck_sr_spend_snapshots_total_nonneg"),
    )

    op.create_table(
        "sr_optimizer_results",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("total_missed", sa.Numeric(18, 2), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("catalog_version", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("user_id", "month", name="pk_sr_optimizer_results"),
        sa.CheckConstraint("total_missed >= 0", name="ck_sr_optimizer_results_missed_nonneg"),
    )
    op.create_index("ix_sr_optimizer_results_month", "sr_optimizer_results", ["month"])


def downgrade() -> None:
    op.drop_index("ix_sr_optimizer_results_month", table_name="sr_optimizer_results")
    op.drop_table("sr_optimizer_results")
    op.drop_table("sr_spend_snapshots")
