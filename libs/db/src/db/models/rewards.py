from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# sr_spend_snapshots
# ---------------------------


class SrSpendSnapshot(Base):
    """Latest monthly spend-by-bucket snapshot per user.

    A recompute for the same ``(user_id, month)`` replaces the row.
    """

    __tablename__ = "sr_spend_snapshots"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    month: Mapped[str] = mapped_column(String(7), primary_key=True)
    source: Mapped[str] = mapped_column(String, nullable=False)
    # {bucket: "123.45"}; decimal strings, every bucket present.
    buckets: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    total_spend: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("total_spend >= 0", name="ck_sr_spend_snapshots_total_nonneg"),
    )


# ---------------------------
# sr_optimizer_results
# ---------------------------


class SrOptimizerResult(Base):
    __tablename__ = "sr_optimizer_results"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    month: Mapped[str] = mapped_column(String(7), primary_key=True)
    total_missed: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    # {per_bucket: [...], total_actual_reward, total_best_reward}
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    catalog_version: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("total_missed >= 0", name="ck_sr_optimizer_results_missed_nonneg"),
        Index("ix_sr_optimizer_results_month", "month"),
    )
