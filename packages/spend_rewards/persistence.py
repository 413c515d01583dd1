# ruff: noqa: I001
"""Persistence integration for spend_rewards.

Functions here write snapshots and optimizer results to the shared database
owned by ``libs/db``. They rely on the ORM models in ``db.models.rewards`` and
a session provided by ``db.client``.

Rows are keyed by ``(user_id, month)``. A later write for the same key
replaces the stored row; nothing is merged.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from db.models.rewards import SrOptimizerResult, SrSpendSnapshot
from .logging_setup import get_logger
from .models import MonthlySpendSnapshot, OptimizerResult

_logger = get_logger("spend_rewards.persistence")


def _insert_for(session: Session):
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return pg_insert
    if name == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"upsert is not supported for dialect {name!r}")


def _upsert(session: Session, model: type, values: Mapping[str, Any]) -> None:
    insert = _insert_for(session)
    stmt = insert(model).values(**values, updated_at=func.now())
    update_cols = {k: stmt.excluded[k] for k in values if k not in ("user_id", "month")}
    update_cols["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(
        index_elements=[model.user_id, model.month],
        set_=update_cols,
    )
    session.execute(stmt)


def upsert_snapshot(session: Session, snapshot: MonthlySpendSnapshot) -> None:
    """Insert or replace the snapshot row for ``(user_id, month)``."""

    record = snapshot.to_record()
    _upsert(
        session,
        SrSpendSnapshot,
        {
            "user_id": snapshot.user_id,
            "month": snapshot.month,
            "source": snapshot.source,
            "buckets": record["buckets"],
            "total_spend": snapshot.total,
            "transaction_count": snapshot.transaction_count,
        },
    )
    _logger.debug("upserted snapshot %s %s", snapshot.user_id, snapshot.month)


def upsert_result(session: Session, result: OptimizerResult) -> None:
    """Insert or replace the optimizer result row for ``(user_id, month)``."""

    _upsert(
        session,
        SrOptimizerResult,
        {
            "user_id": result.user_id,
            "month": result.month,
            "total_missed": result.total_missed,
            "payload": result.payload,
            "catalog_version": result.catalog_version,
        },
    )
    _logger.debug("upserted optimizer result %s %s", result.user_id, result.month)


def save_month(
    session: Session, snapshot: MonthlySpendSnapshot, result: OptimizerResult
) -> None:
    """Persist a snapshot and its optimizer result in the caller's transaction."""

    if (snapshot.user_id, snapshot.month) != (result.user_id, result.month):
        raise ValueError("snapshot and result refer to different (user_id, month) keys")
    upsert_snapshot(session, snapshot)
    upsert_result(session, result)


def load_result(session: Session, *, user_id: str, month: str) -> SrOptimizerResult | None:
    return session.scalars(
        select(SrOptimizerResult).where(
            SrOptimizerResult.user_id == user_id, SrOptimizerResult.month == month
        )
    ).one_or_none()


def load_snapshot(session: Session, *, user_id: str, month: str) -> SrSpendSnapshot | None:
    return session.scalars(
        select(SrSpendSnapshot).where(
            SrSpendSnapshot.user_id == user_id, SrSpendSnapshot.month == month
        )
    ).one_or_none()


__all__ = [
    "upsert_snapshot",
    "upsert_result",
    "save_month",
    "load_result",
    "load_snapshot",
]
