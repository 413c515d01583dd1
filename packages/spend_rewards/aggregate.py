"""Monthly spend aggregation.

Folds normalized transactions into a :class:`MonthlySpendSnapshot`:

1. de-duplicate by ``(statement source id, transaction id)``, first wins;
2. keep debits dated inside the month (inclusive bounds);
3. sum amounts per bucket in fixed-point decimal.

Snapshots are always rebuilt from the full transaction set for a month, never
patched in place.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from .buckets import ALL_BUCKETS, Bucket
from .errors import InvariantViolation
from .logging_setup import get_logger
from .models import MonthlySpendSnapshot, Transaction
from .money import ZERO, to_money
from .months import MonthKey

_logger = get_logger("spend_rewards.aggregate")


def dedupe(transactions: Iterable[Transaction]) -> tuple[list[Transaction], int]:
    """Drop repeated dedup keys; returns ``(unique, dropped_count)``."""

    seen: set[tuple[str, str]] = set()
    unique: list[Transaction] = []
    dropped = 0
    for t in transactions:
        key = t.dedup_key
        if key in seen:
            dropped += 1
            continue
        seen.add(key)
        unique.append(t)
    return unique, dropped


def aggregate_month(
    transactions: Iterable[Transaction],
    *,
    user_id: str,
    month: str | MonthKey,
    source: str = "statement",
) -> MonthlySpendSnapshot:
    """Build the snapshot for ``user_id`` and ``month``.

    Transactions outside the month and credits are ignored. A month with no
    qualifying debits yields an all-zero snapshot.
    """

    mk = month if isinstance(month, MonthKey) else MonthKey.parse(month)
    unique, dropped = dedupe(transactions)
    if dropped:
        _logger.info("dropped %d duplicate transaction(s) for %s %s", dropped, user_id, mk)

    totals: dict[Bucket, Decimal] = {b: ZERO for b in ALL_BUCKETS}
    expected = ZERO
    count = 0
    for t in unique:
        if not t.is_debit or not mk.contains(t.date):
            continue
        if t.amount < 0:
            raise InvariantViolation(f"negative amount on normalized transaction {t.dedup_key}")
        totals[t.bucket] += t.amount
        expected += t.amount
        count += 1

    buckets = {b: to_money(v) for b, v in totals.items()}
    snapshot = MonthlySpendSnapshot(
        user_id=user_id,
        month=str(mk),
        source=source,
        buckets=buckets,
        transaction_count=count,
        duplicates_dropped=dropped,
    )
    if snapshot.total != to_money(expected):
        raise InvariantViolation(
            f"bucket totals {snapshot.total} != debit total {expected} for {mk}"
        )
    return snapshot


def months_covered(transactions: Iterable[Transaction]) -> list[MonthKey]:
    """Sorted months that contain at least one debit."""

    return sorted({MonthKey.of(t.date) for t in transactions if t.is_debit})


def aggregate_all(
    transactions: Iterable[Transaction],
    *,
    user_id: str,
    source: str = "statement",
) -> dict[str, MonthlySpendSnapshot]:
    """One snapshot per month with debit activity, keyed by ``YYYY-MM``."""

    materialized = list(transactions)
    return {
        str(mk): aggregate_month(materialized, user_id=user_id, month=mk, source=source)
        for mk in months_covered(materialized)
    }


__all__ = ["dedupe", "aggregate_month", "months_covered", "aggregate_all"]
