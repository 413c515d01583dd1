"""End-to-end orchestration: statements → snapshot → optimizer result.

Each month is computed independently from its own transactions and a single
catalog object taken once at the start of the run, so months can run in
parallel and a concurrent catalog reload never affects a run in progress.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .aggregate import aggregate_month, dedupe, months_covered
from .cards import CardRegistry, infer_current_cards
from .catalog import CatalogStore, RewardCatalog
from .classify import Classifier
from .config import Settings
from .insights import Insight, detect_all
from .logging_setup import get_logger
from .models import (
    MonthlySpendSnapshot,
    OptimizerResult,
    Statement,
    Transaction,
    TransactionIssue,
)
from .months import MonthKey
from .normalizers import normalize_statements
from .optimizer import CurrentCards, optimize
from .pmap import p_map

_logger = get_logger("spend_rewards.pipeline")


@dataclass(frozen=True, slots=True)
class MonthReport:
    snapshot: MonthlySpendSnapshot
    result: OptimizerResult
    current: CurrentCards
    issues: tuple[TransactionIssue, ...] = ()
    insights: tuple[Insight, ...] = field(default_factory=tuple)

    def to_record(self) -> dict[str, Any]:
        return {
            "snapshot": self.snapshot.to_record(),
            "result": self.result.to_record(),
            "issues": [
                {
                    "source_id": i.source_id,
                    "ordinal": i.ordinal,
                    "kind": i.kind,
                    "message": i.message,
                }
                for i in self.issues
            ],
            "insights": [i.to_record() for i in self.insights],
        }


def _resolve_current(
    transactions: Sequence[Transaction],
    month: MonthKey,
    current: CurrentCards | None,
    registry: CardRegistry | None,
) -> CurrentCards:
    if current is not None:
        return current
    if registry is not None:
        in_month, _ = dedupe(t for t in transactions if month.contains(t.date))
        return infer_current_cards(in_month, registry)
    return CurrentCards()


def report_month(
    transactions: Sequence[Transaction],
    *,
    user_id: str,
    month: str | MonthKey,
    catalog: RewardCatalog,
    current: CurrentCards | None = None,
    registry: CardRegistry | None = None,
    issues: Sequence[TransactionIssue] = (),
    settings: Settings | None = None,
    source: str = "statement",
) -> MonthReport:
    """Aggregate and optimize one month of already-normalized transactions."""

    mk = month if isinstance(month, MonthKey) else MonthKey.parse(month)
    snapshot = aggregate_month(transactions, user_id=user_id, month=mk, source=source)
    cards = _resolve_current(transactions, mk, current, registry)
    result = optimize(snapshot, cards, catalog)
    return MonthReport(
        snapshot=snapshot,
        result=result,
        current=cards,
        issues=tuple(issues),
        insights=tuple(detect_all(result, cards, catalog, settings)),
    )


def run_month(
    statements: Sequence[Statement],
    *,
    user_id: str,
    month: str | MonthKey,
    catalog: RewardCatalog,
    current: CurrentCards | None = None,
    registry: CardRegistry | None = None,
    classifier: Classifier | None = None,
    settings: Settings | None = None,
) -> MonthReport:
    """Normalize ``statements`` and report a single month.

    Issues from every statement are attached, not only those dated in the
    month, since a rejected record has no reliable date.
    """

    txns, issues = normalize_statements(statements, classifier=classifier)
    return report_month(
        txns,
        user_id=user_id,
        month=month,
        catalog=catalog,
        current=current,
        registry=registry,
        issues=issues,
        settings=settings,
    )


def run_months(
    statements: Sequence[Statement],
    *,
    user_id: str,
    catalog: RewardCatalog | CatalogStore,
    months: Sequence[str | MonthKey] | None = None,
    current: CurrentCards | None = None,
    registry: CardRegistry | None = None,
    classifier: Classifier | None = None,
    settings: Settings | None = None,
) -> list[MonthReport]:
    """Report every requested month (default: every month with debits).

    Months run concurrently on a bounded thread pool sized by
    ``settings.resolve_workers``. Reports come back in month order.
    """

    s = settings or Settings()
    snapshot_catalog = catalog.current() if isinstance(catalog, CatalogStore) else catalog
    txns, issues = normalize_statements(statements, classifier=classifier)

    if months is None:
        keys = months_covered(txns)
    else:
        keys = sorted({m if isinstance(m, MonthKey) else MonthKey.parse(m) for m in months})
    if not keys:
        _logger.info("no months to report for %s", user_id)
        return []

    workers = s.resolve_workers(len(keys))
    _logger.info(
        "reporting %d month(s) for %s with %d worker(s), catalog %s",
        len(keys),
        user_id,
        workers,
        snapshot_catalog.version,
    )

    def _one(mk: MonthKey) -> MonthReport:
        return report_month(
            txns,
            user_id=user_id,
            month=mk,
            catalog=snapshot_catalog,
            current=current,
            registry=registry,
            issues=issues,
            settings=s,
        )

    return p_map(keys, _one, concurrency=workers)


__all__ = ["MonthReport", "report_month", "run_month", "run_months"]
