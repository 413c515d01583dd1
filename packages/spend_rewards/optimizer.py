"""Per-bucket reward optimization.

For each bucket of a :class:`MonthlySpendSnapshot` independently:

- ``actual`` is the reward the user's current card for that bucket earns;
- ``best`` is the highest reward any catalog card earns on the same spend;
- ``missed`` is ``best - actual``, clamped at zero.

Rewards are quantized to cents per bucket before they are summed, so the
result satisfies ``total_missed == total_best_reward - total_actual_reward``
exactly. Ties between cards are broken by the higher headline rate, then by
the lowest ``card_id``; that makes ``best_card_id`` deterministic even for
buckets with zero spend.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from .buckets import Bucket, parse_bucket
from .catalog import RewardCatalog
from .errors import InvariantViolation
from .logging_setup import get_logger
from .models import BucketOutcome, MonthlySpendSnapshot, OptimizerResult
from .money import ZERO, money_sum

_logger = get_logger("spend_rewards.optimizer")


@dataclass(frozen=True, slots=True)
class CurrentCards:
    """The card a user actually paid with, per bucket.

    ``by_bucket`` overrides ``default_card_id``. A bucket with neither earns
    nothing.
    """

    default_card_id: str | None = None
    by_bucket: Mapping[Bucket, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = {parse_bucket(b): cid for b, cid in self.by_bucket.items()}
        object.__setattr__(self, "by_bucket", MappingProxyType(normalized))

    def card_for(self, bucket: Bucket) -> str | None:
        return self.by_bucket.get(bucket, self.default_card_id)

    def card_ids(self) -> tuple[str, ...]:
        ids = set(self.by_bucket.values())
        if self.default_card_id is not None:
            ids.add(self.default_card_id)
        return tuple(sorted(ids))


def _best(
    catalog: RewardCatalog, bucket: Bucket, spend: Decimal
) -> tuple[str | None, Decimal]:
    if not len(catalog):
        return None, ZERO
    rewards = {cid: catalog.reward_for(cid, bucket, spend) for cid in catalog.card_ids}
    card_id = min(
        rewards,
        key=lambda cid: (-rewards[cid], -catalog.headline_rate(cid, bucket), cid),
    )
    return card_id, rewards[card_id]


def unknown_cards(current: CurrentCards, catalog: RewardCatalog) -> tuple[str, ...]:
    """Current cards that the catalog does not know (they earn zero)."""

    return tuple(cid for cid in current.card_ids() if not catalog.has_card(cid))


def optimize(
    snapshot: MonthlySpendSnapshot,
    current: CurrentCards,
    catalog: RewardCatalog,
) -> OptimizerResult:
    """Compare actual against best achievable reward for ``snapshot``.

    Pure and deterministic for a given catalog object. An empty snapshot or an
    empty catalog yields a zero-valued result.
    """

    missing = unknown_cards(current, catalog)
    if missing:
        _logger.warning(
            "current card(s) %s not in catalog %s; treating as rate zero",
            ", ".join(missing),
            catalog.version,
        )

    outcomes: list[BucketOutcome] = []
    for bucket, spend in snapshot.buckets.items():
        actual_card = current.card_for(bucket)
        actual = catalog.reward_for(actual_card, bucket, spend) if actual_card else ZERO
        best_card, best = _best(catalog, bucket, spend)
        if best < actual:
            raise InvariantViolation(
                f"{snapshot.month} {bucket.value}: best reward {best} < actual {actual}"
            )
        outcomes.append(
            BucketOutcome(
                bucket=bucket,
                spend=spend,
                actual_reward=actual,
                best_reward=best,
                best_card_id=best_card,
                missed=max(best - actual, ZERO),
                actual_card_id=actual_card,
            )
        )

    total_actual = money_sum(o.actual_reward for o in outcomes)
    total_best = money_sum(o.best_reward for o in outcomes)
    total_missed = money_sum(o.missed for o in outcomes)
    if total_missed != total_best - total_actual or total_missed < 0:
        raise InvariantViolation(
            f"{snapshot.month}: total_missed {total_missed} != "
            f"{total_best} - {total_actual}"
        )

    _logger.debug(
        "optimized %s %s: actual=%s best=%s missed=%s",
        snapshot.user_id,
        snapshot.month,
        total_actual,
        total_best,
        total_missed,
    )
    return OptimizerResult(
        user_id=snapshot.user_id,
        month=snapshot.month,
        total_missed=total_missed,
        per_bucket=tuple(outcomes),
        total_actual_reward=total_actual,
        total_best_reward=total_best,
        catalog_version=catalog.version,
        unknown_cards=missing,
    )


__all__ = ["CurrentCards", "optimize", "unknown_cards"]
