"""Human-readable warnings derived from an optimizer result.

Two kinds:

- ``category_mismatch``: another card would have earned noticeably more in a
  bucket (both an absolute and a relative threshold must be met);
- ``cap_hit``: the current card's monthly cap for a bucket was exceeded, so
  part of the spend earned nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal

from .buckets import display_name
from .catalog import RewardCatalog
from .config import Settings
from .models import OptimizerResult
from .money import fmt_money, to_money
from .optimizer import CurrentCards

type WarningKind = Literal["category_mismatch", "cap_hit"]

_HUNDRED = Decimal(100)


def _rupees(v: Decimal) -> str:
    return f"₹{to_money(v):,.2f}"


def _pct(rate: Decimal) -> str:
    return f"{(rate * _HUNDRED).normalize():f}%"


@dataclass(frozen=True, slots=True)
class Insight:
    kind: WarningKind
    bucket: str
    card_id: str | None
    amount: Decimal
    message: str
    detail: dict[str, Any]

    def to_record(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "bucket": self.bucket,
            "card_id": self.card_id,
            "amount": fmt_money(self.amount),
            "message": self.message,
            **self.detail,
        }


def _card_name(catalog: RewardCatalog, card_id: str | None) -> str:
    if card_id is None:
        return "no card"
    card = catalog.cards.get(card_id)
    return card.name if card is not None and card.name else card_id


def detect_category_mismatches(
    result: OptimizerResult,
    catalog: RewardCatalog,
    *,
    min_amount: Decimal = Decimal("500"),
    min_pct: Decimal = Decimal("20"),
) -> list[Insight]:
    """Buckets where the best card beats the current one by both thresholds.

    When the current card earned nothing, any positive missed reward counts as
    meeting the relative threshold. Sorted by missed reward, largest first.
    """

    out: list[Insight] = []
    for o in result.per_bucket:
        if o.spend <= 0 or o.missed <= 0 or o.missed < min_amount:
            continue
        if o.actual_reward > 0:
            pct = (o.missed / o.actual_reward * _HUNDRED).quantize(Decimal(1))
            if pct < min_pct:
                continue
            pct_text = f"{pct}% more rewards"
        else:
            pct = None
            pct_text = "the current card earns nothing here"
        category = display_name(o.bucket)
        current = _card_name(catalog, o.actual_card_id)
        best = _card_name(catalog, o.best_card_id)
        message = (
            f"You used {current} for {category} and earned {_rupees(o.actual_reward)}. "
            f"If you had used {best} instead, you would have earned "
            f"{_rupees(o.best_reward)}. Missed: {_rupees(o.missed)} ({pct_text})."
        )
        out.append(
            Insight(
                kind="category_mismatch",
                bucket=o.bucket.value,
                card_id=o.actual_card_id,
                amount=o.missed,
                message=message,
                detail={
                    "best_card_id": o.best_card_id,
                    "spend": fmt_money(o.spend),
                    "percentage_increase": None if pct is None else str(pct),
                },
            )
        )
    out.sort(key=lambda i: (-i.amount, i.bucket))
    return out


def detect_cap_hits(
    result: OptimizerResult, current: CurrentCards, catalog: RewardCatalog
) -> list[Insight]:
    """Buckets whose spend exceeded the current card's capped eligible spend.

    Sorted by the excess spend, largest first.
    """

    out: list[Insight] = []
    for o in result.per_bucket:
        card_id = current.card_for(o.bucket)
        if card_id is None or o.spend <= 0:
            continue
        rule = catalog.rule_for(card_id, o.bucket)
        if rule is None or rule.cap is None:
            continue
        eligible = rule.eligible_spend()
        if eligible is None or o.spend <= eligible:
            continue
        excess = to_money(o.spend - eligible)
        category = display_name(o.bucket)
        card = _card_name(catalog, card_id)
        if rule.cap_kind == "spend":
            limit = f"(a {_rupees(rule.cap)} qualifying-spend cap)"
        else:
            limit = f"({_rupees(rule.cap)} reward cap)"
        message = (
            f"You spent {_rupees(o.spend)} on {category} using {card}, but this card only "
            f"gives {_pct(rule.rate)} on the first {_rupees(eligible)} {limit}. "
            f"You're not earning rewards on {_rupees(excess)} of your spending."
        )
        out.append(
            Insight(
                kind="cap_hit",
                bucket=o.bucket.value,
                card_id=card_id,
                amount=excess,
                message=message,
                detail={
                    "spend": fmt_money(o.spend),
                    "eligible_spend": fmt_money(eligible),
                    "cap": fmt_money(rule.cap),
                    "cap_kind": rule.cap_kind,
                },
            )
        )
    out.sort(key=lambda i: (-i.amount, i.bucket))
    return out


def detect_all(
    result: OptimizerResult,
    current: CurrentCards,
    catalog: RewardCatalog,
    settings: Settings | None = None,
) -> list[Insight]:
    """Mismatch warnings followed by cap-hit warnings."""

    s = settings or Settings()
    return [
        *detect_category_mismatches(
            result, catalog, min_amount=s.mismatch_min_amount, min_pct=s.mismatch_min_pct
        ),
        *detect_cap_hits(result, current, catalog),
    ]


__all__ = [
    "Insight",
    "detect_category_mismatches",
    "detect_cap_hits",
    "detect_all",
]
