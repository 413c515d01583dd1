"""Data models for ``spend_rewards``.

Two families live here:

- Boundary DTOs (:class:`RawTransaction`, :class:`Statement`) are pydantic
  models. They describe the records handed over by the extraction
  collaborator and reject missing required fields before the core runs.
- Core values (:class:`Transaction`, :class:`MonthlySpendSnapshot`,
  :class:`OptimizerResult`, ...) are frozen dataclasses passed by value
  between pipeline stages. They are never mutated after construction.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .buckets import ALL_BUCKETS, Bucket
from .money import ZERO, fmt_money

# ---------------------------------------------------------------------------
# Boundary DTOs (input from the extraction collaborator)
# ---------------------------------------------------------------------------


class RawTransaction(BaseModel):
    """A single extracted transaction, as delivered by the extraction step.

    ``amount`` is kept as text; numeric JSON values are converted to their
    string form so that parsing (and its failures) happens in one place, the
    normalizer.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    description: str
    amount: str
    date: str
    type: str | None = None
    id: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("amount must be text or a number")
        if isinstance(v, int | float):
            return repr(v) if isinstance(v, float) else str(v)
        return v

    @field_validator("id", "type", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, int):
            v = str(v)
        if isinstance(v, str) and not v.strip():
            return None
        return v


_LAST4_RE = re.compile(r"^\d{4}$")


class Statement(BaseModel):
    """One statement's worth of raw transactions plus its card metadata."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    bank_code: str
    statement_id: str | None = None
    card_last4: str | None = None
    period_start: date | None = None
    period_end: date | None = None
    transactions: list[RawTransaction] = []

    @field_validator("bank_code")
    @classmethod
    def _bank_code_norm(cls, v: str) -> str:
        code = v.strip().lower()
        if not code:
            raise ValueError("bank_code must be non-empty")
        return code

    @field_validator("card_last4", mode="before")
    @classmethod
    def _last4(cls, v: Any) -> Any:
        if v is None:
            return None
        digits = re.sub(r"\D", "", str(v))
        if not digits:
            return None
        # Masked numbers such as "XXXX XXXX XXXX 1234" keep their tail.
        tail = digits[-4:]
        if not _LAST4_RE.match(tail):
            raise ValueError("card_last4 must contain at least 4 digits")
        return tail

    @property
    def source_id(self) -> str:
        """Stable statement identity used as the first half of dedup keys.

        Uses ``statement_id`` when supplied; otherwise derives one from the
        bank code, card tail and statement period.
        """

        if self.statement_id:
            return self.statement_id
        parts = [
            self.bank_code,
            self.card_last4 or "",
            self.period_start.isoformat() if self.period_start else "",
            self.period_end.isoformat() if self.period_end else "",
        ]
        return ":".join(parts)


# ---------------------------------------------------------------------------
# Core values
# ---------------------------------------------------------------------------


class Direction(StrEnum):
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True, slots=True)
class Transaction:
    """A normalized transaction.

    ``amount`` is always non-negative; the sign lives in ``direction``.
    """

    date: date
    amount: Decimal
    direction: Direction
    raw_description: str
    merchant_key: str
    bucket: Bucket
    source_id: str
    ordinal: int
    txn_id: str
    card_last4: str | None = None
    bank_code: str | None = None

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (self.source_id, self.txn_id)

    @property
    def month(self) -> str:
        return f"{self.date.year:04d}-{self.date.month:02d}"

    @property
    def is_debit(self) -> bool:
        return self.direction is Direction.DEBIT


@dataclass(frozen=True, slots=True)
class TransactionIssue:
    """A raw record the normalizer rejected, kept for visibility."""

    source_id: str
    ordinal: int
    kind: str
    message: str
    raw: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class NormalizedStatement:
    source_id: str
    transactions: tuple[Transaction, ...]
    issues: tuple[TransactionIssue, ...]


def _freeze_buckets(buckets: Mapping[Bucket, Decimal]) -> Mapping[Bucket, Decimal]:
    full = {b: buckets.get(b, ZERO) for b in ALL_BUCKETS}
    return MappingProxyType(full)


@dataclass(frozen=True, slots=True)
class MonthlySpendSnapshot:
    """Per-user, per-month spend by bucket.

    Every taxonomy bucket is present (zero-filled) in canonical order.
    """

    user_id: str
    month: str
    source: str
    buckets: Mapping[Bucket, Decimal]
    transaction_count: int = 0
    duplicates_dropped: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "buckets", _freeze_buckets(self.buckets))

    @property
    def total(self) -> Decimal:
        total = ZERO
        for v in self.buckets.values():
            total += v
        return total

    def nonzero(self) -> dict[Bucket, Decimal]:
        return {b: v for b, v in self.buckets.items() if v != 0}

    def to_record(self) -> dict[str, Any]:
        """JSON-capable shape used for persistence and API responses."""

        return {
            "user_id": self.user_id,
            "month": self.month,
            "source": self.source,
            "buckets": {b.value: fmt_money(v) for b, v in self.buckets.items()},
        }


@dataclass(frozen=True, slots=True)
class BucketOutcome:
    bucket: Bucket
    spend: Decimal
    actual_reward: Decimal
    best_reward: Decimal
    best_card_id: str | None
    missed: Decimal
    actual_card_id: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "bucket": self.bucket.value,
            "spend": fmt_money(self.spend),
            "actual_reward": fmt_money(self.actual_reward),
            "best_reward": fmt_money(self.best_reward),
            "best_card_id": self.best_card_id,
            "missed": fmt_money(self.missed),
        }


@dataclass(frozen=True, slots=True)
class OptimizerResult:
    user_id: str
    month: str
    total_missed: Decimal
    per_bucket: tuple[BucketOutcome, ...]
    total_actual_reward: Decimal
    total_best_reward: Decimal
    catalog_version: str | None = None
    unknown_cards: tuple[str, ...] = field(default_factory=tuple)

    def outcome(self, bucket: Bucket) -> BucketOutcome:
        for o in self.per_bucket:
            if o.bucket is bucket:
                return o
        raise KeyError(bucket)

    @property
    def payload(self) -> dict[str, Any]:
        return {
            "per_bucket": [o.to_record() for o in self.per_bucket],
            "total_actual_reward": fmt_money(self.total_actual_reward),
            "total_best_reward": fmt_money(self.total_best_reward),
        }

    def to_record(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "month": self.month,
            "total_missed": fmt_money(self.total_missed),
            "payload": self.payload,
        }


__all__ = [
    "RawTransaction",
    "Statement",
    "Direction",
    "Transaction",
    "TransactionIssue",
    "NormalizedStatement",
    "MonthlySpendSnapshot",
    "BucketOutcome",
    "OptimizerResult",
]
