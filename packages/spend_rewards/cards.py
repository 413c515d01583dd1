"""Statement → catalog card resolution.

A user's registered cards map a statement's ``(bank_code, card_last4)`` to a
catalog ``card_id``. From the resolved transactions we infer which card the
user actually used for each bucket, which is what the optimizer compares
against.
"""

from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .buckets import Bucket
from .errors import RegistryError
from .logging_setup import get_logger
from .models import Transaction
from .optimizer import CurrentCards

_logger = get_logger("spend_rewards.cards")

type Confidence = Literal["high", "medium", "none"]


class RegisteredCard(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    card_id: str = Field(min_length=1)
    bank_code: str = Field(min_length=1)
    last4: str | None = None
    nickname: str | None = None
    status: Literal["active", "inactive", "closed"] = "active"

    @field_validator("bank_code")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower()

    @field_validator("last4")
    @classmethod
    def _four_digits(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if len(v) != 4 or not v.isdigit():
            raise ValueError("last4 must be exactly 4 digits")
        return v


class RegistryFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cards: list[RegisteredCard] = []


@dataclass(frozen=True, slots=True)
class CardMatch:
    card_id: str | None
    confidence: Confidence
    reason: str


class CardRegistry:
    """Registered cards for one user.

    Resolution order: exact ``(bank_code, last4)`` match on an active card
    (``high``); otherwise the bank's only active card (``medium``); otherwise
    no match.
    """

    def __init__(self, cards: Iterable[RegisteredCard] = ()) -> None:
        self._cards = tuple(c for c in cards if c.status == "active")

    def __len__(self) -> int:
        return len(self._cards)

    @classmethod
    def load(cls, path: str | Path) -> CardRegistry:
        p = Path(path)
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
            spec = RegistryFile.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise RegistryError(f"invalid card registry {p}: {e}") from e
        return cls(spec.cards)

    def resolve(self, bank_code: str | None, last4: str | None) -> CardMatch:
        if not bank_code:
            return CardMatch(None, "none", "statement has no bank code")
        bank = bank_code.lower()
        same_bank = [c for c in self._cards if c.bank_code == bank]
        if last4:
            for c in same_bank:
                if c.last4 == last4:
                    return CardMatch(c.card_id, "high", f"{bank} card ending {last4}")
        if len(same_bank) == 1:
            return CardMatch(same_bank[0].card_id, "medium", f"only registered {bank} card")
        if same_bank:
            return CardMatch(None, "none", f"{len(same_bank)} {bank} cards, last4 ambiguous")
        return CardMatch(None, "none", f"no registered {bank} card")

    def card_for(self, txn: Transaction) -> str | None:
        return self.resolve(txn.bank_code, txn.card_last4).card_id


def infer_current_cards(
    transactions: Iterable[Transaction], registry: CardRegistry
) -> CurrentCards:
    """Infer the card used per bucket from debit spend.

    Each bucket maps to the card that carried the most debit spend in it (ties
    go to the lowest ``card_id``). The default card is the one with the most
    debit spend overall. Transactions whose card cannot be resolved are
    skipped.
    """

    per_bucket: dict[Bucket, dict[str, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
    overall: dict[str, Decimal] = defaultdict(Decimal)
    unresolved = 0
    for t in transactions:
        if not t.is_debit:
            continue
        card_id = registry.card_for(t)
        if card_id is None:
            unresolved += 1
            continue
        per_bucket[t.bucket][card_id] += t.amount
        overall[card_id] += t.amount

    if unresolved:
        _logger.info("%d debit transaction(s) did not resolve to a registered card", unresolved)

    def _top(totals: dict[str, Decimal]) -> str:
        return min(totals, key=lambda cid: (-totals[cid], cid))

    by_bucket = {b: _top(totals) for b, totals in per_bucket.items()}
    default = _top(overall) if overall else None
    return CurrentCards(default_card_id=default, by_bucket=by_bucket)


__all__ = [
    "RegisteredCard",
    "RegistryFile",
    "CardMatch",
    "CardRegistry",
    "infer_current_cards",
]
