"""Reward catalog: per-card, per-bucket reward rules.

The catalog is read-only input to the optimizer. It is loaded from a JSON file
of the form::

    {
      "version": "2025-03",
      "cards": [
        {
          "card_id": "CardA",
          "name": "Card A",
          "issuer": "Example Bank",
          "base_rate": "0.005",
          "rules": [
            {"bucket": "online-retail", "rate": "0.05", "cap": "1500"},
            {"bucket": "fuel", "rate": "0.01", "cap": "4000", "cap_kind": "spend"}
          ]
        }
      ]
    }

Rates are reward units per unit of spend. A ``reward`` cap bounds the reward
earned in a month; a ``spend`` cap bounds the spend that qualifies. Optional
``tiers`` describe marginal rates for consecutive spend slices; spend beyond
the last tier earns the rule's ``rate``.

A :class:`CatalogStore` holds the current catalog for long-running callers.
Readers take :meth:`CatalogStore.current` once per computation and keep that
immutable object for its duration; :meth:`CatalogStore.reload` swaps in a new
one without disturbing computations already running.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .buckets import Bucket, parse_bucket
from .errors import CatalogError, UnknownBucket
from .logging_setup import get_logger
from .money import ZERO, to_money

_logger = get_logger("spend_rewards.catalog")

type CapKind = Literal["reward", "spend"]

# ---------------------------------------------------------------------------
# Core values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RateTier:
    """Marginal rate for spend up to ``up_to`` (cumulative, within the bucket)."""

    up_to: Decimal
    rate: Decimal


@dataclass(frozen=True, slots=True)
class RewardRule:
    card_id: str
    bucket: Bucket
    rate: Decimal
    cap: Decimal | None = None
    cap_kind: CapKind = "reward"
    tiers: tuple[RateTier, ...] = ()

    def __post_init__(self) -> None:
        if self.rate < 0:
            raise CatalogError(f"card {self.card_id!r} {self.bucket.value}: negative rate")
        if self.cap is not None and self.cap < 0:
            raise CatalogError(f"card {self.card_id!r} {self.bucket.value}: negative cap")
        if any(t.rate < 0 or t.up_to <= 0 for t in self.tiers):
            raise CatalogError(f"card {self.card_id!r} {self.bucket.value}: invalid tier")

    def _uncapped(self, spend: Decimal) -> Decimal:
        if not self.tiers:
            return spend * self.rate
        reward = Decimal(0)
        floor = Decimal(0)
        for tier in self.tiers:
            if spend <= floor:
                return reward
            slice_top = min(spend, tier.up_to)
            reward += (slice_top - floor) * tier.rate
            floor = tier.up_to
        if spend > floor:
            reward += (spend - floor) * self.rate
        return reward

    def reward(self, spend: Decimal) -> Decimal:
        """Monthly reward for ``spend`` in this bucket, quantized to cents."""

        if spend <= 0:
            return ZERO
        if self.cap is not None and self.cap_kind == "spend":
            return to_money(self._uncapped(min(spend, self.cap)))
        raw = self._uncapped(spend)
        if self.cap is not None:
            raw = min(raw, self.cap)
        return to_money(raw)

    def eligible_spend(self) -> Decimal | None:
        """Spend at which the cap is reached, or ``None`` when uncapped.

        For reward caps this is only known for flat rules with a positive rate.
        """

        if self.cap is None:
            return None
        if self.cap_kind == "spend":
            return self.cap
        if self.tiers or self.rate <= 0:
            return None
        return to_money(self.cap / self.rate)


@dataclass(frozen=True, slots=True)
class CardProduct:
    card_id: str
    name: str = ""
    issuer: str = ""
    rules: Mapping[Bucket, RewardRule] = field(default_factory=dict)
    base_rate: Decimal = Decimal(0)

    def __post_init__(self) -> None:
        if self.base_rate < 0:
            raise CatalogError(f"card {self.card_id!r}: negative base rate")
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))

    def rule_for(self, bucket: Bucket) -> RewardRule:
        rule = self.rules.get(bucket)
        if rule is not None:
            return rule
        return RewardRule(card_id=self.card_id, bucket=bucket, rate=self.base_rate)


@dataclass(frozen=True, slots=True)
class RewardCatalog:
    """Immutable set of card products, ordered by ``card_id``."""

    version: str
    cards: Mapping[str, CardProduct] = field(default_factory=dict)

    def __post_init__(self) -> None:
        ordered = {cid: self.cards[cid] for cid in sorted(self.cards)}
        object.__setattr__(self, "cards", MappingProxyType(ordered))

    def __len__(self) -> int:
        return len(self.cards)

    @property
    def card_ids(self) -> tuple[str, ...]:
        return tuple(self.cards)

    def has_card(self, card_id: str) -> bool:
        return card_id in self.cards

    def rule_for(self, card_id: str, bucket: Bucket) -> RewardRule | None:
        card = self.cards.get(card_id)
        return card.rule_for(bucket) if card is not None else None

    def headline_rate(self, card_id: str, bucket: Bucket) -> Decimal:
        rule = self.rule_for(card_id, bucket)
        return rule.rate if rule is not None else Decimal(0)

    def reward_for(self, card_id: str, bucket: Bucket, spend: Decimal) -> Decimal:
        """Reward ``card_id`` earns on ``spend`` in ``bucket``; zero for unknown cards."""

        rule = self.rule_for(card_id, bucket)
        if rule is None:
            return ZERO
        return rule.reward(spend)

    @classmethod
    def from_rates(
        cls, rates: Mapping[str, Mapping[str, Decimal | str]], *, version: str = "inline"
    ) -> RewardCatalog:
        """Build a flat-rate catalog from ``{card_id: {bucket: rate}}``."""

        cards: dict[str, CardProduct] = {}
        for card_id, by_bucket in rates.items():
            rules = {}
            for raw_bucket, rate in by_bucket.items():
                b = parse_bucket(raw_bucket)
                rules[b] = RewardRule(card_id=card_id, bucket=b, rate=Decimal(str(rate)))
            cards[card_id] = CardProduct(card_id=card_id, name=card_id, rules=rules)
        return cls(version=version, cards=cards)


EMPTY_CATALOG = RewardCatalog(version="empty")

# ---------------------------------------------------------------------------
# File format (pydantic)
# ---------------------------------------------------------------------------


class TierSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    up_to: Decimal = Field(gt=0)
    rate: Decimal = Field(ge=0)


class RuleSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bucket: str
    rate: Decimal = Field(ge=0)
    cap: Decimal | None = Field(default=None, ge=0)
    cap_kind: CapKind = "reward"
    tiers: list[TierSpec] = []

    @field_validator("tiers")
    @classmethod
    def _ascending(cls, v: list[TierSpec]) -> list[TierSpec]:
        bounds = [t.up_to for t in v]
        if bounds != sorted(set(bounds)):
            raise ValueError("tier bounds must be strictly increasing")
        return v


class CardSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    card_id: str = Field(min_length=1)
    name: str = ""
    issuer: str = ""
    base_rate: Decimal = Field(default=Decimal(0), ge=0)
    rules: list[RuleSpec] = []


class CatalogFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = Field(min_length=1)
    cards: list[CardSpec] = []


def _build(spec: CatalogFile) -> RewardCatalog:
    cards: dict[str, CardProduct] = {}
    for card in spec.cards:
        if card.card_id in cards:
            raise CatalogError(f"duplicate card_id: {card.card_id!r}")
        rules: dict[Bucket, RewardRule] = {}
        for r in card.rules:
            try:
                bucket = parse_bucket(r.bucket)
            except UnknownBucket as e:
                raise CatalogError(f"card {card.card_id!r}: {e}") from e
            if bucket in rules:
                raise CatalogError(
                    f"card {card.card_id!r} has more than one rule for {bucket.value}"
                )
            rules[bucket] = RewardRule(
                card_id=card.card_id,
                bucket=bucket,
                rate=r.rate,
                cap=r.cap,
                cap_kind=r.cap_kind,
                tiers=tuple(RateTier(up_to=t.up_to, rate=t.rate) for t in r.tiers),
            )
        cards[card.card_id] = CardProduct(
            card_id=card.card_id,
            name=card.name or card.card_id,
            issuer=card.issuer,
            rules=rules,
            base_rate=card.base_rate,
        )
    return RewardCatalog(version=spec.version, cards=cards)


def parse_catalog(data: object) -> RewardCatalog:
    """Validate an already-decoded JSON document into a :class:`RewardCatalog`."""

    try:
        spec = CatalogFile.model_validate(data)
    except ValidationError as e:
        raise CatalogError(f"invalid catalog: {e}") from e
    return _build(spec)


def load_catalog(path: str | Path) -> RewardCatalog:
    """Load and validate a catalog JSON file. Raises :class:`CatalogError`."""

    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CatalogError(f"catalog file not found: {p}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"catalog file is not valid JSON: {p}: {e}") from e
    catalog = parse_catalog(data)
    _logger.info("loaded catalog %s (%d cards) from %s", catalog.version, len(catalog), p)
    return catalog


def default_catalog_path() -> Path:
    """Path of the sample catalog shipped with the package."""

    return Path(__file__).parent / "data" / "sample_catalog.json"


# ---------------------------------------------------------------------------
# Hot-reloadable holder
# ---------------------------------------------------------------------------


class CatalogStore:
    """Holds the current :class:`RewardCatalog` for concurrent readers."""

    def __init__(self, catalog: RewardCatalog | None = None) -> None:
        self._lock = threading.Lock()
        self._catalog = catalog if catalog is not None else EMPTY_CATALOG

    def current(self) -> RewardCatalog:
        with self._lock:
            return self._catalog

    def replace(self, catalog: RewardCatalog) -> RewardCatalog:
        """Install ``catalog``; returns the previous one."""

        with self._lock:
            previous, self._catalog = self._catalog, catalog
        if previous.version != catalog.version:
            _logger.info("catalog version %s -> %s", previous.version, catalog.version)
        return previous

    def reload(self, path: str | Path) -> RewardCatalog:
        """Load ``path`` and install it. The current catalog is kept on failure."""

        catalog = load_catalog(path)
        self.replace(catalog)
        return catalog


__all__ = [
    "CapKind",
    "RateTier",
    "RewardRule",
    "CardProduct",
    "RewardCatalog",
    "EMPTY_CATALOG",
    "CatalogFile",
    "parse_catalog",
    "load_catalog",
    "default_catalog_path",
    "CatalogStore",
]
