"""Ordered merchant-pattern rules for spend classification.

This table is a versioned data asset: evaluation is first-match-wins, so the
position of a rule is part of its meaning. Bump :data:`RULES_VERSION` whenever
rules are added, removed or reordered, and extend ``tests/test_rules_table.py``
with the case that motivated the change.

Patterns are written in merchant-key space (lower case, punctuation replaced
by spaces, single-spaced), e.g. ``amazon in`` for ``AMAZON.IN``. Rules with
``target="raw"`` see the lower-cased original description instead, which keeps
URL hints such as ``www.`` or ``.com`` visible.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from .buckets import Bucket

RULES_VERSION = "2025.03.2"

type MatchKind = Literal["substring", "word", "regex"]
type MatchTarget = Literal["merchant", "raw"]


@dataclass(frozen=True, slots=True)
class CategoryRule:
    pattern: str
    bucket: Bucket
    kind: MatchKind = "substring"
    target: MatchTarget = "merchant"


def _s(bucket: Bucket, *patterns: str) -> list[CategoryRule]:
    return [CategoryRule(p, bucket) for p in patterns]


def _w(bucket: Bucket, *patterns: str) -> list[CategoryRule]:
    return [CategoryRule(p, bucket, kind="word") for p in patterns]


B = Bucket

DEFAULT_RULES: tuple[CategoryRule, ...] = (
    # Streaming first: "amazon prime", "jiocinema" must not fall into retail/telecom.
    *_s(B.STREAMING, "amazon prime", "prime video", "primevideo", "netflix", "hotstar"),
    *_s(B.STREAMING, "disney", "zee5", "sonyliv", "jiocinema", "spotify", "youtube premium"),
    *_s(B.STREAMING, "apple com bill", "audible"),
    # Quick-commerce grocery before food delivery ("swiggy instamart").
    *_s(B.GROCERIES, "instamart", "blinkit", "grofers", "bigbasket", "zepto", "dunzo"),
    *_s(B.GROCERIES, "jiomart", "milkbasket", "dmart", "reliance fresh"),
    *_w(B.GROCERIES, "d mart"),
    *_s(B.GROCERIES, "more retail", "nature s basket", "supermarket", "grocery", "kirana"),
    *_s(B.FOOD_DELIVERY, "swiggy", "bundl technologies", "zomato", "uber eats", "ubereats"),
    *_s(B.FOOD_DELIVERY, "eatsure", "talabat", "deliveroo", "foodpanda"),
    # Bill payments routed through wallets or marketplaces are still bills.
    *_s(B.UTILITIES, "electricity", "power bill", "bescom", "msedcl", "tata power"),
    *_s(B.UTILITIES, "adani electricity", "bses", "tneb", "water bill", "water supply"),
    *_s(B.UTILITIES, "gas bill", "piped gas", "mahanagar gas", "indraprastha gas"),
    *_s(B.UTILITIES, "broadband", "fibernet", "tata sky", "tata play", "dish tv"),
    *_s(B.UTILITIES, "billpay", "bill payment", "bbps"),
    *_w(B.UTILITIES, "dth", "igl"),
    *_s(B.MOBILE_BILLS, "airtel", "vodafone", "bsnl", "mobile recharge", "postpaid"),
    *_s(B.MOBILE_BILLS, "prepaid"),
    *_w(B.MOBILE_BILLS, "jio", "idea"),
    *_s(B.FLIGHTS, "indigo", "interglobe", "vistara", "spicejet", "air india", "akasa"),
    *_s(B.FLIGHTS, "airasia", "goair", "go first", "emirates", "etihad", "qatar airways"),
    *_s(B.FLIGHTS, "airlines", "airways", "duty free"),
    *_s(B.HOTELS, "hotel", "resort", "marriott", "hilton", "hyatt", "treebo", "fabhotel"),
    *_s(B.HOTELS, "booking com", "airbnb", "agoda"),
    *_w(B.HOTELS, "oyo", "taj"),
    *_s(B.TRAVEL, "makemytrip", "goibibo", "cleartrip", "yatra", "ixigo", "redbus"),
    *_s(B.TRAVEL, "rapido", "careem", "blablacar", "metro rail", "fastag"),
    *_w(B.TRAVEL, "irctc", "mmt", "uber", "ola", "taxi", "cab", "cabs"),
    *_s(B.FUEL, "indian oil", "bharat petroleum", "hindustan petroleum", "petrol"),
    *_s(B.FUEL, "fuel", "filling station", "service station", "nayara", "reliance bp"),
    *_w(B.FUEL, "hpcl", "iocl", "bpcl", "shell"),
    *_s(B.PHARMACY, "pharmacy", "pharma", "medplus", "netmeds", "pharmeasy", "1mg"),
    *_s(B.PHARMACY, "chemist", "medical store", "medicals"),
    *_s(B.ELECTRONICS, "croma", "reliance digital", "vijay sales", "apple store"),
    *_s(B.ELECTRONICS, "samsung store", "electronics"),
    *_s(B.ONLINE_RETAIL, "amazon", "amzn", "flipkart", "fkrt", "myntra", "ajio"),
    *_s(B.ONLINE_RETAIL, "nykaa", "meesho", "snapdeal", "tata cliq", "tatacliq", "ebay"),
    *_s(B.INSURANCE, "insurance", "policybazaar", "policy bazaar", "assurance"),
    *_w(B.INSURANCE, "lic"),
    *_s(B.EDUCATION, "school", "tuition", "college", "university", "education"),
    *_s(B.EDUCATION, "coaching", "academy", "byju", "unacademy", "coursera", "udemy"),
    *_s(B.RENT, "nobroker", "nestaway", "house rent", "rent payment", "cred rent"),
    *_w(B.RENT, "rent"),
    *_s(B.DINING, "restaurant", "cafe", "coffee", "starbucks", "mcdonald", "dominos"),
    *_s(B.DINING, "domino s", "pizza hut", "burger king", "haldiram", "barbeque nation"),
    *_s(B.DINING, "dining", "bistro", "brewery", "eatery", "dhaba"),
    *_w(B.DINING, "kfc", "subway", "pub"),
    # Online payment aggregators without a recognisable merchant.
    *_s(B.OTHER_ONLINE, "razorpay", "paytm", "payu", "ccavenue", "billdesk", "cashfree"),
    CategoryRule(
        r"(?:\bwww\.|\.com\b|\.in\b|\.co\b|\.io\b|https?://)",
        B.OTHER_ONLINE,
        kind="regex",
        target="raw",
    ),
)


@dataclass(frozen=True, slots=True)
class CompiledRule:
    rule: CategoryRule
    regex: re.Pattern[str]
    position: int


def _to_regex(rule: CategoryRule) -> re.Pattern[str]:
    if rule.kind == "regex":
        return re.compile(rule.pattern, re.IGNORECASE)
    escaped = re.escape(rule.pattern)
    if rule.kind == "word":
        return re.compile(rf"(?<!\w){escaped}(?!\w)")
    return re.compile(escaped)


def compile_rules(rules: Iterable[CategoryRule]) -> tuple[CompiledRule, ...]:
    """Validate and compile ``rules`` preserving order.

    Raises ``ValueError`` for empty or duplicate patterns and for patterns
    that are not already in merchant-key form (merchant target only).
    """

    compiled: list[CompiledRule] = []
    seen: set[tuple[str, str, str]] = set()
    for pos, rule in enumerate(rules):
        if not isinstance(rule.bucket, Bucket):
            raise ValueError(f"rule {pos} has a non-taxonomy bucket: {rule.bucket!r}")
        if not rule.pattern or not rule.pattern.strip():
            raise ValueError(f"rule {pos} has an empty pattern")
        if rule.kind != "regex" and rule.target == "merchant":
            if rule.pattern != " ".join(rule.pattern.lower().split()):
                raise ValueError(
                    f"rule {pos} pattern {rule.pattern!r} is not in merchant-key form"
                )
        ident = (rule.pattern, rule.kind, rule.target)
        if ident in seen:
            raise ValueError(f"duplicate rule pattern at position {pos}: {rule.pattern!r}")
        seen.add(ident)
        compiled.append(CompiledRule(rule=rule, regex=_to_regex(rule), position=pos))
    return tuple(compiled)


__all__ = [
    "RULES_VERSION",
    "CategoryRule",
    "CompiledRule",
    "DEFAULT_RULES",
    "compile_rules",
]
