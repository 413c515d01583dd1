"""Closed spend-bucket taxonomy.

The declaration order of :class:`Bucket` is the canonical report order used by
snapshots and optimizer results. ``other-offline`` is the catch-all that
classification falls back to, so every transaction lands in exactly one
bucket.
"""

from __future__ import annotations

from enum import StrEnum

from .errors import UnknownBucket


class Bucket(StrEnum):
    FOOD_DELIVERY = "food-delivery"
    DINING = "dining"
    GROCERIES = "groceries"
    ONLINE_RETAIL = "online-retail"
    FLIGHTS = "flights"
    HOTELS = "hotels"
    TRAVEL = "travel"
    FUEL = "fuel"
    UTILITIES = "utilities"
    MOBILE_BILLS = "mobile-bills"
    STREAMING = "streaming"
    EDUCATION = "education"
    RENT = "rent"
    INSURANCE = "insurance"
    PHARMACY = "pharmacy"
    ELECTRONICS = "electronics"
    OTHER_ONLINE = "other-online"
    OTHER_OFFLINE = "other-offline"


CATCH_ALL: Bucket = Bucket.OTHER_OFFLINE

ALL_BUCKETS: tuple[Bucket, ...] = tuple(Bucket)


def parse_bucket(value: str | Bucket) -> Bucket:
    """Return the :class:`Bucket` for ``value``.

    Accepts the canonical kebab-case id, tolerating surrounding whitespace,
    case, and underscores in place of hyphens. Raises :class:`UnknownBucket`
    for anything outside the taxonomy.
    """

    if isinstance(value, Bucket):
        return value
    if not isinstance(value, str):
        raise UnknownBucket(f"bucket must be a string, got {type(value).__name__}")
    key = value.strip().lower().replace("_", "-")
    try:
        return Bucket(key)
    except ValueError:
        raise UnknownBucket(f"unknown bucket: {value!r}") from None


def display_name(bucket: Bucket) -> str:
    """Human-friendly label, e.g. ``food-delivery`` -> ``Food Delivery``."""

    return " ".join(part.capitalize() for part in bucket.value.split("-"))


__all__ = [
    "Bucket",
    "CATCH_ALL",
    "ALL_BUCKETS",
    "parse_bucket",
    "display_name",
]
