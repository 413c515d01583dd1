"""Exception types for the spend categorization and reward engine.

Per-record failures (:class:`MalformedAmount`, :class:`MalformedDate`) are
recoverable: the normalizer turns them into ``TransactionIssue`` values and
keeps going. The remaining types signal bad input files or programming
defects and are meant to propagate.
"""

from __future__ import annotations


class SpendRewardsError(Exception):
    """Base class for all package errors."""


class RecordError(SpendRewardsError, ValueError):
    """A single raw transaction record could not be normalized."""

    kind: str = "invalid_record"

    def __init__(self, message: str, *, raw_value: object = None) -> None:
        super().__init__(message)
        self.raw_value = raw_value


class MalformedAmount(RecordError):
    kind = "malformed_amount"


class MalformedDate(RecordError):
    kind = "malformed_date"


class UnknownBucket(SpendRewardsError, LookupError):
    """A bucket identifier outside the closed taxonomy was encountered."""


class CatalogError(SpendRewardsError, ValueError):
    """A reward catalog file is structurally invalid."""


class IngestError(SpendRewardsError, ValueError):
    """An input file could not be read as statements."""


class RegistryError(SpendRewardsError, ValueError):
    """A card registry file is structurally invalid."""


class InvariantViolation(SpendRewardsError, RuntimeError):
    """An aggregation or optimizer invariant did not hold (a defect)."""


__all__ = [
    "SpendRewardsError",
    "RecordError",
    "MalformedAmount",
    "MalformedDate",
    "UnknownBucket",
    "CatalogError",
    "RegistryError",
    "IngestError",
    "InvariantViolation",
]
