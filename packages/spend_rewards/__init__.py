"""Public interface for the ``spend_rewards`` package.

Spend categorization and reward optimization: normalize statement records,
classify them into spend buckets, aggregate monthly snapshots and compare the
rewards actually earned with the best card in a reward catalog. Only symbol
re-exports live here.
"""

from .aggregate import aggregate_month, dedupe, months_covered
from .buckets import ALL_BUCKETS, CATCH_ALL, Bucket, parse_bucket
from .catalog import (
    CardProduct,
    CatalogStore,
    RateTier,
    RewardCatalog,
    RewardRule,
    load_catalog,
)
from .classify import Classifier, classify
from .errors import (
    CatalogError,
    InvariantViolation,
    MalformedAmount,
    MalformedDate,
    SpendRewardsError,
    UnknownBucket,
)
from .models import (
    BucketOutcome,
    Direction,
    MonthlySpendSnapshot,
    OptimizerResult,
    RawTransaction,
    Statement,
    Transaction,
    TransactionIssue,
)
from .months import MonthKey
from .normalizers import normalize_statement, normalize_statements
from .optimizer import CurrentCards, optimize
from .pipeline import MonthReport, run_month, run_months

__all__ = [
    # Taxonomy
    "Bucket",
    "ALL_BUCKETS",
    "CATCH_ALL",
    "parse_bucket",
    # Models
    "RawTransaction",
    "Statement",
    "Direction",
    "Transaction",
    "TransactionIssue",
    "MonthlySpendSnapshot",
    "BucketOutcome",
    "OptimizerResult",
    "MonthKey",
    # Stages
    "normalize_statement",
    "normalize_statements",
    "Classifier",
    "classify",
    "dedupe",
    "aggregate_month",
    "months_covered",
    "RateTier",
    "RewardRule",
    "CardProduct",
    "RewardCatalog",
    "CatalogStore",
    "load_catalog",
    "CurrentCards",
    "optimize",
    "MonthReport",
    "run_month",
    "run_months",
    # Errors
    "SpendRewardsError",
    "MalformedAmount",
    "MalformedDate",
    "UnknownBucket",
    "CatalogError",
    "InvariantViolation",
]
