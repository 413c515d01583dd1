"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the reward-optimization tables used by ``spend_rewards``.
"""

from .rewards import Base, SrOptimizerResult, SrSpendSnapshot

__all__ = [
    "Base",
    "SrOptimizerResult",
    "SrSpendSnapshot",
]
