"""Fixed-point money helpers.

All monetary values are :class:`~decimal.Decimal` quantized to cents with
``ROUND_HALF_UP``. Floats never enter a sum.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize ``value`` to two decimal places (ROUND_HALF_UP)."""

    d = value if isinstance(value, Decimal) else Decimal(str(value))
    q = d.quantize(CENT, rounding=ROUND_HALF_UP)
    # Normalize negative zero so "-0.00" never leaks into reports.
    return q if q != 0 else ZERO


def fmt_money(value: Decimal) -> str:
    """Exactly two decimals, ASCII dot, leading minus for negatives."""

    return f"{to_money(value):.2f}"


def money_sum(values: Iterable[Decimal]) -> Decimal:
    total = ZERO
    for v in values:
        total += v
    return to_money(total)


__all__ = ["CENT", "ZERO", "to_money", "fmt_money", "money_sum"]
