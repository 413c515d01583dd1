"""Environment-driven settings.

Values are read from the process environment. The CLI loads a local ``.env``
with ``python-dotenv`` before calling :func:`load_settings`; library callers
may construct :class:`Settings` directly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

_MAX_WORKERS_CAP = 32


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str | None = None
    catalog_path: str | None = None
    max_workers: int | None = None
    mismatch_min_amount: Decimal = Decimal("500")
    mismatch_min_pct: Decimal = Decimal("20")

    def resolve_workers(self, n_items: int) -> int:
        """Clamp the worker count to ``[1, min(n_items, 32)]``.

        Without an explicit setting, use a modest default of 4.
        """

        if self.max_workers is not None and self.max_workers > 0:
            return max(1, min(self.max_workers, n_items, _MAX_WORKERS_CAP))
        return max(1, min(4, n_items))


def _int_or_none(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _decimal_or(raw: str | None, default: Decimal) -> Decimal:
    if raw is None or not raw.strip():
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        return default
    return value if value >= 0 else default


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``).

    Malformed numeric values fall back to defaults rather than failing.
    """

    e = os.environ if env is None else env
    defaults = Settings()
    return Settings(
        database_url=(e.get("DATABASE_URL") or None),
        catalog_path=(e.get("SPEND_REWARDS_CATALOG") or None),
        max_workers=_int_or_none(e.get("SPEND_REWARDS_MAX_WORKERS")),
        mismatch_min_amount=_decimal_or(
            e.get("SPEND_REWARDS_MISMATCH_MIN_AMOUNT"), defaults.mismatch_min_amount
        ),
        mismatch_min_pct=_decimal_or(
            e.get("SPEND_REWARDS_MISMATCH_MIN_PCT"), defaults.mismatch_min_pct
        ),
    )


__all__ = ["Settings", "load_settings"]
