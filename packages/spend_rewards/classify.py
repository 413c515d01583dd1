"""Rule-based spend classification.

:class:`Classifier` evaluates an ordered rule table (see
:mod:`spend_rewards.rules`) and returns the bucket of the first matching rule.
Classification is total: input that matches nothing lands in the catch-all
bucket instead of raising.
"""

from __future__ import annotations

from collections.abc import Iterable

from .buckets import CATCH_ALL, Bucket
from .logging_setup import get_logger
from .rules import DEFAULT_RULES, RULES_VERSION, CategoryRule, CompiledRule, compile_rules
from .text import merchant_key as _merchant_key

_logger = get_logger("spend_rewards.classify")


class Classifier:
    """First-match-wins classifier over a compiled rule table."""

    def __init__(
        self,
        rules: Iterable[CategoryRule] = DEFAULT_RULES,
        *,
        version: str = RULES_VERSION,
        fallback: Bucket = CATCH_ALL,
    ) -> None:
        self._compiled: tuple[CompiledRule, ...] = compile_rules(rules)
        self.version = version
        self.fallback = fallback

    @property
    def rules(self) -> tuple[CategoryRule, ...]:
        return tuple(c.rule for c in self._compiled)

    def _first_match(self, key: str, raw: str | None) -> CompiledRule | None:
        raw_l = raw.lower() if raw else None
        for c in self._compiled:
            if c.rule.target == "raw":
                if raw_l is not None and c.regex.search(raw_l):
                    return c
            elif key and c.regex.search(key):
                return c
        return None

    def explain(
        self, merchant_key: str | None, raw_description: str | None = None
    ) -> CompiledRule | None:
        """Return the rule that decides the bucket, or ``None`` for the fallback."""

        return self._first_match(_merchant_key(merchant_key), raw_description)

    def classify(self, merchant_key: str | None, raw_description: str | None = None) -> Bucket:
        """Return exactly one bucket for the given merchant key.

        ``merchant_key`` is re-normalized, so raw description text is accepted
        as well. ``raw_description`` feeds rules that target the original text.
        """

        hit = self.explain(merchant_key, raw_description)
        if hit is None:
            _logger.debug("no rule matched %r; using %s", merchant_key, self.fallback)
            return self.fallback
        return hit.rule.bucket


_DEFAULT = Classifier()


def default_classifier() -> Classifier:
    """The process-wide classifier over :data:`~spend_rewards.rules.DEFAULT_RULES`."""

    return _DEFAULT


def classify(description: str | None) -> Bucket:
    """Convenience wrapper: classify free text with the default rule table."""

    return _DEFAULT.classify(description, description)


__all__ = ["Classifier", "default_classifier", "classify"]
