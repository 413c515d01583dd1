"""Merchant text normalization shared by the normalizer and the classifier."""

from __future__ import annotations

import re
import unicodedata

_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)


def merchant_key(description: str | None) -> str:
    """Lower-cased, punctuation-stripped, whitespace-collapsed description.

    Punctuation becomes a space so ``AMAZON.IN`` yields ``amazon in``.
    """

    if not description:
        return ""
    s = unicodedata.normalize("NFKC", description).casefold()
    s = _PUNCT_RE.sub(" ", s).replace("_", " ")
    return " ".join(s.split())


__all__ = ["merchant_key"]
