"""Raw statement records → normalized :class:`~spend_rewards.models.Transaction`.

Amount parsing follows the same iterative strip-the-markers approach used for
CSV exports elsewhere in the workspace, extended for card statements: trailing
``Cr``/``Dr`` markers, rupee/``Rs.``/``INR`` prefixes and Indian digit
grouping (``1,23,456.00``). Dates are parsed day-first unless the statement's
bank profile says otherwise.

Records that cannot be parsed are not dropped silently: they are returned as
:class:`~spend_rewards.models.TransactionIssue` values alongside the good
transactions and logged at WARNING.
"""

from __future__ import annotations

import hashlib
import json
import re
import unicodedata
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .classify import Classifier, default_classifier
from .errors import MalformedAmount, MalformedDate, RecordError
from .logging_setup import get_logger
from .models import (
    Direction,
    NormalizedStatement,
    RawTransaction,
    Statement,
    Transaction,
    TransactionIssue,
)
from .money import to_money
from .text import merchant_key

_logger = get_logger("spend_rewards.normalizers")

# ---------------------------------------------------------------------------
# Bank profiles (date conventions)
# ---------------------------------------------------------------------------

_DAY_FIRST_FORMATS: tuple[str, ...] = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d/%m/%y",
    "%d-%m-%y",
    "%d %b %Y",
    "%d-%b-%Y",
    "%d %b %y",
    "%d-%b-%y",
    "%d %B %Y",
    "%d%m%Y",
)
_MONTH_FIRST_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m/%d/%y",
    "%b %d %Y",
    "%b %d, %Y",
)
_ISO_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%Y/%m/%d")


@dataclass(frozen=True, slots=True)
class BankProfile:
    """Per-issuer parsing conventions.

    ``date_formats`` are tried first, in order, before the generic fallbacks.
    A month-first profile therefore wins on ambiguous inputs such as
    ``03/04/2025``.
    """

    code: str
    date_formats: tuple[str, ...] = _DAY_FIRST_FORMATS

    def candidate_formats(self) -> tuple[str, ...]:
        seen: list[str] = []
        for fmt in (*self.date_formats, *_ISO_FORMATS, *_DAY_FIRST_FORMATS):
            if fmt not in seen:
                seen.append(fmt)
        return tuple(seen)


GENERIC_PROFILE = BankProfile(code="generic")

BANK_PROFILES: dict[str, BankProfile] = {
    p.code: p
    for p in (
        BankProfile("hdfc"),
        BankProfile("icici"),
        BankProfile("sbi"),
        BankProfile("axis"),
        BankProfile("kotak"),
        BankProfile("yes"),
        BankProfile("indusind"),
        BankProfile("rbl"),
        BankProfile("idfc"),
        BankProfile("au"),
        BankProfile("hsbc"),
        BankProfile("sc"),
        BankProfile("amex", date_formats=(*_DAY_FIRST_FORMATS, *_MONTH_FIRST_FORMATS)),
        BankProfile("us", date_formats=_MONTH_FIRST_FORMATS),
    )
}


def profile_for(bank_code: str | None) -> BankProfile:
    if not bank_code:
        return GENERIC_PROFILE
    return BANK_PROFILES.get(bank_code.strip().lower(), GENERIC_PROFILE)


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------

_CURRENCY_PREFIXES: tuple[str, ...] = ("₹", "rs.", "rs", "inr", "$", "usd")
_MARKER_RE = re.compile(r"\s*(cr|dr)\.?\s*$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ParsedAmount:
    magnitude: Decimal
    negative: bool
    marker: Direction | None


def parse_amount(raw: str | None) -> ParsedAmount:
    """Parse statement amount text into a magnitude plus sign hints.

    Raises :class:`MalformedAmount` when the text is empty or non-numeric.
    """

    if raw is None:
        raise MalformedAmount("amount is required", raw_value=raw)
    s = unicodedata.normalize("NFKC", str(raw)).strip()
    if not s:
        raise MalformedAmount("amount is empty", raw_value=raw)

    marker: Direction | None = None
    m = _MARKER_RE.search(s)
    if m:
        marker = Direction.CREDIT if m.group(1).lower() == "cr" else Direction.DEBIT
        s = s[: m.start()].strip()

    negative = False
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        lowered = s.lower()
        for prefix in _CURRENCY_PREFIXES:
            if lowered.startswith(prefix):
                s = s[len(prefix) :].lstrip()
                changed = True
                break
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").replace(" ", "")
    if not s:
        raise MalformedAmount(f"invalid amount: {raw!r}", raw_value=raw)
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise MalformedAmount(f"invalid amount: {raw!r}", raw_value=raw) from exc
    if not d.is_finite():
        raise MalformedAmount(f"invalid amount: {raw!r}", raw_value=raw)
    if d < 0:
        negative = True
    try:
        magnitude = to_money(abs(d))
    except InvalidOperation as exc:
        raise MalformedAmount(f"amount out of range: {raw!r}", raw_value=raw) from exc
    return ParsedAmount(magnitude=magnitude, negative=negative, marker=marker)


def parse_date(raw: str | None, profile: BankProfile = GENERIC_PROFILE) -> date:
    """Parse a statement date using ``profile``'s conventions.

    A trailing time part (``2025-03-04T10:00:00``, ``04/03/2025 10:22``) is
    ignored. Raises :class:`MalformedDate` when no format matches.
    """

    if raw is None:
        raise MalformedDate("date is required", raw_value=raw)
    s = " ".join(str(raw).strip().split())
    if not s:
        raise MalformedDate("date is empty", raw_value=raw)
    if "T" in s and s[:4].isdigit():
        s = s.split("T", 1)[0]

    candidates = [s]
    # Keep named-month forms ("05 Mar 2025") intact; otherwise drop a time part.
    head = s.split(" ", 1)[0]
    if head != s:
        candidates.append(head)

    for text in candidates:
        for fmt in profile.candidate_formats():
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
    raise MalformedDate(f"unrecognized date: {raw!r}", raw_value=raw)


_DEBIT_FLAGS = frozenset({"dr", "debit", "d", "purchase", "sale", "db"})
_CREDIT_FLAGS = frozenset({"cr", "credit", "c", "refund", "return"})

CREDIT_MARKERS: tuple[str, ...] = (
    "payment received",
    "payment thank you",
    "thank you for your payment",
    "refund",
    "reversal",
    "cashback",
    "chargeback",
)
_CREDIT_MARKER_RE = re.compile(
    r"(?<!\w)(?:" + "|".join(re.escape(m) for m in CREDIT_MARKERS) + r")(?!\w)"
)


def _flag_direction(flag: str | None) -> Direction | None:
    if flag is None:
        return None
    f = flag.strip().lower().rstrip(".")
    if f in _DEBIT_FLAGS:
        return Direction.DEBIT
    if f in _CREDIT_FLAGS:
        return Direction.CREDIT
    _logger.debug("ignoring unrecognized transaction type flag %r", flag)
    return None


def infer_direction(
    *, flag: str | None, parsed: ParsedAmount, description_key: str
) -> Direction:
    """Resolve debit/credit.

    Precedence: explicit type flag, then an amount marker (``Cr``/``Dr``) or a
    negative sign, then credit markers in the description. Default is debit.
    """

    explicit = _flag_direction(flag)
    if explicit is not None:
        if parsed.negative:
            raise MalformedAmount(
                "negative amount conflicts with explicit type flag", raw_value=flag
            )
        return explicit
    if parsed.marker is not None:
        return parsed.marker
    if parsed.negative:
        return Direction.CREDIT
    if _CREDIT_MARKER_RE.search(description_key):
        return Direction.CREDIT
    return Direction.DEBIT


def _fingerprint(
    *,
    source_id: str,
    ordinal: int,
    when: date,
    amount: Decimal,
    direction: Direction,
    description: str,
) -> str:
    payload = {
        "source": source_id,
        "ordinal": ordinal,
        "date": when.isoformat(),
        "amount": f"{amount:.2f}",
        "direction": direction.value,
        "description": description,
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Record and statement normalization
# ---------------------------------------------------------------------------


def normalize_transaction(
    raw: RawTransaction,
    *,
    source_id: str,
    ordinal: int,
    bank_code: str | None = None,
    card_last4: str | None = None,
    classifier: Classifier | None = None,
) -> Transaction:
    """Normalize and classify one raw record.

    Raises :class:`MalformedAmount` or :class:`MalformedDate`; callers that
    process whole statements should use :func:`normalize_statement`, which
    collects those failures instead.
    """

    profile = profile_for(bank_code)
    parsed = parse_amount(raw.amount)
    when = parse_date(raw.date, profile)
    key = merchant_key(raw.description)
    direction = infer_direction(flag=raw.type, parsed=parsed, description_key=key)
    bucket = (classifier or default_classifier()).classify(key, raw.description)

    txn_id = raw.id or _fingerprint(
        source_id=source_id,
        ordinal=ordinal,
        when=when,
        amount=parsed.magnitude,
        direction=direction,
        description=raw.description,
    )
    return Transaction(
        date=when,
        amount=parsed.magnitude,
        direction=direction,
        raw_description=raw.description,
        merchant_key=key,
        bucket=bucket,
        source_id=source_id,
        ordinal=ordinal,
        txn_id=txn_id,
        card_last4=card_last4,
        bank_code=bank_code,
    )


def normalize_statement(
    statement: Statement, *, classifier: Classifier | None = None
) -> NormalizedStatement:
    """Normalize every record of ``statement``, collecting per-record issues."""

    clf = classifier or default_classifier()
    source_id = statement.source_id
    good: list[Transaction] = []
    issues: list[TransactionIssue] = []

    for ordinal, raw in enumerate(statement.transactions):
        try:
            good.append(
                normalize_transaction(
                    raw,
                    source_id=source_id,
                    ordinal=ordinal,
                    bank_code=statement.bank_code,
                    card_last4=statement.card_last4,
                    classifier=clf,
                )
            )
        except RecordError as e:
            _logger.warning(
                "excluding record %s#%d (%s): %s", source_id, ordinal, e.kind, e
            )
            issues.append(
                TransactionIssue(
                    source_id=source_id,
                    ordinal=ordinal,
                    kind=e.kind,
                    message=str(e),
                    raw=raw.model_dump(),
                )
            )

    _logger.debug(
        "normalized statement %s: %d ok, %d excluded", source_id, len(good), len(issues)
    )
    return NormalizedStatement(
        source_id=source_id, transactions=tuple(good), issues=tuple(issues)
    )


def normalize_statements(
    statements: Sequence[Statement], *, classifier: Classifier | None = None
) -> tuple[list[Transaction], list[TransactionIssue]]:
    """Normalize many statements; returns ``(transactions, issues)`` flattened."""

    txns: list[Transaction] = []
    issues: list[TransactionIssue] = []
    for st in statements:
        ns = normalize_statement(st, classifier=classifier)
        txns.extend(ns.transactions)
        issues.extend(ns.issues)
    return txns, issues


__all__ = [
    "BankProfile",
    "BANK_PROFILES",
    "GENERIC_PROFILE",
    "profile_for",
    "ParsedAmount",
    "parse_amount",
    "parse_date",
    "merchant_key",
    "CREDIT_MARKERS",
    "infer_direction",
    "normalize_transaction",
    "normalize_statement",
    "normalize_statements",
]
