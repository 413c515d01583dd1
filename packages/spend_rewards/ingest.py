"""Statement loading for CLI commands and batch runs.

Two input shapes are supported:

- JSON: a single statement object, a list of statement objects, or an object
  with a ``"statements"`` list. Each statement carries ``bank_code``,
  optional ``statement_id``/``card_last4``/``period_start``/``period_end`` and
  a ``transactions`` list of ``{description, amount, date, type?, id?}``.
- CSV: one statement per file, with header columns ``Date``, ``Description``,
  ``Amount`` and optional ``Type``/``Id`` (case-insensitive). Card metadata
  comes from the caller.
"""

from __future__ import annotations

import csv
import json
from collections.abc import Mapping
from os import PathLike
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .errors import IngestError
from .logging_setup import get_logger
from .models import RawTransaction, Statement

_logger = get_logger("spend_rewards.ingest")

_STATEMENTS = TypeAdapter(list[Statement])

_CSV_REQUIRED = ("date", "description", "amount")


def parse_statements(data: Any) -> list[Statement]:
    """Validate decoded JSON into statements."""

    if isinstance(data, Mapping) and "statements" in data:
        data = data["statements"]
    elif isinstance(data, Mapping):
        data = [data]
    try:
        return _STATEMENTS.validate_python(data)
    except ValidationError as e:
        raise IngestError(f"invalid statement data: {e}") from e


def load_statements_json(path: str | PathLike[str]) -> list[Statement]:
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise IngestError(f"cannot read statements from {p}: {e}") from e
    statements = parse_statements(data)
    _logger.info(
        "loaded %d statement(s), %d record(s) from %s",
        len(statements),
        sum(len(s.transactions) for s in statements),
        p,
    )
    return statements


def _read_csv(p: Path) -> tuple[list[str], list[dict[str, str | None]]]:
    with p.open(encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        return list(reader.fieldnames or []), list(reader)


def load_statement_csv(
    path: str | PathLike[str],
    *,
    bank_code: str,
    card_last4: str | None = None,
    statement_id: str | None = None,
) -> Statement:
    """Read a simple CSV export as one statement.

    ``statement_id`` defaults to the file name so re-importing the same file
    de-duplicates against the earlier import.
    """

    p = Path(path)
    try:
        fieldnames, rows = _read_csv(p)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise IngestError(f"cannot read CSV statement {p}: {e}") from e

    headers = {h.strip().lower(): h for h in fieldnames if h}
    if not headers:
        raise IngestError(f"CSV appears to have no header row: {p}")
    missing = [h for h in _CSV_REQUIRED if h not in headers]
    if missing:
        raise IngestError(f"CSV {p} is missing column(s): {', '.join(missing)}")

    def col(row: Mapping[str, str | None], name: str) -> str | None:
        src = headers.get(name)
        return row.get(src) if src is not None else None

    records = [
        RawTransaction(
            description=col(row, "description") or "",
            amount=col(row, "amount") or "",
            date=col(row, "date") or "",
            type=col(row, "type"),
            id=col(row, "id"),
        )
        for row in rows
    ]

    try:
        statement = Statement(
            bank_code=bank_code,
            statement_id=statement_id or p.name,
            card_last4=card_last4,
            transactions=records,
        )
    except ValidationError as e:
        raise IngestError(f"invalid statement metadata for {p}: {e}") from e
    _logger.info("loaded %d record(s) from %s", len(records), p)
    return statement


def load_statements(
    path: str | PathLike[str],
    *,
    bank_code: str | None = None,
    card_last4: str | None = None,
) -> list[Statement]:
    """Load statements from a ``.json`` or ``.csv`` file.

    CSV input requires ``bank_code``.
    """

    p = Path(path)
    if p.suffix.lower() == ".csv":
        if not bank_code:
            raise IngestError("bank code is required for CSV input")
        return [load_statement_csv(p, bank_code=bank_code, card_last4=card_last4)]
    return load_statements_json(p)


__all__ = [
    "parse_statements",
    "load_statements_json",
    "load_statement_csv",
    "load_statements",
]
