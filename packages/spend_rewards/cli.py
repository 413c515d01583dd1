# ruff: noqa: I001
"""CLI for the ``spend_rewards`` package.

Typer console over the library: classify merchant text, inspect the rule
table, build monthly spend snapshots and run the reward optimizer.
Environment variables (``DATABASE_URL``, ``SPEND_REWARDS_*``) are loaded from a
local ``.env`` using ``python-dotenv`` before any command runs. Business logic
lives in ``spend_rewards.pipeline`` and the modules it composes.

Failures are reported as ``Error: ...`` on stderr with exit status 1.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .buckets import display_name, parse_bucket
from .config import Settings, load_settings
from .errors import SpendRewardsError
from .logging_setup import configure_logging
from .money import fmt_money

console = Console()


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(code=1)


def _emit_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _load_catalog(path: Path | None, settings: Settings):
    from .catalog import default_catalog_path, load_catalog

    chosen = path or (Path(settings.catalog_path) if settings.catalog_path else None)
    return load_catalog(chosen or default_catalog_path())


def _load_statements(path: Path, bank: str | None, last4: str | None):
    from .ingest import load_statements

    return load_statements(path, bank_code=bank, card_last4=last4)


def _snapshot_table(snapshot) -> Table:
    table = Table(title=f"Spend {snapshot.user_id} {snapshot.month}")
    table.add_column("Bucket")
    table.add_column("Spend", justify="right")
    for bucket, amount in snapshot.buckets.items():
        if amount:
            table.add_row(display_name(bucket), fmt_money(amount))
    table.add_row("Total", fmt_money(snapshot.total), style="bold")
    return table


def _result_table(result) -> Table:
    table = Table(title=f"Rewards {result.user_id} {result.month}")
    for col in ("Bucket", "Spend", "Actual", "Best", "Best card", "Missed"):
        table.add_column(col, justify="left" if col in ("Bucket", "Best card") else "right")
    for o in result.per_bucket:
        if not o.spend:
            continue
        table.add_row(
            display_name(o.bucket),
            fmt_money(o.spend),
            fmt_money(o.actual_reward),
            fmt_money(o.best_reward),
            o.best_card_id or "-",
            fmt_money(o.missed),
        )
    table.add_row(
        "Total",
        "",
        fmt_money(result.total_actual_reward),
        fmt_money(result.total_best_reward),
        "",
        fmt_money(result.total_missed),
        style="bold",
    )
    return table


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Categorize card spend into reward buckets and measure the reward missed "
        "against a catalog of card products."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
STATEMENTS_OPTION: OptionInfo = typer.Option(
    ...,
    "--statements",
    help="Statement file: JSON (one or many statements) or CSV (needs --bank).",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports a readable error
)
USER_OPTION: OptionInfo = typer.Option(..., "--user-id", help="User identifier.")
MONTH_OPTION: OptionInfo = typer.Option(
    ..., "--month", help="Month as YYYY-MM. Defaults to every month with debits."
)
BANK_OPTION: OptionInfo = typer.Option(..., "--bank", help="Bank code for CSV input.")
LAST4_OPTION: OptionInfo = typer.Option(..., "--last4", help="Card last 4 digits for CSV input.")
JSON_OPTION: OptionInfo = typer.Option(..., "--json", help="Print JSON instead of tables.")
PERSIST_OPTION: OptionInfo = typer.Option(
    ..., "--persist", help="Upsert snapshots and results into the database."
)
DB_URL_OPTION: OptionInfo = typer.Option(
    ..., "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


def _persist(reports: list, database_url: str | None) -> None:
    from sqlalchemy.exc import SQLAlchemyError

    from db.client import session_scope

    from .persistence import save_month, upsert_snapshot

    try:
        with session_scope(database_url=database_url) as session:
            for r in reports:
                if hasattr(r, "result"):
                    save_month(session, r.snapshot, r.result)
                else:
                    upsert_snapshot(session, r)
    except (RuntimeError, SQLAlchemyError) as e:
        raise _fail(f"persistence failed: {e}") from e


@app.command("classify")
def classify_cmd(
    descriptions: Annotated[list[str], typer.Argument(help="Merchant descriptions.")],
    explain: Annotated[bool, typer.Option(help="Show the deciding rule.")] = False,
) -> None:
    """Print ``<bucket>\\t<description>`` for each description."""

    from .classify import default_classifier

    clf = default_classifier()
    for text in descriptions:
        bucket = clf.classify(text, text)
        line = f"{bucket.value}\t{text}"
        if explain:
            hit = clf.explain(text, text)
            why = f"#{hit.position} {hit.rule.kind}:{hit.rule.pattern}" if hit else "fallback"
            line += f"\t{why}"
        typer.echo(line)


@app.command("rules")
def rules_cmd(
    bucket: Annotated[
        str | None, typer.Option(help="Only list rules for this bucket.")
    ] = None,
) -> None:
    """List the ordered classification rules."""

    from .classify import default_classifier
    from .rules import RULES_VERSION

    only = None
    if bucket is not None:
        try:
            only = parse_bucket(bucket)
        except SpendRewardsError as e:
            raise _fail(str(e)) from e

    table = Table(title=f"Classification rules {RULES_VERSION}")
    table.add_column("#", justify="right")
    table.add_column("Bucket")
    table.add_column("Kind")
    table.add_column("Target")
    table.add_column("Pattern")
    for pos, rule in enumerate(default_classifier().rules):
        if only is not None and rule.bucket is not only:
            continue
        table.add_row(str(pos), rule.bucket.value, rule.kind, rule.target, rule.pattern)
    console.print(table)


@app.command("snapshot")
def snapshot_cmd(
    statements: Annotated[Path, STATEMENTS_OPTION],
    *,
    user_id: Annotated[str, USER_OPTION] = "me",
    month: Annotated[str | None, MONTH_OPTION] = None,
    bank: Annotated[str | None, BANK_OPTION] = None,
    last4: Annotated[str | None, LAST4_OPTION] = None,
    as_json: Annotated[bool, JSON_OPTION] = False,
    persist: Annotated[bool, PERSIST_OPTION] = False,
    database_url: Annotated[str | None, DB_URL_OPTION] = None,
) -> None:
    """Aggregate debit spend per bucket for one or every month."""

    from .aggregate import aggregate_all, aggregate_month
    from .months import MonthKey
    from .normalizers import normalize_statements

    try:
        mk = MonthKey.parse(month) if month else None
    except ValueError as e:
        raise _fail(str(e)) from e

    try:
        loaded = _load_statements(statements, bank, last4)
        txns, issues = normalize_statements(loaded)
        if mk is not None:
            snapshots = [aggregate_month(txns, user_id=user_id, month=mk)]
        else:
            snapshots = list(aggregate_all(txns, user_id=user_id).values())
    except (SpendRewardsError, OSError) as e:
        raise _fail(str(e)) from e
    if persist:
        _persist(snapshots, database_url or load_settings().database_url)

    if as_json:
        _emit_json(
            {
                "snapshots": [s.to_record() for s in snapshots],
                "issues": [
                    {"source_id": i.source_id, "ordinal": i.ordinal, "kind": i.kind}
                    for i in issues
                ],
            }
        )
        return
    for s in snapshots:
        console.print(_snapshot_table(s))
    if issues:
        console.print(f"[yellow]{len(issues)} record(s) excluded[/yellow]")


@app.command("optimize")
def optimize_cmd(
    statements: Annotated[Path, STATEMENTS_OPTION],
    *,
    user_id: Annotated[str, USER_OPTION] = "me",
    month: Annotated[str | None, MONTH_OPTION] = None,
    catalog: Annotated[
        Path | None,
        typer.Option(help="Catalog JSON (default: SPEND_REWARDS_CATALOG or the sample)."),
    ] = None,
    card: Annotated[
        str | None, typer.Option(help="Catalog card id used for every bucket.")
    ] = None,
    registry: Annotated[
        Path | None,
        typer.Option(help="Card registry JSON mapping (bank, last4) to card ids."),
    ] = None,
    bank: Annotated[str | None, BANK_OPTION] = None,
    last4: Annotated[str | None, LAST4_OPTION] = None,
    as_json: Annotated[bool, JSON_OPTION] = False,
    persist: Annotated[bool, PERSIST_OPTION] = False,
    database_url: Annotated[str | None, DB_URL_OPTION] = None,
) -> None:
    """Compare actual rewards with the best catalog card, per bucket."""

    from .cards import CardRegistry
    from .months import MonthKey
    from .optimizer import CurrentCards
    from .pipeline import run_months

    settings = load_settings()
    try:
        months = [MonthKey.parse(month)] if month else None
    except ValueError as e:
        raise _fail(str(e)) from e
    if card is not None and registry is not None:
        raise _fail("use either --card or --registry, not both")

    try:
        cat = _load_catalog(catalog, settings)
    except SpendRewardsError as e:
        raise _fail(str(e)) from e
    if card is not None and not cat.has_card(card):
        raise _fail(f"unknown card id {card!r} for catalog {cat.version}")

    try:
        reg = CardRegistry.load(registry) if registry is not None else None
        loaded = _load_statements(statements, bank, last4)
        reports = run_months(
            loaded,
            user_id=user_id,
            catalog=cat,
            months=months,
            current=CurrentCards(default_card_id=card) if card is not None else None,
            registry=reg,
            settings=settings,
        )
    except (SpendRewardsError, OSError) as e:
        raise _fail(str(e)) from e
    if persist:
        _persist(reports, database_url or settings.database_url)

    if as_json:
        _emit_json({"catalog_version": cat.version, "months": [r.to_record() for r in reports]})
        return
    if not reports:
        console.print("[yellow]No debit activity found.[/yellow]")
        return
    for r in reports:
        console.print(_result_table(r.result))
        for insight in r.insights:
            console.print(f"[yellow]-[/yellow] {insight.message}")


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


__all__ = ["app"]


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
