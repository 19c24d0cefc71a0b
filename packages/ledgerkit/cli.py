"""CLI for the ``ledgerkit`` package.

A Typer-based console interface over the parser and reports. The root
callback loads a local ``.env`` with ``python-dotenv``, reads settings from
the environment, configures logging, and stores the journal path for the
subcommands. Parsing and report logic live in the library modules.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import typer
from dotenv import load_dotenv
from typer.models import ArgumentInfo, OptionInfo

from .accounts import resolve_transaction_aliases
from .config import LedgerSettings, load_settings
from .declarations import (
    extract_commodity_declarations,
    extract_payee_declarations,
    extract_tag_declarations,
    list_accounts,
    list_commodities,
    list_payees,
    list_tags,
    undeclared_accounts,
    undeclared_commodities,
    undeclared_payees,
    undeclared_tags,
)
from .errors import LedgerParseError
from .formatting import format_transactions
from .journal import expand_includes, parse_file
from .logging_setup import configure_logging, get_logger
from .models import Journal
from .lexer import parse_date
from .reports import (
    balance,
    budget_report,
    currency_positions,
    forecast_balance,
    format_balance,
    format_budget_report,
    format_register,
    register,
)
from .timeclock import format_timeclock_report, parse_timeclock_entries, timeclock_report

_logger = get_logger("ledgerkit.cli")


@dataclass(frozen=True, slots=True)
class _State:
    file: Path | None
    settings: LedgerSettings


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


def _report_parse_error(err: LedgerParseError, fallback_file: str) -> typer.Exit:
    if err.is_include_error:
        message = f"{err.reason}: {err.filename}"
        if err.detail:
            message += f" ({err.detail})"
    else:
        location = f"{err.file or fallback_file}:{err.line}"
        message = f"failed to parse ledger file {location}: {err.reason}"
        if err.detail:
            message += f" ({err.detail})"
    typer.echo(f"Error: {message}", err=True)
    # Innermost include site first.
    for file, line in reversed(err.import_chain or ()):
        typer.echo(f"    imported from {file}:{line}", err=True)
    return typer.Exit(1)


def _source(ctx: typer.Context) -> tuple[Path, LedgerSettings]:
    state = ctx.obj
    if not isinstance(state, _State) or state.file is None:
        raise _fail("no ledger file given; pass --file or set LEDGER_FILE")
    return state.file, state.settings


def _expanded_text(file: Path, settings: LedgerSettings) -> str:
    try:
        text = file.read_text(encoding="utf-8")
        return expand_includes(
            text,
            base_dir=file.parent,
            source_file=file.name,
            settings=settings,
        )
    except LedgerParseError as e:
        raise _report_parse_error(e, str(file)) from e
    except (OSError, UnicodeDecodeError) as e:
        raise _fail(f"cannot read {file}: {e}") from e


def _strict_checks(text: str, journal: Journal) -> None:
    txns = journal.transactions
    checks = (
        ("account", undeclared_accounts(txns, journal.accounts)),
        ("payee", undeclared_payees(txns, extract_payee_declarations(text))),
        ("commodity", undeclared_commodities(txns, extract_commodity_declarations(text))),
        ("tag", undeclared_tags(txns, extract_tag_declarations(text))),
    )
    for kind, names in checks:
        if names:
            raise _fail(f"undeclared {kind}: {names[0]}")


def _load(ctx: typer.Context) -> Journal:
    file, settings = _source(ctx)
    try:
        journal = parse_file(file, settings=settings)
    except LedgerParseError as e:
        raise _report_parse_error(e, str(file)) from e
    _logger.debug("cli:loaded file=%s transactions=%d", file, len(journal.transactions))
    if settings.strict:
        _strict_checks(_expanded_text(file, settings), journal)
    return journal


def _resolved(journal: Journal) -> list:
    return resolve_transaction_aliases(journal.transactions, journal.accounts)


def _compile(pattern: str | None) -> re.Pattern[str] | None:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise _fail(f"invalid account pattern {pattern!r}: {e}") from e


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Parse, validate and report on plain-text ledger journals. "
        "Loads settings from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects these when used as default values below.
FILE_OPTION: OptionInfo = typer.Option(
    None,
    "--file",
    "-f",
    envvar="LEDGER_FILE",
    help="Path to the ledger journal.",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handlers report missing files themselves
)
STRICT_OPTION: OptionInfo = typer.Option(
    None,
    "--strict/--no-strict",
    help="Fail on undeclared accounts, payees, commodities or tags (env LEDGERKIT_STRICT).",
)
LOG_LEVEL_OPTION: OptionInfo = typer.Option(
    None, "--log-level", help="Log level (env LEDGERKIT_LOG_LEVEL, default INFO)."
)
PATTERN_ARGUMENT: ArgumentInfo = typer.Argument(
    None, help="Regular expression selecting accounts."
)
EMPTY_OPTION: OptionInfo = typer.Option(False, "--empty", "-E", help="Show zero balances.")
DATE_OPTION: OptionInfo = typer.Option(
    None, "--date", help="Any day of the month to report, YYYY/MM/DD (default today)."
)
MONTHS_OPTION: OptionInfo = typer.Option(
    1, "--months", min=0, help="Number of months of periodic budgets to apply."
)


@app.command("check")
def check_cmd(ctx: typer.Context) -> None:
    """Parse the journal and report the transaction count."""

    journal = _load(ctx)
    typer.echo(f"OK: {len(journal.transactions)} transactions")


@app.command("balance")
def balance_cmd(
    ctx: typer.Context,
    pattern: str | None = PATTERN_ARGUMENT,
    *,
    empty: bool = EMPTY_OPTION,
) -> None:
    """Show per-account balances."""

    journal = _load(ctx)
    matcher = _compile(pattern)
    txns = _resolved(journal)
    balances = balance(txns)
    if matcher is not None:
        balances = {a: v for a, v in balances.items() if matcher.search(a)}
    text = format_balance(balances, show_empty=empty, positions=currency_positions(txns))
    typer.echo(text, nl=False)


@app.command("register")
def register_cmd(ctx: typer.Context, pattern: str | None = PATTERN_ARGUMENT) -> None:
    """Show postings with a running balance."""

    journal = _load(ctx)
    try:
        rows = register(_resolved(journal), pattern)
    except ValueError as e:
        raise _fail(str(e)) from e
    typer.echo(format_register(rows), nl=False)


@app.command("budget")
def budget_cmd(ctx: typer.Context, *, date: str | None = DATE_OPTION) -> None:
    """Compare a month of postings with the periodic (``~``) budgets."""

    journal = _load(ctx)
    try:
        when = parse_date(date) if date else None
    except LedgerParseError as e:
        raise _fail(f"invalid date {date!r}: {e.reason}") from e
    rows = budget_report(_resolved(journal), when)
    typer.echo(format_budget_report(rows), nl=False)


@app.command("forecast")
def forecast_cmd(ctx: typer.Context, *, months: int = MONTHS_OPTION) -> None:
    """Balances after applying the periodic budgets for some months."""

    journal = _load(ctx)
    txns = _resolved(journal)
    balances = forecast_balance(txns, months)
    typer.echo(format_balance(balances, positions=currency_positions(txns)), nl=False)


@app.command("print")
def print_cmd(ctx: typer.Context) -> None:
    """Print transactions as normalized ledger text."""

    journal = _load(ctx)
    typer.echo(format_transactions(journal.transactions), nl=False)


@app.command("accounts")
def accounts_cmd(ctx: typer.Context) -> None:
    journal = _load(ctx)
    for name in list_accounts(journal.transactions, journal.accounts):
        typer.echo(name)


@app.command("payees")
def payees_cmd(ctx: typer.Context) -> None:
    for name in list_payees(_load(ctx).transactions):
        typer.echo(name)


@app.command("commodities")
def commodities_cmd(ctx: typer.Context) -> None:
    for name in list_commodities(_load(ctx).transactions):
        typer.echo(name)


@app.command("tags")
def tags_cmd(ctx: typer.Context) -> None:
    for name in list_tags(_load(ctx).transactions):
        typer.echo(name)


@app.command("timeclock")
def timeclock_cmd(ctx: typer.Context) -> None:
    """Total hours per account from ``i``/``o`` timeclock lines."""

    file, settings = _source(ctx)
    entries = parse_timeclock_entries(_expanded_text(file, settings))
    typer.echo(format_timeclock_report(timeclock_report(entries)), nl=False)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    file: Path | None = FILE_OPTION,
    strict: bool | None = STRICT_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding
    already-set environment variables), resolves settings and configures
    logging before any subcommand runs.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    try:
        settings = load_settings()
    except ValueError as e:
        raise _fail(f"invalid configuration: {e}") from e
    if strict is not None:
        settings = settings.model_copy(update={"strict": strict})

    try:
        configure_logging(log_level or settings.log_level)
    except ValueError as e:
        raise _fail(str(e)) from e

    ctx.obj = _State(file=file, settings=settings)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
