"""Balance, register, budget and forecast reports over parsed transactions.

Balance and register consume regular transactions only; automated and
periodic templates never contribute. Budget and forecast are the consumers of
periodic (``~``) templates: each template posting is scaled to a monthly
amount by its period and compared with, or added to, the regular postings.

Amounts are rendered on the side of the number their commodity was first
written on in the journal, so ``10 CHF`` stays ``10.00 CHF``. Callers wanting
alias-transparent output should pass transactions through
:func:`~ledgerkit.accounts.resolve_transaction_aliases` first.
"""

from __future__ import annotations

import datetime as dt
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TypeAlias

from .formatting import format_amount_for_currency
from .models import CurrencyPosition, Transaction, TransactionKind

Balances: TypeAlias = dict[str, dict[str, float]]
"""``{account: {currency: total}}``; a missing currency is keyed ``""``."""

Positions: TypeAlias = Mapping[str, CurrencyPosition | None]

_ZERO = 0.005
_SEPARATOR = "-" * 20

# Occurrences per month for each recognised period keyword.
_PERIOD_FACTORS = {
    "daily": 365 / 12,
    "weekly": 52 / 12,
    "biweekly": 26 / 12,
    "monthly": 1.0,
    "bimonthly": 1 / 2,
    "quarterly": 1 / 3,
    "yearly": 1 / 12,
    "annually": 1 / 12,
}
_EVERY = {
    "day": "daily",
    "week": "weekly",
    "month": "monthly",
    "quarter": "quarterly",
    "year": "yearly",
}


def _regular(transactions: Iterable[Transaction]) -> Iterable[Transaction]:
    return (t for t in transactions if t.kind is TransactionKind.REGULAR)


def _fmt(value: float, currency: str, positions: Positions | None = None) -> str:
    if abs(value) < _ZERO:
        value = 0.0
    position = (positions or {}).get(currency)
    return format_amount_for_currency(value, currency or None, position)


def currency_positions(
    transactions: Iterable[Transaction],
) -> dict[str, CurrencyPosition | None]:
    """First-seen ``currency_position`` for every commodity in ``transactions``."""

    positions: dict[str, CurrencyPosition | None] = {}
    for txn in transactions:
        for p in txn.postings:
            if p.amount is not None and p.amount.currency:
                positions.setdefault(p.amount.currency, p.amount.currency_position)
    return positions


# ---------------------------------------------------------------------------
# Balance
# ---------------------------------------------------------------------------


def balance(transactions: Iterable[Transaction]) -> Balances:
    balances: Balances = {}
    for txn in _regular(transactions):
        for p in txn.postings:
            if p.amount is None:
                continue
            per_currency = balances.setdefault(p.account, {})
            key = p.amount.currency or ""
            per_currency[key] = per_currency.get(key, 0.0) + p.amount.value
    return balances


def format_balance(
    balances: Mapping[str, Mapping[str, float]],
    show_empty: bool = False,
    positions: Positions | None = None,
) -> str:
    """Render balances one line per account and currency, then grand totals.

    Accounts whose totals are all zero are hidden unless ``show_empty``. The
    total section always has at least one line (``0`` for an empty report).
    ``positions`` maps a commodity to the side it is written on; commodities
    missing from it are written before the number.
    """

    lines: list[str] = []
    totals: dict[str, float] = {}

    for account in sorted(balances):
        per_currency = balances[account]
        nonzero = {c: v for c, v in per_currency.items() if abs(v) >= _ZERO}
        for currency, value in per_currency.items():
            totals[currency] = totals.get(currency, 0.0) + value
        shown = per_currency if show_empty else nonzero
        for currency in sorted(shown):
            lines.append(f"{_fmt(shown[currency], currency, positions):>20}  {account}")

    lines.append(_SEPARATOR)
    if totals:
        lines.extend(f"{_fmt(totals[c], c, positions):>20}" for c in sorted(totals))
    else:
        lines.append(f"{'0':>20}")
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RegisterRow:
    date: dt.date | None
    payee: str | None
    account: str
    value: float
    currency: str
    running: float
    position: CurrencyPosition | None = None


def register(
    transactions: Iterable[Transaction], account_pattern: str | None = None
) -> list[RegisterRow]:
    """Postings with a running balance per currency.

    ``account_pattern`` is a regular expression searched in each posting
    account; an invalid pattern raises ``ValueError``.
    """

    matcher = None
    if account_pattern:
        try:
            matcher = re.compile(account_pattern)
        except re.error as e:
            raise ValueError(f"invalid account pattern {account_pattern!r}: {e}") from e

    running: dict[str, float] = {}
    positions: dict[str, CurrencyPosition | None] = {}
    rows: list[RegisterRow] = []
    for txn in _regular(transactions):
        for p in txn.postings:
            if p.amount is None:
                continue
            if matcher is not None and matcher.search(p.account) is None:
                continue
            currency = p.amount.currency or ""
            running[currency] = running.get(currency, 0.0) + p.amount.value
            rows.append(
                RegisterRow(
                    date=txn.date,
                    payee=txn.payee,
                    account=p.account,
                    value=p.amount.value,
                    currency=currency,
                    running=running[currency],
                    position=positions.setdefault(currency, p.amount.currency_position),
                )
            )
    return rows


def format_register(rows: Iterable[RegisterRow]) -> str:
    lines = []
    for row in rows:
        date = row.date.strftime("%Y/%m/%d") if row.date else ""
        payee = (row.payee or "")[:24]
        account = row.account[:30]
        positions = {row.currency: row.position}
        lines.append(
            f"{date:<10} {payee:<24} {account:<30} "
            f"{_fmt(row.value, row.currency, positions):>14} "
            f"{_fmt(row.running, row.currency, positions):>14}"
        )
    return "\n".join(lines) + ("\n" if lines else "")


# ---------------------------------------------------------------------------
# Budget and forecast
# ---------------------------------------------------------------------------


def period_factor(period: str | None) -> float | None:
    """Occurrences per month of a periodic template, ``None`` if unrecognised.

    Accepts the keyword forms (``Monthly``, ``Biweekly``, ``Yearly``, ...) and
    ``every day|week|month|quarter|year``, case-insensitively. Anything after
    the period words (``Monthly from 2024/01``) is ignored.
    """

    words = (period or "").lower().split()
    if not words:
        return None
    if words[0] == "every":
        key = _EVERY.get(words[1]) if len(words) > 1 else None
    else:
        key = words[0]
    return _PERIOD_FACTORS.get(key) if key else None


def _monthly_budgets(transactions: Iterable[Transaction]) -> dict[tuple[str, str], float]:
    budgets: dict[tuple[str, str], float] = {}
    for txn in transactions:
        if txn.kind is not TransactionKind.PERIODIC:
            continue
        factor = period_factor(txn.period)
        if factor is None:
            continue
        for p in txn.postings:
            if p.amount is None:
                continue
            key = (p.account, p.amount.currency or "")
            budgets[key] = budgets.get(key, 0.0) + p.amount.value * factor
    return budgets


def _within(account: str, parent: str) -> bool:
    return account == parent or account.startswith(parent + ":")


@dataclass(frozen=True, slots=True)
class BudgetRow:
    account: str
    currency: str
    actual: float
    budget: float
    remaining: float
    position: CurrencyPosition | None = None


def budget_report(
    transactions: Iterable[Transaction], date: dt.date | None = None
) -> list[BudgetRow]:
    """Compare one month of spending with the periodic templates.

    The month is the calendar month containing ``date`` (today by default).
    Each template posting is scaled to a monthly budget by
    :func:`period_factor`; templates with an unrecognised period are skipped.
    ``actual`` sums regular postings in that month to the budgeted account or
    any of its sub-accounts, in the budgeted currency.
    """

    txns = list(transactions)
    when = date or dt.date.today()
    start = when.replace(day=1)
    end = (start + dt.timedelta(days=32)).replace(day=1)

    budgets = _monthly_budgets(txns)
    positions = currency_positions(txns)
    actuals = dict.fromkeys(budgets, 0.0)
    for txn in _regular(txns):
        if txn.date is None or not start <= txn.date < end:
            continue
        for p in txn.postings:
            if p.amount is None:
                continue
            currency = p.amount.currency or ""
            for account, budget_currency in budgets:
                if budget_currency == currency and _within(p.account, account):
                    actuals[(account, currency)] += p.amount.value

    return [
        BudgetRow(
            account=account,
            currency=currency,
            actual=actuals[(account, currency)],
            budget=budgets[(account, currency)],
            remaining=budgets[(account, currency)] - actuals[(account, currency)],
            position=positions.get(currency),
        )
        for account, currency in sorted(budgets)
    ]


def format_budget_report(rows: Iterable[BudgetRow]) -> str:
    lines = [f"{'Actual':>14} {'Budget':>14} {'Remaining':>14}  Account"]
    for row in rows:
        positions = {row.currency: row.position}
        lines.append(
            f"{_fmt(row.actual, row.currency, positions):>14} "
            f"{_fmt(row.budget, row.currency, positions):>14} "
            f"{_fmt(row.remaining, row.currency, positions):>14}  {row.account}"
        )
    return "\n".join(lines) + "\n"


def forecast_balance(transactions: Iterable[Transaction], months: int = 1) -> Balances:
    """Balances after applying the periodic templates for ``months`` months.

    Starts from :func:`balance` and adds each template posting scaled by its
    :func:`period_factor` and ``months``. Raises ``ValueError`` for a negative
    ``months``.
    """

    if months < 0:
        raise ValueError(f"months must be >= 0, got {months}")
    txns = list(transactions)
    balances = balance(txns)
    for (account, currency), monthly in _monthly_budgets(txns).items():
        per_currency = balances.setdefault(account, {})
        per_currency[currency] = per_currency.get(currency, 0.0) + monthly * months
    return balances


__all__ = [
    "Balances",
    "BudgetRow",
    "RegisterRow",
    "balance",
    "budget_report",
    "currency_positions",
    "forecast_balance",
    "format_balance",
    "format_budget_report",
    "format_register",
    "period_factor",
    "register",
]
