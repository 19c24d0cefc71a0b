"""Auto-balancing and zero-sum validation of transactions.

``balance_postings`` infers at most one missing posting amount from its
siblings; ``validate_transaction`` then enforces the accounting invariants:

- at most one posting may lack an amount;
- a missing amount must be resolvable to a single currency;
- per-currency totals of a single-currency transaction net to zero.

Transactions spanning two or more currencies are accepted without any
exchange-rate check. Automated (``=``) templates are never validated because
their postings are multipliers applied to other transactions.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from .errors import LedgerParseError, ParseErrorKind
from .models import Amount, Posting, Transaction, TransactionKind

BALANCE_TOLERANCE = 0.01


def currency_totals(postings: Iterable[Posting]) -> dict[str | None, float]:
    """Sum posting values per currency in first-seen order, skipping missing amounts."""

    totals: dict[str | None, float] = {}
    for p in postings:
        if p.amount is None:
            continue
        totals[p.amount.currency] = totals.get(p.amount.currency, 0.0) + p.amount.value
    return totals


def _nonzero(totals: dict[str | None, float]) -> dict[str | None, float]:
    return {cur: total for cur, total in totals.items() if abs(total) >= BALANCE_TOLERANCE}


def _filled(postings: list[Posting], currency: str | None, total: float) -> Amount:
    sibling = next(
        p.amount for p in postings if p.amount is not None and p.amount.currency == currency
    )
    # ``+ 0.0`` turns ``-0.0`` into ``0.0``.
    value = round(-total, 10) + 0.0
    return Amount(value=value, currency=currency, currency_position=sibling.currency_position)


def _balance(postings: tuple[Posting, ...]) -> tuple[Posting, ...]:
    missing = [i for i, p in enumerate(postings) if p.amount is None]
    if len(missing) != 1:
        return postings

    siblings = [p for p in postings if p.amount is not None]
    if not siblings:
        return postings

    totals = currency_totals(siblings)
    nonzero = _nonzero(totals)
    if len(nonzero) > 1:
        return postings

    if nonzero:
        currency, total = next(iter(nonzero.items()))
    else:
        currency = siblings[0].amount.currency
        total = totals[currency]

    idx = missing[0]
    result = list(postings)
    result[idx] = replace(postings[idx], amount=_filled(siblings, currency, total))
    return tuple(result)


def balance_postings(transaction: Transaction) -> Transaction:
    """Return ``transaction`` with a single missing posting amount filled in.

    The missing posting receives the negated total of its siblings in the one
    currency whose total is non-zero, carrying that currency's
    ``currency_position`` from the first sibling written in it. When more
    than one currency has a non-zero total, or more than one amount is
    missing, the transaction is returned unchanged.
    """

    postings = _balance(transaction.postings)
    if postings is transaction.postings:
        return transaction
    return replace(transaction, postings=postings)


def validate_transaction(transaction: Transaction) -> None:
    """Raise ``LedgerParseError`` if ``transaction`` violates the balancing rules."""

    if transaction.kind is TransactionKind.AUTOMATED:
        return

    postings = transaction.postings
    nil_count = sum(1 for p in postings if p.amount is None)

    if nil_count > 1:
        raise LedgerParseError(ParseErrorKind.MULTIPLE_NIL_AMOUNTS)

    totals = currency_totals(postings)

    if nil_count == 1:
        if len(_nonzero(totals)) > 1:
            raise LedgerParseError(ParseErrorKind.MULTI_CURRENCY_MISSING_AMOUNT)
        return

    if all(abs(total) < BALANCE_TOLERANCE for total in totals.values()):
        return
    if len(totals) >= 2:
        return

    currency, total = next(iter(totals.items()))
    raise LedgerParseError(
        ParseErrorKind.UNBALANCED,
        detail=f"off by {total:.2f}" + (f" {currency}" if currency else ""),
    )


__all__ = [
    "BALANCE_TOLERANCE",
    "balance_postings",
    "currency_totals",
    "validate_transaction",
]
