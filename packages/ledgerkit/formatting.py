"""Render amounts and transactions back to ledger text."""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable

from .models import (
    Amount,
    CurrencyPosition,
    Posting,
    Transaction,
    TransactionKind,
    TransactionState,
)

_STATE_MARKS = {TransactionState.CLEARED: "*", TransactionState.PENDING: "!"}


def format_amount_for_currency(
    value: float,
    currency: str | None,
    position: CurrencyPosition | None = CurrencyPosition.LEADING,
) -> str:
    """Format ``value`` with two decimals and its commodity.

    ``$`` is written without a space and before the sign (``$-5.00``); other
    leading codes are separated by a space (``EUR -5.00``); trailing codes
    follow the number (``-5.00 CHF``).
    """

    sign = "-" if value < 0 else ""
    number = f"{abs(value):.2f}"
    if not currency:
        return f"{sign}{number}"
    if (position or CurrencyPosition.LEADING) is CurrencyPosition.TRAILING:
        return f"{sign}{number} {currency}"
    if currency == "$":
        return f"${sign}{number}"
    return f"{currency} {sign}{number}"


def format_amount(amount: Amount | None) -> str:
    if amount is None:
        return ""
    return format_amount_for_currency(amount.value, amount.currency, amount.currency_position)


def _format_date(date: dt.date) -> str:
    return date.strftime("%Y/%m/%d")


def _header(txn: Transaction, date: dt.date | None) -> str:
    if txn.kind is TransactionKind.AUTOMATED:
        return f"= {txn.predicate or ''}".rstrip()
    if txn.kind is TransactionKind.PERIODIC:
        return f"~ {txn.period or ''}".rstrip()

    when = date or txn.date
    parts = [_format_date(when) if when is not None else ""]
    if txn.aux_date is not None and date is None:
        parts[0] += f"={_format_date(txn.aux_date)}"
    mark = _STATE_MARKS.get(txn.state)
    if mark:
        parts.append(mark)
    if txn.code:
        parts.append(f"({txn.code})")
    parts.append(txn.payee or "")
    header = " ".join(parts)
    if txn.comment and txn.comment.strip():
        header += f"  ; {txn.comment}"
    return header


def _notes(posting: Posting) -> list[str]:
    lines = [f"    ; {key}: {value}" for key, value in sorted(posting.metadata.items())]
    lines.extend(f"    ; :{tag}:" for tag in posting.tags)
    lines.extend(f"    ; {comment}" for comment in posting.comments)
    return lines


def format_entry(
    transaction: Transaction,
    *,
    date: dt.date | None = None,
    include_notes: bool = True,
) -> str:
    """Render one transaction as newline-terminated ledger text.

    ``date`` overrides the header date (and drops the auxiliary date). Posting
    notes precede their posting line when ``include_notes`` is true.
    """

    lines = [_header(transaction, date)]
    for posting in transaction.postings:
        if include_notes:
            lines.extend(_notes(posting))
        amount = format_amount(posting.amount)
        lines.append(f"    {posting.account}  {amount}" if amount else f"    {posting.account}")
    return "\n".join(lines) + "\n"


def format_transactions(transactions: Iterable[Transaction]) -> str:
    return "\n".join(format_entry(t) for t in transactions)


__all__ = [
    "format_amount",
    "format_amount_for_currency",
    "format_entry",
    "format_transactions",
]
