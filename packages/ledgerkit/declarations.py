"""Listing of journal elements and strict-mode declaration checks.

The ``list_*`` helpers return sorted unique names used by a journal. The
``extract_*_declarations`` helpers collect names declared with column-0
``payee``, ``commodity`` and ``tag`` directives, and the ``undeclared_*``
helpers report names used without a matching declaration.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from .accounts import resolve_account_name
from .models import AccountMap, Declared, Posting, Transaction, TransactionKind

# Metadata keys with built-in meaning that never need a ``tag`` declaration.
BUILTIN_TAGS = frozenset(
    {"date", "date2", "type", "t", "assert", "retain", "start", "generated-transaction"}
)

_COMMODITY_SYMBOL_RE = re.compile(r"[^0-9\s.,]+")


# ---- Small module-level helpers ----------------------------------------------


def _postings(transactions: Iterable[Transaction]) -> Iterable[Posting]:
    for txn in transactions:
        yield from txn.postings


def _regular(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.kind is TransactionKind.REGULAR and t.date is not None]


def _extract(text: str, keyword: str) -> set[str]:
    found: set[str] = set()
    for line in text.splitlines():
        head, _sep, rest = line.partition(" ")
        if head != keyword:
            continue
        value = rest.split(";", 1)[0].strip()
        if value:
            found.add(value)
    return found


# ---- Listing -----------------------------------------------------------------


def list_accounts(
    transactions: Iterable[Transaction], accounts: AccountMap | None = None
) -> list[str]:
    """Sorted posting accounts (alias-resolved when ``accounts`` is given) plus declared ones."""

    accounts = accounts or {}
    names = {resolve_account_name(p.account, accounts) for p in _postings(transactions)}
    names.update(name for name, entry in accounts.items() if isinstance(entry, Declared))
    return sorted(names)


def list_payees(transactions: Iterable[Transaction]) -> list[str]:
    return sorted({t.payee for t in transactions if t.payee})


def list_commodities(transactions: Iterable[Transaction]) -> list[str]:
    return sorted(
        {
            p.amount.currency
            for p in _postings(transactions)
            if p.amount is not None and p.amount.currency
        }
    )


def list_tags(transactions: Iterable[Transaction]) -> list[str]:
    return sorted({tag for p in _postings(transactions) for tag in p.tags})


def first_transaction(transactions: Sequence[Transaction]) -> Transaction | None:
    """Earliest dated regular transaction; ties keep file order."""

    regular = _regular(transactions)
    return min(regular, key=lambda t: t.date) if regular else None


def last_transaction(transactions: Sequence[Transaction]) -> Transaction | None:
    """Latest dated regular transaction; ties resolve to the last in file order."""

    regular = _regular(transactions)
    if not regular:
        return None
    return max(reversed(regular), key=lambda t: t.date)


# ---- Declarations --------------------------------------------------------------


def extract_payee_declarations(text: str) -> set[str]:
    return _extract(text, "payee")


def extract_commodity_declarations(text: str) -> set[str]:
    """Commodity symbols from ``commodity`` directives.

    A format sample such as ``commodity $1,000.00`` declares ``$``.
    """

    symbols: set[str] = set()
    for value in _extract(text, "commodity"):
        token = value.split()[0]
        m = _COMMODITY_SYMBOL_RE.match(token)
        symbols.add(m.group(0) if m is not None else token)
    return symbols


def extract_tag_declarations(text: str) -> set[str]:
    return {value.split()[0] for value in _extract(text, "tag")}


# ---- Strict checks -------------------------------------------------------------


def undeclared_accounts(transactions: Iterable[Transaction], accounts: AccountMap) -> list[str]:
    """Posting accounts that are neither declared nor an alias."""

    used = {p.account for p in _postings(transactions)}
    return sorted(used - set(accounts))


def undeclared_payees(transactions: Iterable[Transaction], declared: Iterable[str]) -> list[str]:
    return sorted(set(list_payees(transactions)) - set(declared))


def undeclared_commodities(
    transactions: Iterable[Transaction], declared: Iterable[str]
) -> list[str]:
    return sorted(set(list_commodities(transactions)) - set(declared))


def undeclared_tags(transactions: Iterable[Transaction], declared: Iterable[str]) -> list[str]:
    """Posting tags and metadata keys without a declaration or built-in meaning."""

    txns = list(transactions)
    used = set(list_tags(txns))
    used.update(key for p in _postings(txns) for key in p.metadata)
    allowed = set(declared) | BUILTIN_TAGS
    return sorted(tag for tag in used if tag not in allowed and tag.lower() not in allowed)


__all__ = [
    "BUILTIN_TAGS",
    "extract_commodity_declarations",
    "extract_payee_declarations",
    "extract_tag_declarations",
    "first_transaction",
    "last_transaction",
    "list_accounts",
    "list_commodities",
    "list_payees",
    "list_tags",
    "undeclared_accounts",
    "undeclared_commodities",
    "undeclared_payees",
    "undeclared_tags",
]
