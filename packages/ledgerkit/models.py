"""Data models and type aliases for ``ledgerkit``.

Parsed journals are represented as frozen, slotted dataclasses. A
``Transaction`` owns its ``Posting`` objects; a ``Posting`` optionally carries
an ``Amount``. Account declarations combine into an ``AccountMap`` whose
values are a tagged union of ``Declared`` (a typed account) and ``Alias``
(a pointer to a canonical account name).

Nothing in this module performs parsing or validation; see
``ledgerkit.transaction`` and ``ledgerkit.balancing`` for that.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeAlias

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class CurrencyPosition(str, Enum):
    """Which side of the number the currency token was written on."""

    LEADING = "leading"
    TRAILING = "trailing"


class TransactionKind(str, Enum):
    REGULAR = "regular"
    AUTOMATED = "automated"
    PERIODIC = "periodic"


class TransactionState(str, Enum):
    CLEARED = "cleared"
    PENDING = "pending"
    UNCLEARED = "uncleared"


class AccountType(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NoteKind(str, Enum):
    TAG = "tag"
    METADATA = "metadata"
    COMMENT = "comment"


# ---------------------------------------------------------------------------
# Amounts, postings and transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Amount:
    """A numeric quantity with an optional commodity.

    ``value`` keeps the literal precision of the source text (``4.12345``
    stays ``4.12345``). ``currency`` is ``None`` for a bare number, in which
    case ``currency_position`` is ``None`` as well.
    """

    value: float
    currency: str | None = None
    currency_position: CurrencyPosition | None = None


@dataclass(frozen=True, slots=True)
class Note:
    """One ``;`` note line attached to a posting.

    For ``METADATA`` notes ``key`` holds the metadata key and ``text`` the
    value. For ``TAG`` notes ``text`` is the tag name. For ``COMMENT`` notes
    ``text`` is the comment body.
    """

    kind: NoteKind
    text: str
    key: str | None = None


@dataclass(frozen=True, slots=True)
class Posting:
    account: str
    amount: Amount | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)
    tags: tuple[str, ...] = ()
    comments: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Transaction:
    """A parsed journal entry.

    Notes
    -----
    - ``date`` and ``payee`` are set for ``REGULAR`` transactions only.
    - ``predicate`` is set for ``AUTOMATED`` (``=``) transactions and
      ``period`` for ``PERIODIC`` (``~``) transactions.
    - ``source_file``/``source_line`` record where the entry's first line was
      read from; ``source_file`` is ``None`` for in-memory text.
    """

    kind: TransactionKind
    postings: tuple[Posting, ...]
    date: dt.date | None = None
    aux_date: dt.date | None = None
    state: TransactionState = TransactionState.UNCLEARED
    code: str = ""
    payee: str | None = None
    comment: str | None = None
    predicate: str | None = None
    period: str | None = None
    source_file: str | None = None
    source_line: int | None = None


# ---------------------------------------------------------------------------
# Account declarations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AccountDeclaration:
    """An ``account`` directive (legacy inline or block form).

    ``assertions`` are captured verbatim and never evaluated.
    """

    name: str
    type: AccountType = AccountType.ASSET
    aliases: tuple[str, ...] = ()
    assertions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AliasDeclaration:
    """A top-level ``alias SHORT = FULL:NAME`` directive."""

    name: str
    target: str


@dataclass(frozen=True, slots=True)
class Declared:
    """Account-map entry for a declared account."""

    type: AccountType


@dataclass(frozen=True, slots=True)
class Alias:
    """Account-map entry pointing at a canonical account name."""

    target: str


AccountEntry: TypeAlias = Declared | Alias
AccountMap: TypeAlias = dict[str, AccountEntry]
"""Mapping of account name or alias to its entry."""


@dataclass(frozen=True, slots=True)
class Journal:
    """Result of parsing a ledger: transactions in file order plus accounts."""

    transactions: tuple[Transaction, ...]
    accounts: AccountMap = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Timeclock
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TimeEntry:
    account: str
    start: dt.datetime
    stop: dt.datetime
    payee: str | None = None
    cleared: bool = False
    duration_seconds: int = 0


__all__ = [
    "AccountDeclaration",
    "AccountEntry",
    "AccountMap",
    "AccountType",
    "AliasDeclaration",
    "Alias",
    "Amount",
    "CurrencyPosition",
    "Declared",
    "Journal",
    "Note",
    "NoteKind",
    "Posting",
    "TimeEntry",
    "Transaction",
    "TransactionKind",
    "TransactionState",
]
