"""Parse a single transaction block into a :class:`~ledgerkit.models.Transaction`.

A block is a header line followed by indented lines. Each posting may be
preceded by any number of ``;`` note lines, which attach to the posting that
follows them. Three header forms are supported:

- ``2024/01/01=2024/01/03 * (42) Payee ; comment`` (regular)
- ``= expr`` (automated)
- ``~ Monthly`` (periodic)

Parsing runs :func:`~ledgerkit.structure.check_basic_structure` first, then
the grammar, then :func:`~ledgerkit.balancing.balance_postings` and
:func:`~ledgerkit.balancing.validate_transaction`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from .balancing import balance_postings, validate_transaction
from .errors import LedgerParseError, ParseErrorKind
from .lexer import (
    classify_note,
    is_note_line,
    parse_amount,
    parse_date,
    parse_note,
    split_account_and_amount,
)
from .models import (
    Note,
    NoteKind,
    Posting,
    Transaction,
    TransactionKind,
    TransactionState,
)
from .structure import (
    HEADER_RE,
    check_basic_structure,
    header_payee,
    is_automated_header,
    is_periodic_header,
)

_STATES = {"*": TransactionState.CLEARED, "!": TransactionState.PENDING}


@dataclass(slots=True)
class _NoteBuffer:
    metadata: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)

    def add(self, note: Note) -> None:
        if note.kind is NoteKind.TAG:
            if note.text not in self.tags:
                self.tags.append(note.text)
        elif note.kind is NoteKind.METADATA and note.key is not None:
            self.metadata[note.key] = note.text
        else:
            self.comments.append(note.text)

    def __bool__(self) -> bool:
        return bool(self.metadata or self.tags or self.comments)


# ---------------------------------------------------------------------------
# Postings
# ---------------------------------------------------------------------------


def _posting(line: str, notes: _NoteBuffer) -> Posting:
    try:
        account, rest = split_account_and_amount(line)
    except LedgerParseError as e:
        raise LedgerParseError(ParseErrorKind.INVALID_POSTING, detail=line) from e

    amount_text, sep, inline = rest.partition(";")
    if sep:
        notes.add(classify_note(inline))

    amount = None
    if amount_text.strip():
        try:
            amount = parse_amount(amount_text)
        except LedgerParseError as e:
            raise LedgerParseError(ParseErrorKind.INVALID_POSTING, detail=line) from e

    return Posting(
        account=account,
        amount=amount,
        metadata=dict(notes.metadata),
        tags=tuple(notes.tags),
        comments=tuple(notes.comments),
    )


def parse_posting(line: str) -> Posting:
    """Parse one ``ACCOUNT  [AMOUNT] [; note]`` line.

    Raises ``INVALID_POSTING`` for an empty line, a line without an account
    or a tail that is not an amount.
    """

    if not line.strip():
        raise LedgerParseError(ParseErrorKind.INVALID_POSTING, detail=line)
    return _posting(line, _NoteBuffer())


def _parse_postings(lines: list[str]) -> tuple[Posting, ...]:
    postings: list[Posting] = []
    pending = _NoteBuffer()
    leftover: list[str] = []

    for line in lines:
        if not line.strip():
            continue
        if is_note_line(line):
            pending.add(parse_note(line))
            leftover.append(line.strip())
            continue
        try:
            postings.append(_posting(line, pending))
        except LedgerParseError as e:
            raise LedgerParseError(ParseErrorKind.PARSE_ERROR, detail=e.detail) from e
        pending = _NoteBuffer()
        leftover = []

    if pending:
        raise LedgerParseError(ParseErrorKind.UNEXPECTED_INPUT, detail="\n".join(leftover))
    return tuple(postings)


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


def _regular(header: str, postings: tuple[Posting, ...]) -> Transaction:
    m = HEADER_RE.match(header)
    if m is None:
        raise LedgerParseError(ParseErrorKind.PARSE_ERROR, detail=header)

    rest = m.group("rest")
    if rest and rest[0] not in " \t":
        raise LedgerParseError(ParseErrorKind.PARSE_ERROR, detail=header)

    _payee, sep, comment = rest.partition(";")
    return Transaction(
        kind=TransactionKind.REGULAR,
        postings=postings,
        date=parse_date(m.group("date")),
        aux_date=parse_date(m.group("aux")) if m.group("aux") else None,
        state=_STATES.get(m.group("state") or "", TransactionState.UNCLEARED),
        code=m.group("code") or "",
        payee=header_payee(rest),
        comment=(comment.strip() or None) if sep else None,
    )


def parse_header(header: str, postings: tuple[Posting, ...] = ()) -> Transaction:
    """Build a transaction from its header line and already-parsed postings.

    ``= predicate`` gives an automated template, ``~ period`` a periodic one and
    anything else is parsed as a dated header. No balancing is applied.
    """

    trimmed = header.strip()
    if is_automated_header(trimmed):
        return Transaction(
            kind=TransactionKind.AUTOMATED, postings=postings, predicate=trimmed[1:].strip()
        )
    if is_periodic_header(trimmed):
        return Transaction(
            kind=TransactionKind.PERIODIC, postings=postings, period=trimmed[1:].strip()
        )
    return _regular(header.rstrip(), postings)


def parse_transaction(
    text: str,
    *,
    line: int | None = None,
    source_file: str | None = None,
) -> Transaction:
    """Parse, balance and validate one transaction block.

    Parameters
    ----------
    text:
        The block, header first. A trailing newline is allowed.
    line:
        Absolute line number of the header, recorded as ``source_line`` and
        attached to any error raised.
    source_file:
        Source file name recorded as ``source_file``.

    Raises
    ------
    LedgerParseError
        Structural, grammar or balancing failure, located at ``line``.
    """

    lines = text.replace("\r\n", "\n").rstrip("\n").split("\n")
    try:
        check_basic_structure("\n".join(lines))
        postings = _parse_postings(lines[1:])
        txn = balance_postings(parse_header(lines[0], postings))
        validate_transaction(txn)
    except LedgerParseError as e:
        raise e.located(line=line, file=source_file) from e

    return replace(txn, source_file=source_file, source_line=line)


__all__ = ["parse_header", "parse_posting", "parse_transaction"]
