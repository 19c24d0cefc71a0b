"""Lexical primitives for the ledger grammar.

Each primitive is a pure function from a text slice to a typed value. They
raise :class:`~ledgerkit.errors.LedgerParseError` on failure and never return
partial results.

- ``parse_date``: ``YYYY/M/D`` or ``YYYY-M-D`` (separators not mixed).
- ``parse_amount``: leading-currency (``$10``, ``EUR -5``), trailing-currency
  (``10 CHF``) or bare (``100``) amounts with optional ``,`` grouping and
  arbitrary decimal precision.
- ``parse_account_name``: single-space separated tokens; two spaces or a tab
  end the name.
- ``parse_note``: a ``;`` line classified as tag, metadata or comment.
"""

from __future__ import annotations

import datetime as dt
import re

from .errors import LedgerParseError, ParseErrorKind
from .models import Amount, CurrencyPosition, Note, NoteKind

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_DATE_RE = re.compile(r"(\d{4})([/-])(\d{1,2})\2(\d{1,2})")

_NUMBER = r"\d+(?:,\d{3})*(?:\.\d+)?"
_LEADING_RE = re.compile(
    rf"(?P<s1>[-+])?(?P<cur>\$|[A-Za-z]{{1,5}})[ \t]*(?P<s2>[-+])?[ \t]*(?P<num>{_NUMBER})"
)
_TRAILING_RE = re.compile(rf"(?P<s1>[-+])?[ \t]*(?P<num>{_NUMBER})[ \t]*(?P<cur>[A-Za-z]{{1,5}})")
_BARE_RE = re.compile(rf"(?P<s1>[-+])?[ \t]*(?P<num>{_NUMBER})")

# Single spaces are part of the name; a double space or a tab is the boundary.
_ACCOUNT_RE = re.compile(r"[^\s;]\S*(?: [^\s;]\S*)*")

_TAG_RE = re.compile(r":([^:\s][^:]*):")
_METADATA_RE = re.compile(r"([A-Z][A-Za-z0-9_]*):(.*)")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _build_date(m: re.Match[str]) -> dt.date:
    try:
        return dt.date(int(m.group(1)), int(m.group(3)), int(m.group(4)))
    except ValueError as e:
        raise LedgerParseError(ParseErrorKind.INVALID_DATE, detail=m.group(0)) from e


def parse_date(text: str) -> dt.date:
    """Parse a complete date string.

    Raises ``INVALID_DATE_FORMAT`` when the text is not date-shaped and
    ``INVALID_DATE`` when it is shaped like a date that does not exist
    (``2024/02/30``).
    """

    m = _DATE_RE.fullmatch(text.strip())
    if m is None:
        raise LedgerParseError(ParseErrorKind.INVALID_DATE_FORMAT, detail=text)
    return _build_date(m)


def scan_date(text: str, pos: int = 0) -> tuple[dt.date, int] | None:
    """Match a date at ``pos`` and return ``(date, end)``.

    Returns ``None`` when no date-shaped token starts at ``pos``. A date-shaped
    token naming an impossible day raises ``INVALID_DATE``.
    """

    m = _DATE_RE.match(text, pos)
    if m is None:
        return None
    return _build_date(m), m.end()


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def _to_value(num: str, sign: str | None) -> float:
    value = float(num.replace(",", ""))
    return -value if sign == "-" else value


def parse_amount(text: str) -> Amount:
    """Parse an amount token such as ``$4.50``, ``-10 CHF`` or ``1,000``.

    The decimal digits are kept as written, so ``$4.12345`` yields
    ``4.12345``. Leading forms are tried before trailing forms, and bare
    numbers last. A sign may sit on either side of a leading currency
    but not on both (``-$-10`` is rejected).
    """

    s = text.strip()

    m = _LEADING_RE.fullmatch(s)
    if m is not None:
        if m.group("s1") and m.group("s2"):
            raise LedgerParseError(ParseErrorKind.INVALID_AMOUNT, detail=text)
        return Amount(
            value=_to_value(m.group("num"), m.group("s1") or m.group("s2")),
            currency=m.group("cur"),
            currency_position=CurrencyPosition.LEADING,
        )

    m = _TRAILING_RE.fullmatch(s)
    if m is not None:
        return Amount(
            value=_to_value(m.group("num"), m.group("s1")),
            currency=m.group("cur"),
            currency_position=CurrencyPosition.TRAILING,
        )

    m = _BARE_RE.fullmatch(s)
    if m is not None:
        return Amount(value=_to_value(m.group("num"), m.group("s1")))

    raise LedgerParseError(ParseErrorKind.INVALID_AMOUNT, detail=text)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


def split_account_and_amount(text: str) -> tuple[str, str]:
    """Split posting text into ``(account, remainder)``.

    Leading indentation is ignored. The account is the longest run of tokens
    joined by single spaces; the remainder starts at the first double space,
    tab, ``;`` token or end of line and is returned unstripped.
    """

    body = text.lstrip(" \t")
    m = _ACCOUNT_RE.match(body)
    if m is None:
        raise LedgerParseError(ParseErrorKind.INVALID_POSTING, detail=text)
    return m.group(0), body[m.end() :]


def parse_account_name(text: str) -> str:
    account, _rest = split_account_and_amount(text)
    return account


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


def classify_note(body: str) -> Note:
    """Classify the text following ``;`` as a tag, metadata or comment.

    ``Key: Value`` is metadata only when the value does not start with a
    lowercase letter; ``Note: this is prose`` stays a comment.
    """

    text = body.strip()

    m = _TAG_RE.fullmatch(text)
    if m is not None:
        return Note(NoteKind.TAG, m.group(1))

    m = _METADATA_RE.fullmatch(text)
    if m is not None:
        key, value = m.group(1), m.group(2).strip()
        if value and value[0].islower():
            return Note(NoteKind.COMMENT, f"{key}: {value}")
        return Note(NoteKind.METADATA, value, key=key)

    return Note(NoteKind.COMMENT, text)


def parse_note(text: str) -> Note:
    """Parse a full note line (``; ...``, ``;; ...``), indentation allowed."""

    body = text.strip()
    if not body.startswith(";"):
        raise LedgerParseError(ParseErrorKind.INVALID_NOTE, detail=text)
    return classify_note(body.lstrip(";"))


def is_note_line(text: str) -> bool:
    return text.lstrip(" \t").startswith(";")


__all__ = [
    "classify_note",
    "is_note_line",
    "parse_account_name",
    "parse_amount",
    "parse_date",
    "parse_note",
    "scan_date",
    "split_account_and_amount",
]
