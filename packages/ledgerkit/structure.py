"""Line-oriented structural checks run before the transaction grammar.

``check_basic_structure`` classifies a candidate block (header line plus its
indented lines) and raises a precise :class:`LedgerParseError` for the common
authoring mistakes, so callers see ``missing_payee`` or
``insufficient_spacing`` rather than a generic ``parse_error``.

Checks run in a fixed order and the first failure wins:

1. ``missing_predicate`` / ``missing_period`` for a bare ``=`` / ``~`` line
2. ``insufficient_postings`` for ``=``/``~`` blocks without postings
3. ``missing_date``
4. ``missing_payee``
5. ``invalid_indentation``
6. ``insufficient_postings`` (two postings for dated entries)
7. ``insufficient_spacing``
"""

from __future__ import annotations

import re

from .errors import LedgerParseError, ParseErrorKind

_DATE_SHAPE = r"\d{4}[/-]\d{1,2}[/-]\d{1,2}"
_DATE_SHAPE_RE = re.compile(_DATE_SHAPE)

HEADER_RE = re.compile(
    rf"(?P<date>{_DATE_SHAPE})"
    rf"(?:=(?P<aux>{_DATE_SHAPE}))?"
    r"(?:[ \t]+(?P<state>[*!]))?"
    r"(?:[ \t]+\((?P<code>[^)]*)\))?"
    r"(?P<rest>.*)"
)
"""Dated header: date, ``=aux``, ``*``/``!`` state, ``(code)``, then payee."""

_POSTING_LINE_RE = re.compile(r"[ \t]+[^\s;]")
_INDENT_RE = re.compile(r"\t| [ \t]")

# Permissive amount shape used only for the spacing check.
_AMOUNT_SHAPE_RE = re.compile(
    r"(?:\$|[A-Z]{1,5})?\s*[-+]?\d+(?:,\d{3})*(?:\.\d+)?(?:\s*(?:\$|[A-Z]{1,5}))?"
)
_TRAILING_CODE_RE = re.compile(r"([A-Z]{1,5})\s+[-+]?\s*$")
_LONE_SPACE_RE = re.compile(r"(?<![ \t]) $")


def is_automated_header(line: str) -> bool:
    return line.lstrip().startswith("=")


def is_periodic_header(line: str) -> bool:
    return line.lstrip().startswith("~")


def is_posting_line(line: str) -> bool:
    """An indented line whose first visible character is not ``;``."""

    return _POSTING_LINE_RE.match(line) is not None


def has_valid_indentation(line: str) -> bool:
    """A tab, or at least two spaces, before the first visible character."""

    return _INDENT_RE.match(line) is not None


def count_postings(lines: list[str]) -> int:
    return sum(1 for line in lines[1:] if is_posting_line(line))


def header_payee(rest: str) -> str:
    return rest.split(";", 1)[0].strip()


def _missing_double_space(line: str) -> bool:
    body = line.split(";", 1)[0]
    matches = list(_AMOUNT_SHAPE_RE.finditer(body))
    if not matches:
        return False

    last = matches[-1]
    start = last.start() + (len(last.group(0)) - len(last.group(0).lstrip()))
    prefix = body[:start]

    # ``USD 10``: the code belongs to the amount, so look before it.
    m = _TRAILING_CODE_RE.search(prefix)
    if m is not None:
        prefix = prefix[: m.start()]

    return _LONE_SPACE_RE.search(prefix) is not None


def check_basic_structure(block: str) -> None:
    """Raise ``LedgerParseError`` when ``block`` is structurally malformed."""

    lines = block.split("\n")
    first = lines[0] if lines else ""
    first_trimmed = first.strip()

    automated = is_automated_header(first)
    periodic = is_periodic_header(first)
    directive = automated or periodic
    min_postings = 1 if directive else 2
    postings = count_postings(lines)

    if automated and first_trimmed == "=":
        raise LedgerParseError(ParseErrorKind.MISSING_PREDICATE)
    if periodic and first_trimmed == "~":
        raise LedgerParseError(ParseErrorKind.MISSING_PERIOD)
    if directive and postings < min_postings:
        raise LedgerParseError(ParseErrorKind.INSUFFICIENT_POSTINGS)

    if not directive:
        if _DATE_SHAPE_RE.match(first) is None:
            raise LedgerParseError(ParseErrorKind.MISSING_DATE)
        m = HEADER_RE.match(first)
        if m is None or not header_payee(m.group("rest")):
            raise LedgerParseError(ParseErrorKind.MISSING_PAYEE)

    for line in lines[1:]:
        if line.strip() and not has_valid_indentation(line):
            raise LedgerParseError(ParseErrorKind.INVALID_INDENTATION)

    if postings < min_postings:
        raise LedgerParseError(ParseErrorKind.INSUFFICIENT_POSTINGS)

    if any(_missing_double_space(line) for line in lines[1:] if is_posting_line(line)):
        raise LedgerParseError(ParseErrorKind.INSUFFICIENT_SPACING)


__all__ = [
    "HEADER_RE",
    "check_basic_structure",
    "count_postings",
    "has_valid_indentation",
    "header_payee",
    "is_automated_header",
    "is_periodic_header",
    "is_posting_line",
]
