"""Error taxonomy for ledger parsing.

Every failure surfaces as :class:`LedgerParseError` (a ``ValueError``) whose
``reason`` is a :class:`ParseErrorKind`. Location fields are optional so the
same exception can be raised deep inside a primitive and enriched with a line
number, source file and import chain as it propagates outward.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeAlias


class ParseErrorKind(str, Enum):
    # Structural
    MISSING_DATE = "missing_date"
    MISSING_PAYEE = "missing_payee"
    MISSING_PREDICATE = "missing_predicate"
    MISSING_PERIOD = "missing_period"
    INVALID_INDENTATION = "invalid_indentation"
    INSUFFICIENT_POSTINGS = "insufficient_postings"
    INSUFFICIENT_SPACING = "insufficient_spacing"
    # Grammar
    PARSE_ERROR = "parse_error"
    UNEXPECTED_INPUT = "unexpected_input"
    INVALID_DATE = "invalid_date"
    INVALID_DATE_FORMAT = "invalid_date_format"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_POSTING = "invalid_posting"
    INVALID_NOTE = "invalid_note"
    INVALID_ACCOUNT_DECLARATION = "invalid_account_declaration"
    # Semantic
    MULTIPLE_NIL_AMOUNTS = "multiple_nil_amounts"
    MULTI_CURRENCY_MISSING_AMOUNT = "multi_currency_missing_amount"
    UNBALANCED = "unbalanced"
    # Include resolution
    CIRCULAR_INCLUDE = "circular_include"
    INCLUDE_NOT_FOUND = "include_not_found"
    INCLUDE_OUTSIDE_BASE = "include_outside_base"
    FILE_READ_ERROR = "file_read_error"
    TOO_MANY_INCLUDES = "too_many_includes"

    def __str__(self) -> str:
        return self.value


_INCLUDE_KINDS = frozenset(
    {
        ParseErrorKind.CIRCULAR_INCLUDE,
        ParseErrorKind.INCLUDE_NOT_FOUND,
        ParseErrorKind.INCLUDE_OUTSIDE_BASE,
        ParseErrorKind.FILE_READ_ERROR,
        ParseErrorKind.TOO_MANY_INCLUDES,
    }
)


ImportChain: TypeAlias = tuple[tuple[str, int], ...]


class LedgerParseError(ValueError):
    """A located parse failure.

    Parameters
    ----------
    reason:
        The error tag.
    line:
        1-based line of the failing transaction block (or include directive).
    file:
        Source file name as written by the caller or include directive;
        ``None`` for in-memory text.
    import_chain:
        ``(file, line)`` pairs of the include directives that led to ``file``,
        outermost first. ``None`` when the error is in the top-level text.
    filename:
        The include target for include-resolution errors.
    detail:
        Free-form context (OS error text, unexpected remainder, ...).
    """

    def __init__(
        self,
        reason: ParseErrorKind,
        *,
        line: int | None = None,
        file: str | None = None,
        import_chain: ImportChain | None = None,
        filename: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.reason = reason
        self.line = line
        self.file = file
        self.import_chain = import_chain
        self.filename = filename
        self.detail = detail
        super().__init__(self._render())

    @property
    def is_include_error(self) -> bool:
        return self.reason in _INCLUDE_KINDS

    def located(
        self,
        *,
        line: int | None = None,
        file: str | None = None,
        import_chain: ImportChain | None = None,
    ) -> LedgerParseError:
        """Return a copy with unset location fields filled in."""

        return LedgerParseError(
            self.reason,
            line=self.line if self.line is not None else line,
            file=self.file if self.file is not None else file,
            import_chain=self.import_chain if self.import_chain is not None else import_chain,
            filename=self.filename,
            detail=self.detail,
        )

    def _render(self) -> str:
        msg = self.reason.value
        if self.filename is not None:
            msg = f"{msg}: {self.filename}"
        if self.line is not None:
            loc = f"{self.file}:{self.line}" if self.file else f"line {self.line}"
            msg = f"{msg} at {loc}"
        if self.detail:
            msg = f"{msg} ({self.detail})"
        return msg


__all__ = ["ImportChain", "LedgerParseError", "ParseErrorKind"]
