"""Journal-level parsing: block splitting and include expansion.

``parse_ledger`` turns ledger text into a :class:`~ledgerkit.models.Journal`:

1. The text is cut into segments at column-0 ``include PATH [; comment]``
   lines.
2. Each segment contributes its account declarations to the account map and
   its transaction blocks, parsed with their absolute line numbers.
3. Each include is resolved relative to the including file's directory and
   expanded recursively, depth-first, in file order.

Include resolution fails with:

- ``circular_include`` when a file is already being expanded on the current
  chain (``a`` -> ``b`` -> ``a``);
- ``include_not_found`` when the target does not exist;
- ``include_outside_base`` for absolute paths;
- ``file_read_error`` when the target cannot be read;
- ``too_many_includes`` when the chain exceeds ``max_include_depth``.

Errors raised inside an included file carry an ``import_chain`` of
``(file, line)`` include sites, outermost first.

File access goes through a :class:`FileSource` so callers can parse from
sources other than the local filesystem.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .accounts import expand_aliases, extract_account_declarations
from .config import LedgerSettings, load_settings
from .errors import ImportChain, LedgerParseError, ParseErrorKind
from .logging_setup import get_logger
from .models import AccountMap, Journal, Transaction
from .transaction import parse_transaction

_logger = get_logger("ledgerkit.journal")

_INCLUDE_RE = re.compile(r"include[ \t]+(?P<path>[^;]*)(?:;.*)?")
_DIRECTIVE_RE = re.compile(
    r"(?:account|alias|payee|commodity|tag|include|apply|end|year|bucket|define|"
    r"assert|check|expr|value|import|P|Y|D|N|C|A|i|o|O|b|h)(?=[ \t]|$)"
)
_BLOCK_COMMENT_RE = re.compile(r"(?P<kind>comment|test)(?=[ \t]|$)")
_COMMENT_CHARS = ";#%|*"
_TRANSACTION_START_RE = re.compile(r"\d{4}[/-]|[=~]")


# ---------------------------------------------------------------------------
# File access
# ---------------------------------------------------------------------------


class FileSource(Protocol):
    def read_file(self, path: Path) -> str: ...

    def file_exists(self, path: Path) -> bool: ...


class LocalFileSource:
    """Read UTF-8 files from the local filesystem."""

    def read_file(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def file_exists(self, path: Path) -> bool:
        return path.is_file()


# ---------------------------------------------------------------------------
# Parse context
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ParseContext:
    """Per-call state threaded through include expansion.

    ``accounts`` and ``transactions`` are shared accumulators; ``seen_files``
    and ``import_chain`` are copied for each nested include so sibling
    includes of the same file are allowed while cycles are not.
    """

    base_dir: Path
    source: FileSource
    max_depth: int
    seen_files: frozenset[Path] = frozenset()
    source_file: str | None = None
    import_chain: ImportChain = ()
    accounts: AccountMap = field(default_factory=dict)
    transactions: list[Transaction] = field(default_factory=list)

    def child(self, path: Path, canonical: Path, name: str, line: int) -> ParseContext:
        return ParseContext(
            base_dir=path.parent,
            source=self.source,
            max_depth=self.max_depth,
            seen_files=self.seen_files | {canonical},
            source_file=name,
            import_chain=(*self.import_chain, (self.source_file or "<input>", line)),
            accounts=self.accounts,
            transactions=self.transactions,
        )

    def error(self, reason: ParseErrorKind, line: int, **kw: str | None) -> LedgerParseError:
        return LedgerParseError(
            reason,
            line=line,
            file=self.source_file,
            import_chain=self.import_chain or None,
            **kw,
        )


# ---------------------------------------------------------------------------
# Block splitting
# ---------------------------------------------------------------------------


def _is_comment(line: str) -> bool:
    return line[0] in _COMMENT_CHARS


def _is_directive(line: str) -> bool:
    return _DIRECTIVE_RE.match(line) is not None


def _starts_transaction(line: str) -> bool:
    return _TRANSACTION_START_RE.match(line) is not None


def split_blocks(lines: list[str], first_line: int = 1) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, block_text)`` for each transaction block.

    Blank lines, column-0 comments and directives (with their indented
    bodies) are skipped. A block starts at any other column-0 line and runs
    until a blank line, a column-0 comment or directive, or the start of the
    next transaction. Unindented lines that start none of these stay in the
    block so indentation errors are reported against it.
    """

    block: list[str] = []
    start = 0
    # Inside a directive body or ``comment ... end comment`` region.
    in_directive = False
    block_comment: str | None = None

    def flush() -> Iterator[tuple[int, str]]:
        if block:
            yield start, "\n".join(block)
            block.clear()

    for offset, raw in enumerate(lines):
        lineno = first_line + offset
        line = raw.rstrip("\r")

        if block_comment is not None:
            if line.strip() == f"end {block_comment}":
                block_comment = None
            continue

        if not line.strip():
            yield from flush()
            continue

        indented = line[0] in " \t"

        if indented:
            if block:
                block.append(line)
            elif not in_directive and not line.strip().startswith(";"):
                # Orphan posting with no header; let the validator name it.
                start = lineno
                block.append(line)
            continue

        if _is_comment(line):
            yield from flush()
            in_directive = False
            continue

        m = _BLOCK_COMMENT_RE.match(line)
        if m is not None:
            yield from flush()
            block_comment = m.group("kind")
            continue

        if _is_directive(line):
            yield from flush()
            in_directive = True
            continue

        if block and not _starts_transaction(line):
            block.append(line)
            continue

        yield from flush()
        in_directive = False
        start = lineno
        block.append(line)

    yield from flush()


# ---------------------------------------------------------------------------
# Include expansion
# ---------------------------------------------------------------------------


def _include_target(line: str) -> str | None:
    m = _INCLUDE_RE.fullmatch(line.rstrip("\r"))
    if m is None:
        return None
    return m.group("path").strip()


def _resolve_include(ctx: ParseContext, target: str, line: int) -> tuple[Path, Path, str]:
    """Locate and read an include target, returning ``(path, canonical, text)``."""

    if Path(target).is_absolute():
        raise ctx.error(ParseErrorKind.INCLUDE_OUTSIDE_BASE, line, filename=target)
    if len(ctx.import_chain) >= ctx.max_depth:
        raise ctx.error(ParseErrorKind.TOO_MANY_INCLUDES, line, filename=target)

    path = ctx.base_dir / target
    canonical = path.resolve()
    if canonical in ctx.seen_files:
        raise ctx.error(ParseErrorKind.CIRCULAR_INCLUDE, line, filename=target)
    if not target or not ctx.source.file_exists(path):
        raise ctx.error(ParseErrorKind.INCLUDE_NOT_FOUND, line, filename=target)

    try:
        text = ctx.source.read_file(path)
    except (OSError, UnicodeDecodeError) as e:
        raise ctx.error(
            ParseErrorKind.FILE_READ_ERROR, line, filename=target, detail=str(e)
        ) from e
    return path, canonical, text


def _parse_segment(ctx: ParseContext, lines: list[str], first_line: int) -> None:
    if not lines:
        return
    ctx.accounts.update(extract_account_declarations("\n".join(lines)))
    for lineno, block in split_blocks(lines, first_line):
        try:
            txn = parse_transaction(block, line=lineno, source_file=ctx.source_file)
        except LedgerParseError as e:
            raise e.located(import_chain=ctx.import_chain or None) from e
        ctx.transactions.append(txn)


def _expand(ctx: ParseContext, text: str) -> None:
    lines = text.replace("\r\n", "\n").split("\n")
    segment_start = 0

    for idx, line in enumerate(lines):
        target = _include_target(line)
        if target is None:
            continue

        _parse_segment(ctx, lines[segment_start:idx], segment_start + 1)
        segment_start = idx + 1

        lineno = idx + 1
        path, canonical, included = _resolve_include(ctx, target, lineno)
        _logger.debug(
            "journal:include file=%s target=%s line=%d depth=%d",
            ctx.source_file,
            target,
            lineno,
            len(ctx.import_chain) + 1,
        )
        _expand(ctx.child(path, canonical, target, lineno), included)

    _parse_segment(ctx, lines[segment_start:], segment_start + 1)


def _new_context(
    base_dir: str | Path | None,
    source_file: str | None,
    file_source: FileSource | None,
    settings: LedgerSettings | None,
) -> ParseContext:
    root = Path(base_dir) if base_dir is not None else Path.cwd()
    seen: frozenset[Path] = frozenset()
    if source_file is not None:
        seen = frozenset({(root / source_file).resolve()})
    cfg = settings if settings is not None else load_settings()
    return ParseContext(
        base_dir=root,
        source=file_source if file_source is not None else LocalFileSource(),
        max_depth=cfg.max_include_depth,
        seen_files=seen,
        source_file=source_file,
    )


def parse_ledger(
    text: str,
    *,
    base_dir: str | Path | None = None,
    source_file: str | None = None,
    file_source: FileSource | None = None,
    settings: LedgerSettings | None = None,
) -> Journal:
    """Parse ledger text, expanding includes, into a :class:`Journal`.

    Parameters
    ----------
    text:
        Ledger content.
    base_dir:
        Directory that relative include paths resolve against. Defaults to
        the current working directory.
    source_file:
        Name of the file ``text`` came from, relative to ``base_dir``. It is
        recorded on transactions and errors and seeds cycle detection.
    file_source:
        File access for includes. Defaults to :class:`LocalFileSource`.
    settings:
        Limits such as ``max_include_depth``. Defaults to
        :func:`~ledgerkit.config.load_settings`.

    Returns
    -------
    Journal
        Transactions in file order (included files spliced in at their
        include site) and the merged, alias-expanded account map.

    Raises
    ------
    LedgerParseError
        On the first failure; no partial result is returned.
    """

    ctx = _new_context(base_dir, source_file, file_source, settings)
    _expand(ctx, text)
    _logger.debug(
        "journal:parsed file=%s transactions=%d accounts=%d",
        source_file,
        len(ctx.transactions),
        len(ctx.accounts),
    )
    return Journal(transactions=tuple(ctx.transactions), accounts=expand_aliases(ctx.accounts))


def parse_file(
    path: str | Path,
    *,
    file_source: FileSource | None = None,
    settings: LedgerSettings | None = None,
) -> Journal:
    """Read and parse a ledger file; includes resolve against its directory."""

    p = Path(path)
    source = file_source if file_source is not None else LocalFileSource()
    if not source.file_exists(p):
        raise LedgerParseError(ParseErrorKind.INCLUDE_NOT_FOUND, filename=str(path))
    try:
        text = source.read_file(p)
    except (OSError, UnicodeDecodeError) as e:
        raise LedgerParseError(
            ParseErrorKind.FILE_READ_ERROR, filename=str(path), detail=str(e)
        ) from e
    return parse_ledger(
        text,
        base_dir=p.parent,
        source_file=p.name,
        file_source=source,
        settings=settings,
    )


def _expand_text(ctx: ParseContext, text: str) -> str:
    out: list[str] = []
    for idx, line in enumerate(text.replace("\r\n", "\n").split("\n")):
        target = _include_target(line)
        if target is None:
            out.append(line)
            continue
        path, canonical, included = _resolve_include(ctx, target, idx + 1)
        out.append(_expand_text(ctx.child(path, canonical, target, idx + 1), included).rstrip("\n"))
    return "\n".join(out)


def expand_includes(
    text: str,
    *,
    base_dir: str | Path | None = None,
    source_file: str | None = None,
    file_source: FileSource | None = None,
    settings: LedgerSettings | None = None,
) -> str:
    """Return ``text`` with every include directive replaced by the file's content.

    Included content is itself expanded; the same resolution errors as
    :func:`parse_ledger` apply.
    """

    ctx = _new_context(base_dir, source_file, file_source, settings)
    return _expand_text(ctx, text)


def check_string(
    text: str,
    *,
    base_dir: str | Path | None = None,
    source_file: str | None = None,
    file_source: FileSource | None = None,
    settings: LedgerSettings | None = None,
) -> bool:
    """Return ``True`` when ``text`` parses cleanly (see :func:`parse_ledger`)."""

    try:
        parse_ledger(
            text,
            base_dir=base_dir,
            source_file=source_file,
            file_source=file_source,
            settings=settings,
        )
    except LedgerParseError as e:
        _logger.debug("journal:check_failed reason=%s", e.reason)
        return False
    return True


def check_file(
    path: str | Path,
    *,
    file_source: FileSource | None = None,
    settings: LedgerSettings | None = None,
) -> bool:
    try:
        parse_file(path, file_source=file_source, settings=settings)
    except LedgerParseError as e:
        _logger.debug("journal:check_failed path=%s reason=%s", path, e.reason)
        return False
    return True


__all__ = [
    "FileSource",
    "LocalFileSource",
    "ParseContext",
    "check_file",
    "check_string",
    "expand_includes",
    "parse_file",
    "parse_ledger",
    "split_blocks",
]
