"""Account declarations, alias maps and alias resolution.

Three directive forms are recognized at column 0:

- ``account NAME ; type:TYPE`` (also ``;; type:TYPE``), the legacy inline form
- ``account NAME`` followed by indented ``alias X`` / ``assert EXPR`` lines
- ``alias SHORT = FULL:NAME``, a standalone alias

Declarations fold into an :data:`~ledgerkit.models.AccountMap` where declared
accounts map to :class:`~ledgerkit.models.Declared` and aliases to
:class:`~ledgerkit.models.Alias`. Alias chains are collapsed once the map is
complete; a cyclic chain stops at the last name seen before the cycle.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import replace

from .errors import LedgerParseError, ParseErrorKind
from .models import (
    AccountDeclaration,
    AccountMap,
    AccountType,
    Alias,
    AliasDeclaration,
    Declared,
    Transaction,
)

_LEGACY_RE = re.compile(
    r"account[ \t]+(?P<name>[^;\n]*?)[ \t]*;;?[ \t]*type:"
    r"(?P<type>expense|revenue|asset|liability|equity)[ \t]*"
)
_STANDALONE_ALIAS_RE = re.compile(r"alias[ \t]+(?P<name>[^=]*?)[ \t]*=[ \t]*(?P<target>.*?)[ \t]*")
_TYPE_CLAUSE_RE = re.compile(r";.*\btype:")


def _is_directive(line: str, keyword: str) -> bool:
    return line.startswith(keyword) and line[len(keyword) : len(keyword) + 1] in (" ", "\t")


def _is_indented(line: str) -> bool:
    return line.startswith((" ", "\t"))


def parse_account_declaration(line: str) -> AccountDeclaration:
    """Parse a legacy ``account NAME ; type:TYPE`` line.

    Raises ``INVALID_ACCOUNT_DECLARATION`` for anything else.
    """

    m = _LEGACY_RE.fullmatch(line.strip())
    if m is None or not m.group("name"):
        raise LedgerParseError(ParseErrorKind.INVALID_ACCOUNT_DECLARATION, detail=line)
    return AccountDeclaration(name=m.group("name"), type=AccountType(m.group("type")))


def _parse_standalone_alias(line: str) -> AliasDeclaration | None:
    m = _STANDALONE_ALIAS_RE.fullmatch(line.strip())
    if m is None or not m.group("name") or not m.group("target"):
        return None
    return AliasDeclaration(name=m.group("name"), target=m.group("target"))


def _parse_account_block(header: str, body: list[str]) -> AccountDeclaration | None:
    try:
        decl = parse_account_declaration(header)
    except LedgerParseError:
        # An unknown ``type:`` drops the declaration.
        if _TYPE_CLAUSE_RE.search(header):
            return None
        # Block form: the header is the name, any trailing comment dropped.
        name = header.strip()[len("account") :].split(";", 1)[0].strip()
        decl = AccountDeclaration(name=name)

    aliases: list[str] = []
    assertions: list[str] = []
    for line in body:
        trimmed = line.strip()
        if _is_directive(trimmed, "alias"):
            aliases.append(trimmed[len("alias") :].strip())
        elif _is_directive(trimmed, "assert"):
            assertions.append(trimmed[len("assert") :].strip())

    return replace(decl, aliases=tuple(aliases), assertions=tuple(assertions))


def parse_account_declarations(text: str) -> list[AccountDeclaration | AliasDeclaration]:
    """Return every account and standalone alias declaration in ``text``, in order.

    Malformed standalone aliases (``alias =``) and account declarations with
    an unknown ``type:`` are skipped.
    """

    lines = text.replace("\r\n", "\n").split("\n")
    result: list[AccountDeclaration | AliasDeclaration] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1
        if _is_directive(line, "alias"):
            decl = _parse_standalone_alias(line)
            if decl is not None:
                result.append(decl)
        elif _is_directive(line, "account"):
            body: list[str] = []
            while i < len(lines) and (not lines[i].strip() or _is_indented(lines[i])):
                body.append(lines[i])
                i += 1
            block = _parse_account_block(line, body)
            if block is not None:
                result.append(block)
    return result


def build_account_map(
    declarations: Iterable[AccountDeclaration | AliasDeclaration],
) -> AccountMap:
    accounts: AccountMap = {}
    for decl in declarations:
        if isinstance(decl, AliasDeclaration):
            accounts[decl.name] = Alias(decl.target)
            continue
        accounts[decl.name] = Declared(decl.type)
        for alias in decl.aliases:
            accounts[alias] = Alias(decl.name)
    return accounts


def _resolve_chain(target: str, accounts: Mapping[str, object], seen: set[str]) -> str:
    while target not in seen:
        entry = accounts.get(target)
        if not isinstance(entry, Alias):
            return target
        seen.add(target)
        target = entry.target
    return target


def expand_aliases(accounts: AccountMap) -> AccountMap:
    """Return a copy of ``accounts`` with every alias pointing at its final target."""

    expanded: AccountMap = dict(accounts)
    for name, entry in accounts.items():
        if isinstance(entry, Alias):
            expanded[name] = Alias(_resolve_chain(entry.target, accounts, {name}))
    return expanded


def extract_account_declarations(text: str) -> AccountMap:
    return expand_aliases(build_account_map(parse_account_declarations(text)))


def resolve_account_name(name: str, accounts: AccountMap) -> str:
    """Return the canonical name for ``name``; non-aliases are returned unchanged."""

    entry = accounts.get(name)
    if isinstance(entry, Alias):
        return entry.target
    return name


def resolve_transaction_aliases(
    transactions: Iterable[Transaction], accounts: AccountMap
) -> list[Transaction]:
    """Return new transactions whose posting accounts are canonical names."""

    resolved: list[Transaction] = []
    for txn in transactions:
        postings = tuple(
            replace(p, account=resolve_account_name(p.account, accounts)) for p in txn.postings
        )
        resolved.append(replace(txn, postings=postings))
    return resolved


__all__ = [
    "build_account_map",
    "expand_aliases",
    "extract_account_declarations",
    "parse_account_declaration",
    "parse_account_declarations",
    "resolve_account_name",
    "resolve_transaction_aliases",
]
