"""Public interface for the ``ledgerkit`` package.

This module re-exports the parser entry points, primitives, balancing
functions and data models as the stable import surface. There is no runtime
logic here, only symbol re-exports.
"""

from .accounts import (
    build_account_map,
    expand_aliases,
    extract_account_declarations,
    parse_account_declaration,
    parse_account_declarations,
    resolve_account_name,
    resolve_transaction_aliases,
)
from .balancing import balance_postings, validate_transaction
from .config import LedgerSettings, load_settings
from .errors import LedgerParseError, ParseErrorKind
from .journal import (
    FileSource,
    LocalFileSource,
    ParseContext,
    check_file,
    check_string,
    expand_includes,
    parse_file,
    parse_ledger,
)
from .lexer import parse_account_name, parse_amount, parse_date, parse_note
from .models import (
    AccountDeclaration,
    AccountEntry,
    AccountMap,
    AccountType,
    Alias,
    AliasDeclaration,
    Amount,
    CurrencyPosition,
    Declared,
    Journal,
    Note,
    NoteKind,
    Posting,
    TimeEntry,
    Transaction,
    TransactionKind,
    TransactionState,
)
from .structure import check_basic_structure
from .timeclock import parse_timeclock_entries, timeclock_report
from .transaction import parse_header, parse_posting, parse_transaction

__all__ = [
    # Parsing
    "parse_ledger",
    "parse_file",
    "expand_includes",
    "check_string",
    "check_file",
    "parse_transaction",
    "parse_header",
    "parse_posting",
    "check_basic_structure",
    "parse_date",
    "parse_amount",
    "parse_account_name",
    "parse_note",
    "parse_timeclock_entries",
    "timeclock_report",
    # Balancing
    "balance_postings",
    "validate_transaction",
    # Accounts
    "parse_account_declaration",
    "parse_account_declarations",
    "build_account_map",
    "expand_aliases",
    "extract_account_declarations",
    "resolve_account_name",
    "resolve_transaction_aliases",
    # Include resolution
    "FileSource",
    "LocalFileSource",
    "ParseContext",
    # Configuration / errors
    "LedgerSettings",
    "load_settings",
    "LedgerParseError",
    "ParseErrorKind",
    # Models / types
    "AccountDeclaration",
    "AccountEntry",
    "AccountMap",
    "AccountType",
    "Alias",
    "AliasDeclaration",
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
