import textwrap

import pytest

from ledgerkit import (
    AccountDeclaration,
    AccountType,
    Alias,
    AliasDeclaration,
    Declared,
    LedgerParseError,
    ParseErrorKind,
    Posting,
    Transaction,
    TransactionKind,
    build_account_map,
    expand_aliases,
    extract_account_declarations,
    parse_account_declaration,
    parse_account_declarations,
    parse_ledger,
    resolve_account_name,
    resolve_transaction_aliases,
)
from ledgerkit.declarations import undeclared_accounts


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


# ---- Declarations ------------------------------------------------------------


@pytest.mark.parametrize(
    "line, name, kind",
    [
        ("account Assets:Cash ; type:asset", "Assets:Cash", AccountType.ASSET),
        ("account Expenses:Food ;; type:expense", "Expenses:Food", AccountType.EXPENSE),
        (
            "account Liabilities:Credit Card ; type:liability",
            "Liabilities:Credit Card",
            AccountType.LIABILITY,
        ),
        ("account Income:Salary ; type:revenue", "Income:Salary", AccountType.REVENUE),
    ],
)
def test_legacy_account_declaration(line, name, kind):
    decl = parse_account_declaration(line)
    assert decl == AccountDeclaration(name=name, type=kind)


@pytest.mark.parametrize(
    "line", ["account Assets:Cash", "account Assets:Cash ; type:bogus", "payee Grocer"]
)
def test_invalid_legacy_declaration(line):
    with pytest.raises(LedgerParseError) as exc:
        parse_account_declaration(line)
    assert exc.value.reason is ParseErrorKind.INVALID_ACCOUNT_DECLARATION


def test_block_declaration_collects_aliases_and_assertions():
    decls = parse_account_declarations(
        _dedent(
            """
            account Assets:Checking
                note Main checking account
                alias Checking

                alias chk
                assert commodity == "$"
                payee Bank
            """
        )
    )
    assert decls == [
        AccountDeclaration(
            name="Assets:Checking",
            type=AccountType.ASSET,
            aliases=("Checking", "chk"),
            assertions=('commodity == "$"',),
        )
    ]


def test_standalone_alias_and_malformed_alias():
    decls = parse_account_declarations("alias =\nalias Cash = Assets:Cash\nalias Nothing =\n")
    assert decls == [AliasDeclaration(name="Cash", target="Assets:Cash")]


def test_unknown_account_type_drops_the_declaration():
    text = "account Assets:Cash ; type:bogus\n    alias Cash\naccount Assets:Bank\n"
    decls = parse_account_declarations(text)
    assert [d.name for d in decls] == ["Assets:Bank"]
    assert "Cash" not in build_account_map(decls)


def test_unknown_account_type_is_undeclared_in_strict_checks():
    journal = parse_ledger(
        "account Assets:Cash ; type:bogus\naccount Income\n\n"
        "2024/01/01 Salary\n    Assets:Cash  $5\n    Income\n"
    )
    assert undeclared_accounts(journal.transactions, journal.accounts) == ["Assets:Cash"]


def test_directives_must_start_at_column_zero():
    assert parse_account_declarations("  account Assets:Cash\naccounting stuff\n") == []


def test_declarations_inside_transactions_are_ignored():
    text = "2024/01/01 Lunch\n    Expenses:Food  $5\n    Assets:Cash\n"
    assert parse_account_declarations(text) == []


# ---- Account maps ------------------------------------------------------------


def test_build_account_map():
    accounts = build_account_map(
        [
            AccountDeclaration(name="Assets:Checking", aliases=("Checking",)),
            AccountDeclaration(name="Expenses:Food", type=AccountType.EXPENSE),
            AliasDeclaration(name="Food", target="Expenses:Food"),
        ]
    )
    assert accounts == {
        "Assets:Checking": Declared(AccountType.ASSET),
        "Checking": Alias("Assets:Checking"),
        "Expenses:Food": Declared(AccountType.EXPENSE),
        "Food": Alias("Expenses:Food"),
    }


def test_alias_chains_collapse_to_final_target():
    accounts = extract_account_declarations(
        "account Assets:Real ; type:asset\nalias B = Assets:Real\nalias C = B\n"
    )
    assert accounts["C"] == Alias("Assets:Real")
    assert accounts["B"] == Alias("Assets:Real")


def test_cyclic_aliases_terminate():
    accounts = expand_aliases({"A": Alias("B"), "B": Alias("A")})
    assert set(accounts) == {"A", "B"}
    assert all(isinstance(entry, Alias) for entry in accounts.values())
    assert {entry.target for entry in accounts.values()} <= {"A", "B"}


def test_later_declarations_win():
    accounts = extract_account_declarations(
        "account Assets:Cash ; type:asset\naccount Assets:Cash ; type:liability\n"
    )
    assert accounts["Assets:Cash"] == Declared(AccountType.LIABILITY)


# ---- Resolution --------------------------------------------------------------


def test_resolve_account_name():
    accounts = {
        "Checking": Alias("Assets:Checking"),
        "Assets:Checking": Declared(AccountType.ASSET),
    }
    assert resolve_account_name("Checking", accounts) == "Assets:Checking"
    assert resolve_account_name("Assets:Checking", accounts) == "Assets:Checking"
    assert resolve_account_name("Expenses:Unknown", accounts) == "Expenses:Unknown"


def test_resolve_transaction_aliases():
    txn = Transaction(
        kind=TransactionKind.REGULAR,
        postings=(Posting("Food"), Posting("Checking")),
        payee="Lunch",
    )
    accounts = {"Food": Alias("Expenses:Food"), "Checking": Alias("Assets:Checking")}
    (resolved,) = resolve_transaction_aliases([txn], accounts)
    assert [p.account for p in resolved.postings] == ["Expenses:Food", "Assets:Checking"]
    assert resolved.payee == "Lunch"
    assert [p.account for p in txn.postings] == ["Food", "Checking"]
