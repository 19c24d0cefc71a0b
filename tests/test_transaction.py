import datetime as dt
import textwrap

import pytest

from ledgerkit import (
    Amount,
    CurrencyPosition,
    LedgerParseError,
    ParseErrorKind,
    TransactionKind,
    TransactionState,
    parse_header,
    parse_posting,
    parse_transaction,
)


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


def test_basic_transaction_auto_balances_second_posting():
    txn = parse_transaction(
        _dedent(
            """
            2024/01/01 Opening
                Assets:Cash  $10.00
                Equity:Opening
            """
        )
    )

    assert txn.kind is TransactionKind.REGULAR
    assert txn.payee == "Opening"
    assert txn.date == dt.date(2024, 1, 1)
    assert len(txn.postings) == 2
    assert txn.postings[1].account == "Equity:Opening"
    assert txn.postings[1].amount == Amount(-10.0, "$", CurrencyPosition.LEADING)


def test_header_fields():
    txn = parse_transaction(
        _dedent(
            """
            2024/03/05=2024/03/07 * (1042) Grocery Store  ; weekly shop
                Expenses:Food  $42.10
                Assets:Checking  $-42.10
            """
        )
    )

    assert txn.date == dt.date(2024, 3, 5)
    assert txn.aux_date == dt.date(2024, 3, 7)
    assert txn.state is TransactionState.CLEARED
    assert txn.code == "1042"
    assert txn.payee == "Grocery Store"
    assert txn.comment == "weekly shop"


def test_pending_state_and_uncleared_default():
    pending = parse_transaction("2024/01/01 ! Rent\n    Expenses:Rent  $5\n    Assets:Cash")
    plain = parse_transaction("2024/01/01 Rent\n    Expenses:Rent  $5\n    Assets:Cash")
    assert pending.state is TransactionState.PENDING
    assert plain.state is TransactionState.UNCLEARED
    assert plain.code == ""
    assert plain.comment is None


def test_notes_attach_to_following_posting():
    txn = parse_transaction(
        _dedent(
            """
            2009/11/01 Panera Bread
                ; Type: Coffee
                ; :Eating:
                ; Note: this is a comment
                Expenses:Food               $4.50
                Assets:Checking
            """
        )
    )

    food, checking = txn.postings
    assert dict(food.metadata) == {"Type": "Coffee"}
    assert food.tags == ("Eating",)
    assert food.comments == ("Note: this is a comment",)
    assert dict(checking.metadata) == {}
    assert checking.tags == ()


def test_inline_posting_comment_is_captured():
    txn = parse_transaction(
        "2024/01/01 Lunch\n    Expenses:Food  $12.00 ; :work:\n    Assets:Cash ; paid in cash"
    )
    assert txn.postings[0].tags == ("work",)
    assert txn.postings[1].comments == ("paid in cash",)
    assert txn.postings[1].amount.value == -12.0


def test_tab_indented_postings():
    txn = parse_transaction("2009/11/01 Panera Bread\n\tExpenses:Food\t$4.50\n\tAssets:Checking\n")
    assert [p.account for p in txn.postings] == ["Expenses:Food", "Assets:Checking"]


def test_trailing_currency_position_is_preserved_when_balancing():
    txn = parse_transaction("2024/01/01 Transfer\n    Assets:Bank  10 CHF\n    Assets:Cash")
    assert txn.postings[1].amount == Amount(-10.0, "CHF", CurrencyPosition.TRAILING)


def test_automated_transaction():
    txn = parse_transaction("= /^Expenses:Food/\n    (Budget:Food)  -1")
    assert txn.kind is TransactionKind.AUTOMATED
    assert txn.predicate == "/^Expenses:Food/"
    assert txn.date is None
    assert txn.payee is None
    assert txn.postings[0].account == "(Budget:Food)"


def test_periodic_transaction():
    txn = parse_transaction("~ Monthly\n    Expenses:Rent  $500.00\n    Assets:Checking")
    assert txn.kind is TransactionKind.PERIODIC
    assert txn.period == "Monthly"
    assert txn.postings[1].amount.value == -500.0


def test_trailing_notes_without_posting_are_unexpected_input():
    with pytest.raises(LedgerParseError) as exc:
        parse_transaction(
            "2024/01/01 Lunch\n    Expenses:Food  $12.00\n    Assets:Cash\n    ; dangling"
        )
    assert exc.value.reason is ParseErrorKind.UNEXPECTED_INPUT


def test_unparseable_amount_is_parse_error():
    with pytest.raises(LedgerParseError) as exc:
        parse_transaction("2024/01/01 Lunch\n    Expenses:Food  $12.00 @@ EUR\n    Assets:Cash")
    assert exc.value.reason is ParseErrorKind.PARSE_ERROR


def test_impossible_header_date():
    with pytest.raises(LedgerParseError) as exc:
        parse_transaction("2024/02/30 Lunch\n    Expenses:Food  $1\n    Assets:Cash")
    assert exc.value.reason is ParseErrorKind.INVALID_DATE


def test_errors_carry_location():
    with pytest.raises(LedgerParseError) as exc:
        parse_transaction(
            "2024/01/01 Lunch\n    Expenses:Food  $1\n    Assets:Cash  $1",
            line=12,
            source_file="main.ledger",
        )
    assert exc.value.reason is ParseErrorKind.UNBALANCED
    assert exc.value.line == 12
    assert exc.value.file == "main.ledger"


def test_source_location_is_recorded():
    txn = parse_transaction(
        "2024/01/01 Lunch\n    Expenses:Food  $1\n    Assets:Cash", line=3, source_file="a.ledger"
    )
    assert (txn.source_file, txn.source_line) == ("a.ledger", 3)


def test_multi_currency_missing_amount_is_rejected():
    with pytest.raises(LedgerParseError) as exc:
        parse_transaction(
            _dedent(
                """
                2024/01/01 Exchange
                    Assets:USD  10 USD
                    Assets:CHF  -9 CHF
                    Equity:Conversion
                """
            )
        )
    assert exc.value.reason is ParseErrorKind.MULTI_CURRENCY_MISSING_AMOUNT


def test_parse_posting():
    posting = parse_posting("    Liabilities:Credit Card  -$20.00")
    assert posting.account == "Liabilities:Credit Card"
    assert posting.amount.value == -20.0


@pytest.mark.parametrize("line", ["", "   ", "    Expenses:Food  twelve dollars"])
def test_parse_posting_rejects_invalid_lines(line):
    with pytest.raises(LedgerParseError) as exc:
        parse_posting(line)
    assert exc.value.reason is ParseErrorKind.INVALID_POSTING


def test_parse_header_forms():
    regular = parse_header("2024/01/01 * Payee  ; note")
    assert (regular.kind, regular.payee, regular.comment) == (
        TransactionKind.REGULAR,
        "Payee",
        "note",
    )
    assert regular.postings == ()
    assert parse_header("= expr account =~ /Food/").predicate == "expr account =~ /Food/"
    assert parse_header("~ Every 2 weeks").period == "Every 2 weeks"


def test_parse_header_rejects_text_glued_to_date():
    with pytest.raises(LedgerParseError) as exc:
        parse_header("2024/01/01Payee")
    assert exc.value.reason is ParseErrorKind.PARSE_ERROR
