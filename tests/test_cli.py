import textwrap

import pytest
from typer.testing import CliRunner

from ledgerkit.cli import app

runner = CliRunner()

LEDGER = textwrap.dedent(
    """
    account Assets:Checking
        alias Checking
    payee Opening
    commodity $

    2024/01/01 Opening
        Assets:Checking  $100.00
        Equity:Opening

    2024/01/02 Grocer
        ; :food:
        Expenses:Food  $12.50
        Checking
    """
).lstrip("\n")


@pytest.fixture
def ledger(write_ledger):
    return write_ledger("main.ledger", LEDGER)


def _run(*args: str, env: dict[str, str] | None = None):
    return runner.invoke(app, list(args), env=env)


def test_check_reports_transaction_count(ledger):
    result = _run("--file", str(ledger), "check")
    assert result.exit_code == 0, result.output
    assert "OK: 2 transactions" in result.output


def test_ledger_file_from_environment(ledger):
    result = _run("check", env={"LEDGER_FILE": str(ledger)})
    assert result.exit_code == 0, result.output


def test_missing_file_option():
    result = _run("check")
    assert result.exit_code == 1
    assert "no ledger file given" in result.output


def test_subcommand_required(ledger):
    result = _run("--file", str(ledger))
    assert result.exit_code == 1
    assert "No subcommand provided" in result.output


def test_parse_error_reports_location(write_ledger):
    path = write_ledger("bad.ledger", "; header\n2024/01/01 Bad\n    A  $1\n    B  $2\n")
    result = _run("-f", str(path), "check")
    assert result.exit_code == 1
    assert "Error: failed to parse ledger file bad.ledger:2: unbalanced" in result.output


def test_parse_error_in_include_lists_import_sites(write_ledger):
    write_ledger("inner.ledger", "2024/01/01 Bad\n    A  $1\n    B  $2\n")
    write_ledger("middle.ledger", "include inner.ledger\n")
    main = write_ledger("main.ledger", "; top\ninclude middle.ledger\n")

    result = _run("-f", str(main), "check")

    assert result.exit_code == 1
    lines = result.output.splitlines()
    assert lines[0].startswith("Error: failed to parse ledger file inner.ledger:1: unbalanced")
    assert lines[1:3] == [
        "    imported from middle.ledger:1",
        "    imported from main.ledger:2",
    ]


def test_include_error_names_target(write_ledger):
    main = write_ledger("main.ledger", "include missing.ledger\n")
    result = _run("-f", str(main), "check")
    assert result.exit_code == 1
    assert "Error: include_not_found: missing.ledger" in result.output


def test_balance(ledger):
    result = _run("-f", str(ledger), "balance")
    assert result.exit_code == 0, result.output
    assert "$87.50  Assets:Checking" in result.output
    assert "  Checking\n" not in result.output
    assert result.output.splitlines()[-1].strip() == "$0.00"


def test_balance_pattern_and_empty_flag(write_ledger):
    path = write_ledger(
        "zero.ledger",
        "2024/01/01 In\n    Assets:Cash  $5\n    Income\n\n"
        "2024/01/02 Out\n    Expenses:Food  $5\n    Assets:Cash\n",
    )
    hidden = _run("-f", str(path), "balance", "Assets")
    shown = _run("-f", str(path), "balance", "Assets", "--empty")
    assert "Assets:Cash" not in hidden.output
    assert "Assets:Cash" in shown.output
    assert "Expenses:Food" not in shown.output


def test_register(ledger):
    result = _run("-f", str(ledger), "register", "Checking")
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert len(lines) == 2
    assert lines[1].startswith("2024/01/02 Grocer")
    assert lines[1].rstrip().endswith("$87.50")


def test_invalid_register_pattern(ledger):
    result = _run("-f", str(ledger), "register", "([")
    assert result.exit_code == 1
    assert "invalid account pattern" in result.output


def test_print_normalizes_entries(ledger):
    result = _run("-f", str(ledger), "print")
    assert result.exit_code == 0, result.output
    assert "    Equity:Opening  $-100.00\n" in result.output
    assert "    ; :food:\n" in result.output


@pytest.mark.parametrize(
    "command, expected",
    [
        ("accounts", ["Assets:Checking", "Equity:Opening", "Expenses:Food"]),
        ("payees", ["Grocer", "Opening"]),
        ("commodities", ["$"]),
        ("tags", ["food"]),
    ],
)
def test_listing_commands(ledger, command, expected):
    result = _run("-f", str(ledger), command)
    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == expected


def test_strict_mode_reports_first_undeclared_name(ledger):
    result = _run("-f", str(ledger), "--strict", "check")
    assert result.exit_code == 1
    assert "Error: undeclared account: Equity:Opening" in result.output


def test_strict_mode_from_environment(ledger):
    result = _run("-f", str(ledger), "check", env={"LEDGERKIT_STRICT": "1"})
    assert result.exit_code == 1
    assert "undeclared account" in result.output

    relaxed = _run("-f", str(ledger), "--no-strict", "check", env={"LEDGERKIT_STRICT": "1"})
    assert relaxed.exit_code == 0, relaxed.output


def test_strict_mode_passes_fully_declared_journal(write_ledger):
    path = write_ledger(
        "declared.ledger",
        "account Assets:Cash\naccount Income\npayee Salary\ncommodity $\n\n"
        "2024/01/01 Salary\n    Assets:Cash  $5\n    Income\n",
    )
    result = _run("-f", str(path), "--strict", "check")
    assert result.exit_code == 0, result.output


def test_invalid_configuration(ledger):
    result = _run("-f", str(ledger), "check", env={"LEDGERKIT_MAX_INCLUDE_DEPTH": "lots"})
    assert result.exit_code == 1
    assert "invalid configuration" in result.output


def test_timeclock(write_ledger):
    path = write_ledger(
        "time.ledger",
        "i 2024/01/15 09:00:00 Work:Project  Acme\no 2024/01/15 10:30:00\n",
    )
    result = _run("-f", str(path), "timeclock")
    assert result.exit_code == 0, result.output
    assert result.output == "    1.50  Work:Project\n"


BUDGET_LEDGER = textwrap.dedent(
    """
    ~ Monthly
        Expenses:Food  $300.00
        Assets:Checking

    2024/01/05 Grocer
        Expenses:Food  $40.00
        Assets:Checking
    """
).lstrip("\n")


def test_budget(write_ledger):
    path = write_ledger("budget.ledger", BUDGET_LEDGER)
    result = _run("-f", str(path), "budget", "--date", "2024/01/15")
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].split() == ["Actual", "Budget", "Remaining", "Account"]
    assert lines[2] == f"{'$40.00':>14} {'$300.00':>14} {'$260.00':>14}  Expenses:Food"


def test_budget_invalid_date(write_ledger):
    path = write_ledger("budget.ledger", BUDGET_LEDGER)
    result = _run("-f", str(path), "budget", "--date", "January")
    assert result.exit_code == 1
    assert "invalid date 'January'" in result.output


def test_forecast(write_ledger):
    path = write_ledger("budget.ledger", BUDGET_LEDGER)
    result = _run("-f", str(path), "forecast", "--months", "2")
    assert result.exit_code == 0, result.output
    assert f"{'$640.00':>20}  Expenses:Food" in result.output
    assert f"{'$-640.00':>20}  Assets:Checking" in result.output


def test_balance_keeps_trailing_commodities(write_ledger):
    path = write_ledger(
        "chf.ledger", "2024/01/01 Train\n    Expenses:Travel  10 CHF\n    Assets:Cash\n"
    )
    result = _run("-f", str(path), "balance")
    assert result.exit_code == 0, result.output
    assert f"{'-10.00 CHF':>20}  Assets:Cash" in result.output
