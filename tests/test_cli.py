"""End-to-end tests for the lajan command line."""

from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog
from click.testing import Result
from typer.testing import CliRunner

from lajan.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point config and data at a temporary directory and act as alice."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("USER", "alice")
    monkeypatch.delenv("LAJAN_USER", raising=False)
    yield tmp_path
    structlog.reset_defaults()


def invoke(*args: str) -> Result:
    return runner.invoke(app, list(args))


@pytest.fixture
def initialized(isolated_home: Path) -> Path:
    result = invoke("init")
    assert result.exit_code == 0, result.output
    return isolated_home


class TestInit:
    """Tests for 'lajan init'."""

    def test_creates_database_and_config(self, isolated_home: Path) -> None:
        result = invoke("init")

        assert result.exit_code == 0
        assert (isolated_home / "data" / "lajan" / "lajan.db").exists()
        assert (isolated_home / "config" / "lajan" / "config.toml").exists()

    def test_refuses_to_overwrite(self, initialized: Path) -> None:
        result = invoke("init")

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_commands_need_database(self, isolated_home: Path) -> None:
        result = invoke("account", "list")

        assert result.exit_code == 1
        assert "lajan init" in result.output


class TestAccountsAndTransactions:
    """Opening accounts and recording money movement."""

    def test_add_and_list_account(self, initialized: Path) -> None:
        result = invoke("account", "add", "Wallet", "--type", "cash", "--balance", "1000")
        assert result.exit_code == 0, result.output
        assert "1,000.00 HTG" in result.output

        listing = invoke("account", "list")
        assert listing.exit_code == 0
        assert "Wallet" in listing.output

    def test_expense_then_audit(self, initialized: Path) -> None:
        invoke("account", "add", "Wallet", "--type", "cash", "--balance", "1000")

        result = invoke("txn", "add", "expense", "250", "--account", "1", "--category", "transport")
        assert result.exit_code == 0, result.output

        audit = invoke("account", "audit", "1")
        assert audit.exit_code == 0
        assert "750.00 HTG" in audit.output
        assert "matches" in audit.output

    def test_insufficient_funds_exits_1(self, initialized: Path) -> None:
        invoke("account", "add", "Wallet", "--type", "cash", "--balance", "10")

        result = invoke("txn", "add", "expense", "250", "--account", "1", "--category", "transport")

        assert result.exit_code == 1
        assert "Insufficient funds" in result.output

    def test_invalid_amount_exits_1(self, initialized: Path) -> None:
        invoke("account", "add", "Wallet", "--type", "cash")

        result = invoke("txn", "add", "income", "abc", "--account", "1", "--category", "salaire")

        assert result.exit_code == 1
        assert "Invalid amount" in result.output

    def test_other_user_cannot_see_account(self, initialized: Path) -> None:
        invoke("account", "add", "Wallet", "--type", "cash", "--balance", "1000")

        result = invoke("--user", "bob", "txn", "add", "expense", "10", "--account", "1", "--category", "autre")

        assert result.exit_code == 1
        assert "Account 1 not found" in result.output


class TestBudgetsAndSols:
    """Budget and sol flows through the command line."""

    def test_create_and_allocate_budget(self, initialized: Path) -> None:
        invoke("account", "add", "Wallet", "--type", "cash", "--balance", "1000")

        created = invoke(
            "budget", "create", "Manje", "--category", "nourriture", "--amount", "300", "--start", "2025-03-01"
        )
        assert created.exit_code == 0, created.output

        allocated = invoke("budget", "allocate", "1", "--account", "1")
        assert allocated.exit_code == 0, allocated.output

        again = invoke("budget", "allocate", "1", "--account", "1")
        assert again.exit_code == 1
        assert "draft" in again.output

        accounts = invoke("account", "list")
        assert "700.00 HTG" in accounts.output

    def test_custom_category_budget_rejected(self, initialized: Path) -> None:
        result = invoke("budget", "create", "Fritay", "--category", "fritay", "--amount", "100")

        assert result.exit_code == 1

    def test_sol_contribution(self, initialized: Path) -> None:
        invoke("account", "add", "Wallet", "--type", "cash", "--balance", "1000")

        created = invoke(
            "sol", "create", "Lekol", "--type", "personal", "--amount", "100", "--target", "1000", "--start", "2025-01-15"
        )
        assert created.exit_code == 0, created.output

        paid = invoke("sol", "contribute", "1", "--account", "1")
        assert paid.exit_code == 0, paid.output

        shown = invoke("sol", "show", "1")
        assert shown.exit_code == 0
        assert "10%" in shown.output
