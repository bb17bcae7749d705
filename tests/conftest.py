"""Shared fixtures: a fresh database per test and helpers to seed it."""

from collections.abc import Callable
from pathlib import Path

import pytest

from lajan.domain.models import Account, AccountType, Currency, Money, UserId
from lajan.engine.accounts import create_account
from lajan.store.schema import init_database

ALICE = UserId("alice")
BOB = UserId("bob")


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Initialized database in a temporary directory."""
    path = tmp_path / "lajan.db"
    init_database(path)
    return path


@pytest.fixture
def make_account(db_path: Path) -> Callable[..., Account]:
    """Factory that opens an account for a user with a given balance in major units."""

    def _make(
        balance: int = 1000,
        user_id: UserId = ALICE,
        currency: Currency = Currency.HTG,
        name: str = "Wallet",
        account_type: AccountType = AccountType.CASH,
    ) -> Account:
        return create_account(
            user_id,
            name,
            account_type,
            currency=currency,
            initial_balance=Money(balance * 100),
            db_path=db_path,
        )

    return _make
