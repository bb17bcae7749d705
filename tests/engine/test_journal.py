"""Tests for lajan.engine.journal and the ledger primitives under it."""

from collections.abc import Callable
from datetime import date
from pathlib import Path

import pytest

from lajan.domain.errors import (
    AccountMismatchError,
    CurrencyMismatchError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from lajan.domain.models import Account, Currency, Money, NewTransaction, TransactionType, UserId
from lajan.engine.accounts import deactivate_account, get_account
from lajan.engine.journal import (
    create_transaction,
    delete_transaction,
    get_transaction,
    list_transactions,
    transaction_stats,
    update_transaction,
)
from lajan.engine.ledger import credit, debit
from lajan.store.atomic import atomic, connect

ALICE = UserId("alice")
BOB = UserId("bob")


def expense(account_id: int, amount: int, category: str = "nourriture", **kwargs: object) -> NewTransaction:
    return NewTransaction(
        type=TransactionType.EXPENSE, amount=Money(amount), source_account_id=account_id, category=category, **kwargs
    )


def income(account_id: int, amount: int, category: str = "salaire") -> NewTransaction:
    return NewTransaction(type=TransactionType.INCOME, amount=Money(amount), source_account_id=account_id, category=category)


def transfer(source: int, destination: int, amount: int, fee: int = 0) -> NewTransaction:
    return NewTransaction(
        type=TransactionType.TRANSFER,
        amount=Money(amount),
        source_account_id=source,
        destination_account_id=destination,
        fee=Money(fee),
    )


def balance(db_path: Path, account: Account) -> Money:
    return get_account(account.user_id, account.id, db_path).balance


class TestCreateTransaction:
    """Tests for create_transaction."""

    def test_expense_debits_source(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=1000)

        txn = create_transaction(ALICE, expense(wallet.id, 25000), db_path=db_path, today=date(2025, 3, 5))

        assert balance(db_path, wallet) == Money(75000)
        assert txn.date == date(2025, 3, 5)
        assert txn.currency == Currency.HTG
        assert txn.created_at is not None

    def test_explicit_date_is_kept(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        """A back-dated entry keeps its own date instead of today."""
        wallet = make_account(balance=1000)

        txn = create_transaction(
            ALICE, expense(wallet.id, 100, txn_date=date(2025, 1, 5)), db_path=db_path, today=date(2025, 3, 5)
        )

        assert txn.date == date(2025, 1, 5)
        assert get_transaction(ALICE, txn.id, db_path).date == date(2025, 1, 5)

    def test_income_credits_account(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=0)

        create_transaction(ALICE, income(wallet.id, 40000), db_path=db_path)

        assert balance(db_path, wallet) == Money(40000)

    def test_transfer_moves_amount_and_charges_fee(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        """Source pays amount + fee; destination gets amount."""
        wallet = make_account(balance=1000)
        moncash = make_account(balance=0, name="MonCash")

        create_transaction(ALICE, transfer(wallet.id, moncash.id, 50000, fee=1500), db_path=db_path)

        assert balance(db_path, wallet) == Money(100000 - 51500)
        assert balance(db_path, moncash) == Money(50000)

    def test_insufficient_funds_rejected_and_nothing_written(
        self, db_path: Path, make_account: Callable[..., Account]
    ) -> None:
        """A failed debit leaves both balance and journal untouched."""
        wallet = make_account(balance=100)

        with pytest.raises(InsufficientFundsError):
            create_transaction(ALICE, expense(wallet.id, 10001), db_path=db_path)

        assert balance(db_path, wallet) == Money(10000)
        assert list_transactions(ALICE, db_path=db_path) == []

    def test_fee_counts_towards_funds_check(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=100)
        other = make_account(balance=0, name="Other")

        with pytest.raises(InsufficientFundsError):
            create_transaction(ALICE, transfer(wallet.id, other.id, 10000, fee=1), db_path=db_path)

    def test_spending_exactly_everything_allowed(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=100)

        create_transaction(ALICE, expense(wallet.id, 10000), db_path=db_path)

        assert balance(db_path, wallet) == Money(0)

    def test_currency_mismatch_between_accounts(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        """Transfers never convert between currencies."""
        htg = make_account(balance=1000, currency=Currency.HTG)
        usd = make_account(balance=0, currency=Currency.USD, name="Dollars")

        with pytest.raises(CurrencyMismatchError):
            create_transaction(ALICE, transfer(htg.id, usd.id, 1000), db_path=db_path)

        assert balance(db_path, htg) == Money(100000)

    def test_explicit_currency_must_match_account(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(currency=Currency.HTG)

        with pytest.raises(CurrencyMismatchError):
            create_transaction(ALICE, expense(wallet.id, 100, currency=Currency.USD), db_path=db_path)

    def test_foreign_account_looks_missing(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        """Using someone else's account fails as if it did not exist."""
        bobs = make_account(user_id=BOB)

        with pytest.raises(AccountMismatchError) as excinfo:
            create_transaction(ALICE, expense(bobs.id, 100), db_path=db_path)

        assert isinstance(excinfo.value, NotFoundError)
        assert str(excinfo.value) == f"Account {bobs.id} not found"

    def test_missing_account(self, db_path: Path) -> None:
        with pytest.raises(NotFoundError):
            create_transaction(ALICE, expense(999, 100), db_path=db_path)

    def test_inactive_account_refused(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account()
        deactivate_account(ALICE, wallet.id, db_path)

        with pytest.raises(InvalidStateError):
            create_transaction(ALICE, income(wallet.id, 100), db_path=db_path)

    def test_custom_category_is_stored_normalized(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account()

        txn = create_transaction(ALICE, expense(wallet.id, 100, category="Street Food"), db_path=db_path)

        assert txn.category == "street_food"

    def test_invalid_input(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account()

        with pytest.raises(ValidationError):
            create_transaction(ALICE, transfer(wallet.id, wallet.id, 100), db_path=db_path)


class TestDeleteTransaction:
    """Tests for delete_transaction."""

    def test_expense_reversal_restores_balance(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=1000)
        txn = create_transaction(ALICE, expense(wallet.id, 30000), db_path=db_path)

        deleted = delete_transaction(ALICE, txn.id, db_path)

        assert deleted.deleted_at is not None
        assert balance(db_path, wallet) == Money(100000)
        assert list_transactions(ALICE, db_path=db_path) == []

    def test_transfer_reversal_restores_both_sides(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=1000)
        bank = make_account(balance=0, name="Bank")
        txn = create_transaction(ALICE, transfer(wallet.id, bank.id, 40000, fee=700), db_path=db_path)

        delete_transaction(ALICE, txn.id, db_path)

        assert balance(db_path, wallet) == Money(100000)
        assert balance(db_path, bank) == Money(0)

    def test_income_reversal_cannot_overdraw(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        """Deleting income that has since been spent would go negative, so it fails."""
        wallet = make_account(balance=0)
        pay = create_transaction(ALICE, income(wallet.id, 50000), db_path=db_path)
        create_transaction(ALICE, expense(wallet.id, 40000), db_path=db_path)

        with pytest.raises(InsufficientFundsError):
            delete_transaction(ALICE, pay.id, db_path)

        assert balance(db_path, wallet) == Money(10000)
        assert get_transaction(ALICE, pay.id, db_path).deleted_at is None

    def test_missing_destination_leg_is_skipped(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        """If the destination account row is gone, only the source is reversed."""
        wallet = make_account(balance=1000)
        gone = make_account(balance=0, name="Gone")
        txn = create_transaction(ALICE, transfer(wallet.id, gone.id, 20000, fee=100), db_path=db_path)
        with atomic(db_path) as conn:
            conn.execute("DELETE FROM accounts WHERE id = ?", (gone.id,))

        delete_transaction(ALICE, txn.id, db_path)

        assert balance(db_path, wallet) == Money(100000)

    def test_deleting_twice_fails(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account()
        txn = create_transaction(ALICE, expense(wallet.id, 100), db_path=db_path)
        delete_transaction(ALICE, txn.id, db_path)

        with pytest.raises(NotFoundError):
            delete_transaction(ALICE, txn.id, db_path)

    def test_other_users_transaction_not_found(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account()
        txn = create_transaction(ALICE, expense(wallet.id, 100), db_path=db_path)

        with pytest.raises(NotFoundError):
            delete_transaction(BOB, txn.id, db_path)


class TestUpdateTransaction:
    """Tests for update_transaction."""

    def test_edits_details_without_touching_balance(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=1000)
        txn = create_transaction(ALICE, expense(wallet.id, 5000, category="autre"), db_path=db_path)

        updated = update_transaction(
            ALICE, txn.id, description="Taxi", category="Transport", txn_date=date(2025, 2, 1), db_path=db_path
        )

        assert updated.description == "Taxi"
        assert updated.category == "transport"
        assert get_transaction(ALICE, txn.id, db_path).date == date(2025, 2, 1)
        assert balance(db_path, wallet) == Money(95000)

    def test_description_length_checked(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account()
        txn = create_transaction(ALICE, expense(wallet.id, 100), db_path=db_path)

        with pytest.raises(ValidationError):
            update_transaction(ALICE, txn.id, description="x" * 201, db_path=db_path)


class TestTransactionStats:
    """Tests for transaction_stats."""

    def test_month_totals(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=1000)
        create_transaction(ALICE, income(wallet.id, 80000), db_path=db_path, today=date(2025, 3, 2))
        create_transaction(ALICE, expense(wallet.id, 15000), db_path=db_path, today=date(2025, 3, 3))
        create_transaction(ALICE, expense(wallet.id, 5000), db_path=db_path, today=date(2025, 2, 27))

        stats = transaction_stats(ALICE, Currency.HTG, "month", db_path=db_path, today=date(2025, 3, 10))

        assert stats.total_income == Money(80000)
        assert stats.total_expense == Money(15000)
        assert stats.net == Money(65000)


class TestLedgerPrimitives:
    """credit and debit refuse to run outside an atomic unit."""

    def test_credit_outside_unit_raises(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account()

        with connect(db_path) as conn, pytest.raises(RuntimeError, match="atomic unit"):
            credit(conn, wallet, Money(100))

    def test_debit_outside_unit_raises(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account()

        with connect(db_path) as conn, pytest.raises(RuntimeError, match="atomic unit"):
            debit(conn, wallet, Money(100))

    def test_unit_rolls_back_on_error(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        """A failure after a debit undoes the debit."""
        wallet = make_account(balance=1000)

        with pytest.raises(ValueError), atomic(db_path) as conn:
            debit(conn, wallet, Money(50000))
            raise ValueError("boom")

        assert balance(db_path, wallet) == Money(100000)

    def test_debit_never_goes_negative(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=1)

        with pytest.raises(InsufficientFundsError), atomic(db_path) as conn:
            debit(conn, wallet, Money(101))
