"""Tests for lajan.domain.report pure functions."""

from datetime import date, datetime

from lajan.domain.models import (
    Account,
    AccountType,
    CategoryName,
    Currency,
    Money,
    Transaction,
    TransactionType,
    UserId,
)
from lajan.domain.report import account_totals, calculate_histogram_bar_length, compute_transaction_stats

USER = UserId("alice")


def make_account(account_id: int, currency: Currency, balance: int, active: bool = True, included: bool = True) -> Account:
    return Account(
        id=account_id,
        user_id=USER,
        name=f"Account {account_id}",
        type=AccountType.BANK,
        currency=currency,
        balance=Money(balance),
        include_in_total=included,
        is_active=active,
    )


def make_txn(
    txn_type: TransactionType,
    amount: int,
    category: str | None,
    currency: Currency = Currency.HTG,
    deleted: bool = False,
) -> Transaction:
    return Transaction(
        id=1,
        user_id=USER,
        type=txn_type,
        amount=Money(amount),
        currency=currency,
        source_account_id=1,
        destination_account_id=2 if txn_type == TransactionType.TRANSFER else None,
        date=date(2025, 3, 10),
        category=CategoryName(category) if category else None,
        deleted_at=datetime(2025, 3, 11) if deleted else None,
    )


class TestAccountTotals:
    """Tests for account_totals."""

    def test_sums_per_currency(self) -> None:
        """Currencies are never added together."""
        totals = account_totals(
            [
                make_account(1, Currency.HTG, 10000),
                make_account(2, Currency.HTG, 2500),
                make_account(3, Currency.USD, 700),
            ]
        )

        assert totals == {Currency.HTG: Money(12500), Currency.USD: Money(700)}

    def test_skips_inactive_and_excluded(self) -> None:
        totals = account_totals(
            [
                make_account(1, Currency.HTG, 10000),
                make_account(2, Currency.HTG, 5000, active=False),
                make_account(3, Currency.HTG, 3000, included=False),
            ]
        )

        assert totals[Currency.HTG] == Money(10000)

    def test_unused_currency_is_zero(self) -> None:
        assert account_totals([])[Currency.USD] == Money(0)


class TestComputeTransactionStats:
    """Tests for compute_transaction_stats."""

    def test_breakdown_sorted_by_amount(self) -> None:
        stats = compute_transaction_stats(
            [
                make_txn(TransactionType.EXPENSE, 3000, "transport"),
                make_txn(TransactionType.EXPENSE, 9000, "nourriture"),
                make_txn(TransactionType.EXPENSE, 1000, "transport"),
                make_txn(TransactionType.INCOME, 50000, "salaire"),
            ],
            Currency.HTG,
        )

        assert list(stats.expense_by_category.items()) == [("nourriture", Money(9000)), ("transport", Money(4000))]
        assert stats.total_expense == Money(13000)
        assert stats.total_income == Money(50000)
        assert stats.net == Money(37000)

    def test_ignores_transfers_deleted_and_other_currencies(self) -> None:
        stats = compute_transaction_stats(
            [
                make_txn(TransactionType.TRANSFER, 5000, None),
                make_txn(TransactionType.EXPENSE, 2000, "transport", deleted=True),
                make_txn(TransactionType.EXPENSE, 900, "transport", currency=Currency.USD),
            ],
            Currency.HTG,
        )

        assert stats.total_expense == Money(0)
        assert stats.expense_by_category == {}


class TestCalculateHistogramBarLength:
    """Tests for calculate_histogram_bar_length."""

    def test_max_amount_gets_full_width(self) -> None:
        assert calculate_histogram_bar_length(Money(5000), Money(5000), 30) == 30

    def test_half_amount(self) -> None:
        assert calculate_histogram_bar_length(Money(2500), Money(5000), 30) == 15

    def test_zero_max(self) -> None:
        assert calculate_histogram_bar_length(Money(100), Money(0)) == 0
