"""Pure functions for report calculations and aggregations.

This module contains the functional core for reporting operations:
- No I/O operations (no database, no console, no files)
- No side effects
- Pure data transformations
- Easy to test

All monetary amounts are in minor units (Money type).
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from lajan.domain.models import Account, CategoryName, Currency, Money, Transaction, TransactionType


@dataclass(frozen=True)
class TransactionStats:
    """Immutable income and expense totals for one currency."""

    currency: Currency
    total_income: Money
    total_expense: Money
    income_by_category: dict[CategoryName, Money] = field(default_factory=dict)
    expense_by_category: dict[CategoryName, Money] = field(default_factory=dict)

    @property
    def net(self) -> Money:
        return Money(self.total_income - self.total_expense)


def account_totals(accounts: Iterable[Account]) -> dict[Currency, Money]:
    """Sum balances per currency over active accounts flagged for totals.

    Args:
        accounts: Account snapshots.

    Returns:
        Dictionary with an entry for every currency, zero when unused.
    """
    totals: dict[Currency, Money] = {currency: Money(0) for currency in Currency}
    for account in accounts:
        if account.is_active and account.include_in_total:
            totals[account.currency] = Money(totals[account.currency] + account.balance)
    return totals


def compute_transaction_stats(transactions: Iterable[Transaction], currency: Currency) -> TransactionStats:
    """Aggregate income and expense by category for one currency.

    Transfers and deleted entries are left out; amounts in other currencies
    are never added together.

    Args:
        transactions: Journal entries for the period.
        currency: Currency to report on.

    Returns:
        TransactionStats with per-category breakdowns sorted by amount descending.
    """
    income: dict[CategoryName, int] = {}
    expense: dict[CategoryName, int] = {}

    for txn in transactions:
        if txn.deleted_at is not None or txn.currency != currency:
            continue
        if txn.type == TransactionType.INCOME:
            bucket = income
        elif txn.type == TransactionType.EXPENSE:
            bucket = expense
        else:
            continue
        category = txn.category or CategoryName("autre")
        bucket[category] = bucket.get(category, 0) + txn.amount

    return TransactionStats(
        currency=currency,
        total_income=Money(sum(income.values())),
        total_expense=Money(sum(expense.values())),
        income_by_category=_sorted_breakdown(income),
        expense_by_category=_sorted_breakdown(expense),
    )


def _sorted_breakdown(totals: dict[CategoryName, int]) -> dict[CategoryName, Money]:
    return {cat: Money(amount) for cat, amount in sorted(totals.items(), key=lambda item: (-item[1], item[0]))}


def calculate_histogram_bar_length(amount: Money, max_amount: Money, max_bar_width: int = 30) -> int:
    """Calculate histogram bar length for visualization.

    Args:
        amount: Amount in minor units.
        max_amount: Maximum amount in the dataset.
        max_bar_width: Maximum bar width in characters.

    Returns:
        Bar length in characters.
    """
    if max_amount <= 0:
        return 0
    return int((abs(amount) / max_amount) * max_bar_width)
