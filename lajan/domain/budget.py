"""Pure functions for the budget lifecycle and derived figures.

This module contains the functional core for budget operations:
- No I/O operations (no database, no console, no files)
- No side effects
- Pure data transformations
- Easy to test

Lifecycle: draft -> allocated -> active -> completed. Archived is reachable
from any non-completed status and remembers where it came from.

All monetary amounts are in minor units (Money type).
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date, datetime

from lajan.dates import windows_overlap
from lajan.domain.categories import is_budgetable
from lajan.domain.models import AlertState, Budget, BudgetStatus, Money
from lajan.domain.money import percent_of

# Statuses that count towards the one-budget-per-category-window rule
LIVE_STATUSES = frozenset({BudgetStatus.DRAFT, BudgetStatus.ALLOCATED, BudgetStatus.ACTIVE})

# Statuses in which the envelope holds money taken from an account
FUNDED_STATUSES = frozenset({BudgetStatus.ALLOCATED, BudgetStatus.ACTIVE})

MAX_NAME_LENGTH = 50


@dataclass(frozen=True)
class BudgetView:
    """Immutable budget with its live spending figures."""

    budget: Budget
    spent: Money
    percentage: int
    remaining: Money
    alert: AlertState


@dataclass(frozen=True)
class ReturnResult:
    """Immutable outcome of returning a budget's unused funds."""

    returned: Money
    spent: Money


@dataclass(frozen=True)
class BudgetStats:
    """Immutable totals across a set of budgets."""

    total_budget: Money
    total_spent: Money
    remaining: Money
    total_budgets: int
    ok: int
    warning: int
    exceeded: int

    @property
    def respected(self) -> int:
        return self.ok + self.warning


def alert_state(percentage: int, threshold: int) -> AlertState:
    """Classify spend percentage against the alert threshold."""
    if percentage >= 100:
        return AlertState.EXCEEDED
    if percentage >= threshold:
        return AlertState.WARNING
    return AlertState.OK


def compute_budget_view(budget: Budget, spent: Money) -> BudgetView:
    """Derive percentage, remaining and alert state from a spend aggregate.

    Args:
        budget: Budget snapshot.
        spent: Sum of matching expenses in minor units.

    Returns:
        BudgetView; nothing here is ever persisted.
    """
    percentage = percent_of(spent, budget.amount)
    return BudgetView(
        budget=budget,
        spent=spent,
        percentage=percentage,
        remaining=Money(max(0, budget.amount - spent)),
        alert=alert_state(percentage, budget.alert_threshold),
    )


def compute_budget_stats(views: Iterable[BudgetView]) -> BudgetStats:
    """Aggregate totals and alert counts over budget views."""
    total_budget = 0
    total_spent = 0
    counts = {state: 0 for state in AlertState}
    total = 0

    for view in views:
        total += 1
        total_budget += view.budget.amount
        total_spent += view.spent
        counts[view.alert] += 1

    return BudgetStats(
        total_budget=Money(total_budget),
        total_spent=Money(total_spent),
        remaining=Money(max(0, total_budget - total_spent)),
        total_budgets=total,
        ok=counts[AlertState.OK],
        warning=counts[AlertState.WARNING],
        exceeded=counts[AlertState.EXCEEDED],
    )


def validate_budget_fields(
    name: str,
    category: str,
    amount: Money,
    start_date: date,
    end_date: date,
    alert_threshold: int,
) -> str | None:
    """Validate budget input.

    Returns:
        Error message, or None if the input is well formed.
    """
    if not name.strip():
        return "Name is required"
    if len(name) > MAX_NAME_LENGTH:
        return f"Name cannot exceed {MAX_NAME_LENGTH} characters"
    if not is_budgetable(category):
        return f"Budgets can only target known expense categories, not '{category}'"
    if amount <= 0:
        return "Amount must be positive"
    if start_date >= end_date:
        return "End date must be after start date"
    if not 0 <= alert_threshold <= 100:
        return "Alert threshold must be between 0 and 100"
    return None


def find_overlapping(candidate: Budget, existing: Iterable[Budget]) -> Budget | None:
    """Find a live budget in the same category whose window overlaps the candidate's.

    Args:
        candidate: Budget being created or edited.
        existing: Budgets of the same user.

    Returns:
        First conflicting budget, or None.
    """
    for other in existing:
        if other.id == candidate.id:
            continue
        if other.category != candidate.category or other.status not in LIVE_STATUSES:
            continue
        if windows_overlap(candidate.start_date, candidate.end_date, other.start_date, other.end_date):
            return other
    return None


def check_allocate(budget: Budget) -> str | None:
    """Check that a budget may be allocated."""
    if budget.status != BudgetStatus.DRAFT:
        return f"Only draft budgets can be allocated (budget is {budget.status.value})"
    return None


def check_activate(budget: Budget, today: date) -> str | None:
    """Check that an allocated budget may become active."""
    if budget.status != BudgetStatus.ALLOCATED:
        return f"Only allocated budgets can be activated (budget is {budget.status.value})"
    if today < budget.start_date:
        return f"Budget period starts on {budget.start_date.isoformat()}"
    return None


def check_return(budget: Budget) -> str | None:
    """Check that a budget may return its unused funds."""
    if budget.status not in FUNDED_STATUSES:
        return f"Only allocated or active budgets can return funds (budget is {budget.status.value})"
    if budget.source_account_id is None:
        return "Budget has no source account"
    return None


def check_archive(budget: Budget) -> str | None:
    """Check that a budget may be archived."""
    if budget.status in (BudgetStatus.COMPLETED, BudgetStatus.ARCHIVED):
        return f"Cannot archive a {budget.status.value} budget"
    return None


def check_delete(budget: Budget) -> str | None:
    """Check that a budget may be deleted without stranding envelope funds."""
    if budget.status in (BudgetStatus.DRAFT, BudgetStatus.COMPLETED):
        return None
    if budget.status == BudgetStatus.ARCHIVED and budget.archived_from == BudgetStatus.DRAFT:
        return None
    return f"Cannot delete a budget that holds allocated funds (budget is {budget.status.value})"


def check_edit(budget: Budget, amount_changed: bool) -> str | None:
    """Check that a budget may be edited.

    The amount is fixed once funds have been taken from the source account,
    since returning funds computes remaining from it.
    """
    if budget.status == BudgetStatus.COMPLETED:
        return "Completed budgets cannot be edited"
    holds_funds = budget.status in FUNDED_STATUSES or budget.archived_from in FUNDED_STATUSES
    if amount_changed and holds_funds:
        return "Amount cannot change after allocation"
    return None


def mark_allocated(budget: Budget, account_id: int, now: datetime) -> Budget:
    """Transition draft -> allocated."""
    return replace(budget, status=BudgetStatus.ALLOCATED, source_account_id=account_id, allocated_at=now)


def mark_active(budget: Budget) -> Budget:
    """Transition allocated -> active."""
    return replace(budget, status=BudgetStatus.ACTIVE)


def mark_completed(budget: Budget, now: datetime) -> Budget:
    """Transition allocated/active -> completed."""
    return replace(budget, status=BudgetStatus.COMPLETED, returned_at=now)


def mark_archived(budget: Budget) -> Budget:
    """Archive a budget, remembering its current status."""
    return replace(budget, status=BudgetStatus.ARCHIVED, archived_from=budget.status)


def mark_unarchived(budget: Budget) -> Budget:
    """Restore an archived budget to the status it was archived from."""
    restored = budget.archived_from or BudgetStatus.DRAFT
    return replace(budget, status=restored, archived_from=None)


def calculate_return(amount: Money, spent: Money) -> ReturnResult:
    """Split a budget into what was spent and what goes back to the account.

    Args:
        amount: Budget amount in minor units.
        spent: Matching expenses in minor units.

    Returns:
        ReturnResult; returned is 0 when the envelope was fully used or overspent.
    """
    return ReturnResult(returned=Money(max(0, amount - spent)), spent=spent)


def is_expired(budget: Budget, today: date) -> bool:
    """Check whether a funded budget's window is over and it has not returned yet."""
    return budget.status in FUNDED_STATUSES and budget.end_date <= today and budget.returned_at is None
