"""Tests for lajan.domain.budget pure functions."""

from dataclasses import replace
from datetime import date, datetime

from lajan.domain.budget import (
    alert_state,
    calculate_return,
    check_activate,
    check_allocate,
    check_archive,
    check_delete,
    check_edit,
    check_return,
    compute_budget_stats,
    compute_budget_view,
    find_overlapping,
    is_expired,
    mark_allocated,
    mark_archived,
    mark_completed,
    mark_unarchived,
    validate_budget_fields,
)
from lajan.domain.models import AlertState, Budget, BudgetStatus, CategoryName, Currency, Money, UserId


def make_budget(
    budget_id: int = 1,
    amount: int = 100000,
    status: BudgetStatus = BudgetStatus.DRAFT,
    category: str = "nourriture",
    start: date = date(2025, 3, 1),
    end: date = date(2025, 4, 1),
    threshold: int = 80,
) -> Budget:
    return Budget(
        id=budget_id,
        user_id=UserId("alice"),
        name="Groceries",
        category=CategoryName(category),
        amount=Money(amount),
        currency=Currency.HTG,
        start_date=start,
        end_date=end,
        alert_threshold=threshold,
        status=status,
        source_account_id=7 if status in (BudgetStatus.ALLOCATED, BudgetStatus.ACTIVE) else None,
    )


class TestAlertState:
    """Tests for alert_state."""

    def test_below_threshold_is_ok(self) -> None:
        assert alert_state(79, 80) == AlertState.OK

    def test_at_threshold_is_warning(self) -> None:
        """Threshold itself triggers the warning."""
        assert alert_state(80, 80) == AlertState.WARNING

    def test_at_hundred_is_exceeded(self) -> None:
        """Fully spent counts as exceeded."""
        assert alert_state(100, 80) == AlertState.EXCEEDED

    def test_over_hundred_is_exceeded(self) -> None:
        assert alert_state(140, 80) == AlertState.EXCEEDED


class TestComputeBudgetView:
    """Tests for compute_budget_view."""

    def test_partial_spend(self) -> None:
        """Should derive percentage, remaining and alert from spent."""
        view = compute_budget_view(make_budget(amount=100000), Money(30000))

        assert view.spent == Money(30000)
        assert view.percentage == 30
        assert view.remaining == Money(70000)
        assert view.alert == AlertState.OK

    def test_overspend_clamps_remaining(self) -> None:
        """Remaining never goes negative."""
        view = compute_budget_view(make_budget(amount=100000), Money(125000))

        assert view.percentage == 125
        assert view.remaining == Money(0)
        assert view.alert == AlertState.EXCEEDED

    def test_percentage_rounds_half_up(self) -> None:
        """12.5% should round to 13."""
        view = compute_budget_view(make_budget(amount=80000), Money(10000))

        assert view.percentage == 13


class TestComputeBudgetStats:
    """Tests for compute_budget_stats."""

    def test_counts_alert_states(self) -> None:
        views = [
            compute_budget_view(make_budget(1, amount=10000), Money(1000)),
            compute_budget_view(make_budget(2, amount=10000), Money(8500)),
            compute_budget_view(make_budget(3, amount=10000), Money(12000)),
        ]

        stats = compute_budget_stats(views)

        assert stats.total_budgets == 3
        assert stats.total_budget == Money(30000)
        assert stats.total_spent == Money(21500)
        assert stats.remaining == Money(8500)
        assert (stats.ok, stats.warning, stats.exceeded) == (1, 1, 1)
        assert stats.respected == 2

    def test_empty(self) -> None:
        stats = compute_budget_stats([])

        assert stats.total_budgets == 0
        assert stats.remaining == Money(0)


class TestValidateBudgetFields:
    """Tests for validate_budget_fields."""

    def test_valid(self) -> None:
        assert validate_budget_fields("Food", "nourriture", Money(100), date(2025, 3, 1), date(2025, 4, 1), 80) is None

    def test_category_must_be_known_expense(self) -> None:
        """Custom and income categories cannot be budgeted."""
        error = validate_budget_fields("Food", "snacks", Money(100), date(2025, 3, 1), date(2025, 4, 1), 80)

        assert error is not None
        assert "known expense categories" in error
        assert validate_budget_fields("Pay", "salaire", Money(100), date(2025, 3, 1), date(2025, 4, 1), 80)

    def test_category_is_normalized(self) -> None:
        """'Paris Sportifs' should match paris_sportifs."""
        assert (
            validate_budget_fields("Bets", "Paris Sportifs", Money(100), date(2025, 3, 1), date(2025, 4, 1), 80)
            is None
        )

    def test_empty_window_rejected(self) -> None:
        """start must be strictly before end."""
        error = validate_budget_fields("Food", "nourriture", Money(100), date(2025, 3, 1), date(2025, 3, 1), 80)

        assert error == "End date must be after start date"

    def test_non_positive_amount_rejected(self) -> None:
        error = validate_budget_fields("Food", "nourriture", Money(0), date(2025, 3, 1), date(2025, 4, 1), 80)

        assert error == "Amount must be positive"

    def test_threshold_out_of_range_rejected(self) -> None:
        assert validate_budget_fields("Food", "nourriture", Money(100), date(2025, 3, 1), date(2025, 4, 1), 101)


class TestFindOverlapping:
    """Tests for find_overlapping."""

    def test_adjacent_windows_do_not_overlap(self) -> None:
        """Half-open windows [Mar, Apr) and [Apr, May) only touch."""
        march = make_budget(1)
        april = make_budget(2, start=date(2025, 4, 1), end=date(2025, 5, 1))

        assert find_overlapping(april, [march]) is None

    def test_overlap_in_same_category_found(self) -> None:
        march = make_budget(1)
        mid = make_budget(2, start=date(2025, 3, 15), end=date(2025, 4, 15))

        assert find_overlapping(mid, [march]) == march

    def test_other_category_ignored(self) -> None:
        march = make_budget(1)
        transport = make_budget(2, category="transport")

        assert find_overlapping(transport, [march]) is None

    def test_completed_and_archived_ignored(self) -> None:
        """Only live budgets block a window."""
        done = make_budget(1, status=BudgetStatus.COMPLETED)
        archived = make_budget(2, status=BudgetStatus.ARCHIVED)

        assert find_overlapping(make_budget(3), [done, archived]) is None

    def test_budget_does_not_overlap_itself(self) -> None:
        budget = make_budget(1)

        assert find_overlapping(budget, [budget]) is None


class TestLifecycleChecks:
    """Tests for the check_* transition guards."""

    def test_allocate_only_from_draft(self) -> None:
        assert check_allocate(make_budget()) is None
        assert check_allocate(make_budget(status=BudgetStatus.ALLOCATED)) is not None
        assert check_allocate(make_budget(status=BudgetStatus.COMPLETED)) is not None

    def test_activate_needs_started_window(self) -> None:
        """Activation waits for the start date."""
        budget = make_budget(status=BudgetStatus.ALLOCATED)

        assert check_activate(budget, date(2025, 2, 28)) is not None
        assert check_activate(budget, date(2025, 3, 1)) is None

    def test_activate_only_from_allocated(self) -> None:
        assert check_activate(make_budget(), date(2025, 3, 5)) is not None

    def test_return_only_when_funded(self) -> None:
        assert check_return(make_budget(status=BudgetStatus.ALLOCATED)) is None
        assert check_return(make_budget(status=BudgetStatus.ACTIVE)) is None
        assert check_return(make_budget()) is not None
        assert check_return(make_budget(status=BudgetStatus.COMPLETED)) is not None

    def test_archive_blocked_for_completed(self) -> None:
        assert check_archive(make_budget(status=BudgetStatus.ACTIVE)) is None
        assert check_archive(make_budget(status=BudgetStatus.COMPLETED)) is not None
        assert check_archive(make_budget(status=BudgetStatus.ARCHIVED)) is not None

    def test_delete_refuses_funded_budgets(self) -> None:
        """Deleting a funded budget would strand its money."""
        assert check_delete(make_budget()) is None
        assert check_delete(make_budget(status=BudgetStatus.COMPLETED)) is None
        assert check_delete(make_budget(status=BudgetStatus.ALLOCATED)) is not None
        assert check_delete(mark_archived(make_budget(status=BudgetStatus.ACTIVE))) is not None
        assert check_delete(mark_archived(make_budget())) is None

    def test_amount_fixed_after_allocation(self) -> None:
        assert check_edit(make_budget(), amount_changed=True) is None
        assert check_edit(make_budget(status=BudgetStatus.ACTIVE), amount_changed=False) is None
        assert check_edit(make_budget(status=BudgetStatus.ACTIVE), amount_changed=True) is not None
        assert check_edit(mark_archived(make_budget(status=BudgetStatus.ALLOCATED)), amount_changed=True) is not None

    def test_completed_not_editable(self) -> None:
        assert check_edit(make_budget(status=BudgetStatus.COMPLETED), amount_changed=False) is not None


class TestTransitions:
    """Tests for the mark_* transitions."""

    def test_mark_allocated_records_source(self) -> None:
        now = datetime(2025, 3, 1, 9, 0)

        allocated = mark_allocated(make_budget(), 42, now)

        assert allocated.status == BudgetStatus.ALLOCATED
        assert allocated.source_account_id == 42
        assert allocated.allocated_at == now

    def test_archive_round_trip_restores_status(self) -> None:
        """Unarchive returns to the status the budget was archived from."""
        active = make_budget(status=BudgetStatus.ACTIVE)

        archived = mark_archived(active)
        restored = mark_unarchived(archived)

        assert archived.status == BudgetStatus.ARCHIVED
        assert archived.archived_from == BudgetStatus.ACTIVE
        assert restored.status == BudgetStatus.ACTIVE
        assert restored.archived_from is None

    def test_mark_completed_stamps_return(self) -> None:
        now = datetime(2025, 4, 1, 0, 5)

        completed = mark_completed(make_budget(status=BudgetStatus.ACTIVE), now)

        assert completed.status == BudgetStatus.COMPLETED
        assert completed.returned_at == now


class TestCalculateReturn:
    """Tests for calculate_return."""

    def test_returns_unspent(self) -> None:
        """1000 budget with 300 + 120 spent returns 580."""
        result = calculate_return(Money(100000), Money(42000))

        assert result.returned == Money(58000)
        assert result.spent == Money(42000)

    def test_overspent_returns_nothing(self) -> None:
        result = calculate_return(Money(100000), Money(130000))

        assert result.returned == Money(0)

    def test_exactly_spent_returns_nothing(self) -> None:
        assert calculate_return(Money(100000), Money(100000)).returned == Money(0)


class TestIsExpired:
    """Tests for is_expired."""

    def test_funded_budget_expires_on_end_date(self) -> None:
        """End date is exclusive, so the budget is over on that day."""
        budget = make_budget(status=BudgetStatus.ACTIVE)

        assert not is_expired(budget, date(2025, 3, 31))
        assert is_expired(budget, date(2025, 4, 1))

    def test_draft_never_expires(self) -> None:
        """Drafts hold no money and are not swept."""
        assert not is_expired(make_budget(), date(2026, 1, 1))

    def test_returned_budget_not_expired(self) -> None:
        budget = replace(make_budget(status=BudgetStatus.ACTIVE), returned_at=datetime(2025, 4, 1))

        assert not is_expired(budget, date(2025, 4, 2))
