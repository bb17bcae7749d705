"""Budget allocator: funds budget envelopes from accounts and returns what is left.

allocate and return each run as one atomic unit covering the account
balance, the journal entry and the budget status. The expired sweep gives
every budget its own unit so one failure cannot undo another's return.
"""

import sqlite3
from dataclasses import dataclass, replace
from datetime import date, datetime
from pathlib import Path

import structlog

from lajan.domain import budget as rules
from lajan.domain.categories import BUDGET_ALLOCATION, BUDGET_RETURN, normalize_category_name
from lajan.domain.errors import InvalidStateError, LedgerError, NotFoundError, ValidationError
from lajan.domain.models import (
    Budget,
    BudgetPeriod,
    BudgetStatus,
    CategoryName,
    Currency,
    LinkedModule,
    Money,
    Transaction,
    TransactionType,
    UserId,
)
from lajan.engine.journal import record
from lajan.engine.ledger import credit, debit, load_account, load_usable_account
from lajan.store import queries
from lajan.store.atomic import DEFAULT_LOCK_TIMEOUT, atomic, connect

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SweepOutcome:
    """Immutable per-budget result of the expired sweep."""

    budget_id: int
    user_id: UserId
    returned: Money | None = None
    spent: Money | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _load(conn: sqlite3.Connection, user_id: UserId, budget_id: int) -> Budget:
    budget = queries.get_budget(conn, user_id, budget_id)
    if budget is None:
        raise NotFoundError("budget", budget_id)
    return budget


def _check(error: str | None, exc: type[LedgerError] = InvalidStateError) -> None:
    if error:
        raise exc(error)


def _spent(conn: sqlite3.Connection, budget: Budget) -> Money:
    return queries.sum_expenses(conn, budget.user_id, budget.category, budget.currency, budget.start_date, budget.end_date)


def _check_overlap(conn: sqlite3.Connection, candidate: Budget) -> None:
    siblings = queries.list_budgets(conn, candidate.user_id, statuses=set(rules.LIVE_STATUSES), category=candidate.category)
    conflict = rules.find_overlapping(candidate, siblings)
    if conflict is not None:
        raise ValidationError(
            f"Budget '{conflict.name}' already covers {candidate.category} "
            f"from {conflict.start_date.isoformat()} to {conflict.end_date.isoformat()}"
        )


def create_budget(
    user_id: UserId,
    name: str,
    category: str,
    amount: Money,
    start_date: date,
    end_date: date,
    currency: Currency = Currency.HTG,
    period: BudgetPeriod = BudgetPeriod.MONTHLY,
    alert_threshold: int = 80,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Budget:
    """Create a draft budget for a category and window [start_date, end_date).

    Raises:
        ValidationError: Invalid fields, or a live budget already covers an
            overlapping window for the same category.
    """
    _check(rules.validate_budget_fields(name, category, amount, start_date, end_date, alert_threshold), ValidationError)

    budget = Budget(
        id=0,
        user_id=user_id,
        name=name.strip(),
        category=CategoryName(normalize_category_name(category)),
        amount=amount,
        currency=currency,
        start_date=start_date,
        end_date=end_date,
        period=period,
        alert_threshold=alert_threshold,
    )

    with atomic(db_path, timeout) as conn:
        _check_overlap(conn, budget)
        budget = replace(budget, id=queries.insert_budget(conn, budget))

    log.info("budget_created", user_id=user_id, budget_id=budget.id, category=budget.category, amount=amount)
    return budget


def allocate(conn: sqlite3.Connection, budget: Budget, account_id: int, now: datetime) -> Budget:
    """Move the budget amount from an account into the envelope, inside the caller's unit.

    Raises:
        InvalidStateError: Budget is not a draft, or the account is inactive.
        AccountMismatchError: Account belongs to another user.
        NotFoundError: Account does not exist.
        CurrencyMismatchError: Account currency differs from the budget's.
        InsufficientFundsError: Account balance below the budget amount.
    """
    _check(rules.check_allocate(budget))
    account = load_usable_account(conn, budget.user_id, account_id, budget.currency)

    debit(conn, account, budget.amount)
    record(
        conn,
        Transaction(
            id=0,
            user_id=budget.user_id,
            type=TransactionType.TRANSFER,
            amount=budget.amount,
            currency=budget.currency,
            source_account_id=account.id,
            destination_account_id=None,
            category=BUDGET_ALLOCATION,
            description=f"Budget allocation: {budget.name}",
            date=now.date(),
            linked_module=LinkedModule.BUDGET,
            linked_id=budget.id,
            generated=True,
        ),
    )

    allocated = rules.mark_allocated(budget, account.id, now)
    queries.save_budget(conn, allocated)
    return allocated


def return_unused_funds(conn: sqlite3.Connection, budget: Budget, now: datetime) -> rules.ReturnResult:
    """Complete a funded budget, crediting unspent money back to its source account.

    Raises:
        InvalidStateError: Budget is not allocated or active.
        NotFoundError: Source account no longer exists.
        AccountMismatchError: Source account now belongs to another user.
    """
    _check(rules.check_return(budget))
    result = rules.calculate_return(budget.amount, _spent(conn, budget))

    if result.returned > 0:
        account = load_account(conn, budget.user_id, budget.source_account_id)
        credit(conn, account, result.returned)
        record(
            conn,
            Transaction(
                id=0,
                user_id=budget.user_id,
                type=TransactionType.TRANSFER,
                amount=result.returned,
                currency=budget.currency,
                source_account_id=None,
                destination_account_id=account.id,
                category=BUDGET_RETURN,
                description=f"Unused funds returned: {budget.name}",
                date=now.date(),
                linked_module=LinkedModule.BUDGET,
                linked_id=budget.id,
                generated=True,
            ),
        )

    queries.save_budget(conn, rules.mark_completed(budget, now))
    return result


def allocate_budget(
    user_id: UserId,
    budget_id: int,
    account_id: int,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Budget:
    """Fund a draft budget from one of the user's accounts.

    Returns:
        The allocated budget.
    """
    with atomic(db_path, timeout) as conn:
        budget = allocate(conn, _load(conn, user_id, budget_id), account_id, datetime.now())

    log.info(
        "budget_allocated",
        user_id=user_id,
        budget_id=budget_id,
        account_id=account_id,
        amount=budget.amount,
        currency=budget.currency.value,
    )
    return budget


def return_budget_funds(
    user_id: UserId, budget_id: int, db_path: Path | None = None, timeout: float = DEFAULT_LOCK_TIMEOUT
) -> rules.ReturnResult:
    """Return a budget's unspent funds and complete it.

    Returns:
        ReturnResult with the amount credited back and the amount spent.
    """
    with atomic(db_path, timeout) as conn:
        result = return_unused_funds(conn, _load(conn, user_id, budget_id), datetime.now())

    log.info("budget_returned", user_id=user_id, budget_id=budget_id, returned=result.returned, spent=result.spent)
    return result


def return_all_expired_budgets(
    user_id: UserId | None = None,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    today: date | None = None,
) -> list[SweepOutcome]:
    """Return funds of every funded budget whose window has ended.

    Each budget is processed in its own atomic unit and re-checked inside it,
    so a budget returned concurrently shows up as a failed outcome rather
    than being returned twice.

    Args:
        user_id: Restrict the sweep to one user. If None, sweeps every user.
        db_path: Path to the database file. If None, uses default location.
        timeout: Seconds to wait for each write lock.
        today: Reference date; defaults to the current date.

    Returns:
        One SweepOutcome per candidate budget, in end-date order.
    """
    today = today or date.today()
    with connect(db_path, timeout) as conn:
        candidates = queries.list_expired_budget_ids(conn, today, user_id)

    outcomes: list[SweepOutcome] = []
    for owner, budget_id in candidates:
        try:
            with atomic(db_path, timeout) as conn:
                budget = _load(conn, owner, budget_id)
                if not rules.is_expired(budget, today):
                    raise InvalidStateError(f"Budget {budget_id} is no longer awaiting return ({budget.status.value})")
                result = return_unused_funds(conn, budget, datetime.now())
        except LedgerError as e:
            log.warning("budget_sweep_failed", user_id=owner, budget_id=budget_id, error=str(e))
            outcomes.append(SweepOutcome(budget_id=budget_id, user_id=owner, error=str(e)))
            continue

        log.info("budget_returned", user_id=owner, budget_id=budget_id, returned=result.returned, spent=result.spent)
        outcomes.append(SweepOutcome(budget_id=budget_id, user_id=owner, returned=result.returned, spent=result.spent))

    return outcomes


def activate_budget(
    user_id: UserId,
    budget_id: int,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    today: date | None = None,
) -> Budget:
    """Move an allocated budget to active once its window has started.

    Raises:
        InvalidStateError: Budget is not allocated or its window has not started.
    """
    with atomic(db_path, timeout) as conn:
        budget = _load(conn, user_id, budget_id)
        _check(rules.check_activate(budget, today or date.today()))
        budget = rules.mark_active(budget)
        queries.save_budget(conn, budget)

    log.info("budget_activated", user_id=user_id, budget_id=budget_id)
    return budget


def archive_budget(
    user_id: UserId, budget_id: int, db_path: Path | None = None, timeout: float = DEFAULT_LOCK_TIMEOUT
) -> Budget:
    """Soft-disable a budget; unarchive_budget restores its previous status.

    Raises:
        InvalidStateError: Budget is completed or already archived.
    """
    with atomic(db_path, timeout) as conn:
        budget = _load(conn, user_id, budget_id)
        _check(rules.check_archive(budget))
        budget = rules.mark_archived(budget)
        queries.save_budget(conn, budget)

    log.info("budget_archived", user_id=user_id, budget_id=budget_id, archived_from=budget.archived_from.value)
    return budget


def unarchive_budget(
    user_id: UserId, budget_id: int, db_path: Path | None = None, timeout: float = DEFAULT_LOCK_TIMEOUT
) -> Budget:
    """Restore an archived budget to the status it was archived from.

    Raises:
        InvalidStateError: Budget is not archived, or restoring it as a draft
            would overlap another live budget.
    """
    with atomic(db_path, timeout) as conn:
        budget = _load(conn, user_id, budget_id)
        if budget.status != BudgetStatus.ARCHIVED:
            raise InvalidStateError(f"Budget {budget_id} is not archived")
        budget = rules.mark_unarchived(budget)
        try:
            _check_overlap(conn, budget)
        except ValidationError as e:
            raise InvalidStateError(str(e)) from e
        queries.save_budget(conn, budget)

    log.info("budget_unarchived", user_id=user_id, budget_id=budget_id, status=budget.status.value)
    return budget


def update_budget(
    user_id: UserId,
    budget_id: int,
    name: str | None = None,
    amount: Money | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    alert_threshold: int | None = None,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Budget:
    """Edit a non-completed budget.

    Fields left as None keep their value. Spending figures are not touched;
    they are recomputed whenever the budget is viewed.

    Raises:
        InvalidStateError: Budget is completed, or the amount changes after allocation.
        ValidationError: Invalid fields or an overlapping live budget.
    """
    with atomic(db_path, timeout) as conn:
        budget = _load(conn, user_id, budget_id)
        _check(rules.check_edit(budget, amount is not None and amount != budget.amount))

        updated = replace(
            budget,
            name=name.strip() if name is not None else budget.name,
            amount=amount if amount is not None else budget.amount,
            start_date=start_date or budget.start_date,
            end_date=end_date or budget.end_date,
            alert_threshold=alert_threshold if alert_threshold is not None else budget.alert_threshold,
        )
        _check(
            rules.validate_budget_fields(
                updated.name,
                updated.category,
                updated.amount,
                updated.start_date,
                updated.end_date,
                updated.alert_threshold,
            ),
            ValidationError,
        )
        if updated.status in rules.LIVE_STATUSES:
            _check_overlap(conn, updated)
        queries.save_budget(conn, updated)

    log.info("budget_updated", user_id=user_id, budget_id=budget_id)
    return updated


def delete_budget(
    user_id: UserId, budget_id: int, db_path: Path | None = None, timeout: float = DEFAULT_LOCK_TIMEOUT
) -> None:
    """Delete a budget that holds no allocated funds.

    Raises:
        InvalidStateError: Budget is allocated or active (return its funds first).
    """
    with atomic(db_path, timeout) as conn:
        budget = _load(conn, user_id, budget_id)
        _check(rules.check_delete(budget))
        queries.delete_budget(conn, user_id, budget_id)

    log.info("budget_deleted", user_id=user_id, budget_id=budget_id)


def get_budget_view(user_id: UserId, budget_id: int, db_path: Path | None = None) -> rules.BudgetView:
    """Get a budget with live spent, percentage, remaining and alert state."""
    with connect(db_path) as conn:
        budget = _load(conn, user_id, budget_id)
        return rules.compute_budget_view(budget, _spent(conn, budget))


def list_budget_views(
    user_id: UserId, statuses: set[BudgetStatus] | None = None, db_path: Path | None = None
) -> list[rules.BudgetView]:
    """List budgets with live spending figures, newest first."""
    with connect(db_path) as conn:
        budgets = queries.list_budgets(conn, user_id, statuses=statuses)
        return [rules.compute_budget_view(b, _spent(conn, b)) for b in budgets]


def budget_stats(user_id: UserId, db_path: Path | None = None) -> rules.BudgetStats:
    """Totals and alert counts over the user's live budgets."""
    return rules.compute_budget_stats(list_budget_views(user_id, set(rules.LIVE_STATUSES), db_path))
