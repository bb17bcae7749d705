"""Sol engine: contributions to savings pools and recipient rotation."""

import sqlite3
from dataclasses import replace
from datetime import date
from pathlib import Path

import structlog

from lajan.domain import sol as rules
from lajan.domain.categories import SOL_CONTRIBUTION
from lajan.domain.errors import InvalidStateError, NotFoundError, ValidationError
from lajan.domain.models import (
    Currency,
    Frequency,
    LinkedModule,
    Money,
    Sol,
    SolMember,
    SolType,
    Transaction,
    TransactionType,
    UserId,
)
from lajan.engine.journal import record
from lajan.engine.ledger import debit, load_usable_account
from lajan.store import queries
from lajan.store.atomic import DEFAULT_LOCK_TIMEOUT, atomic, connect

log = structlog.get_logger(__name__)


def _load(conn: sqlite3.Connection, user_id: UserId, sol_id: int) -> Sol:
    sol = queries.get_sol(conn, user_id, sol_id)
    if sol is None:
        raise NotFoundError("sol", sol_id)
    return sol


def create_sol(
    user_id: UserId,
    name: str,
    sol_type: SolType,
    amount: Money,
    frequency: Frequency,
    start_date: date,
    currency: Currency = Currency.HTG,
    end_date: date | None = None,
    target_amount: Money | None = None,
    members: list[tuple[str, str | None]] | None = None,
    description: str | None = None,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Sol:
    """Create a personal or collaborative sol.

    The first payment is due on the start date. Collaborative members are
    given positions in the order supplied.

    Args:
        members: (name, phone) pairs; required for collaborative sols.
        target_amount: Savings goal; required for personal sols.

    Raises:
        ValidationError: Invalid fields, a personal sol without a target or a
            collaborative sol without members.
    """
    built = rules.build_members(members or []) if sol_type == SolType.COLLABORATIVE else ()
    error = rules.validate_sol_fields(name, sol_type, amount, start_date, end_date, target_amount, built)
    if error:
        raise ValidationError(error)

    sol = Sol(
        id=0,
        user_id=user_id,
        name=name.strip(),
        type=sol_type,
        amount=amount,
        currency=currency,
        frequency=frequency,
        start_date=start_date,
        end_date=end_date,
        next_payment_date=start_date,
        target_amount=target_amount if sol_type == SolType.PERSONAL else None,
        members=built,
        description=description,
    )

    with atomic(db_path, timeout) as conn:
        sol = replace(sol, id=queries.insert_sol(conn, sol))

    log.info("sol_created", user_id=user_id, sol_id=sol.id, type=sol_type.value, amount=amount)
    return sol


def contribute(conn: sqlite3.Connection, sol: Sol, account_id: int, today: date) -> tuple[Sol, Transaction]:
    """Pay one period's contribution from an account, inside the caller's unit.

    Raises:
        InvalidStateError: Sol is inactive, or the account is inactive.
        AccountMismatchError: Account belongs to another user.
        NotFoundError: Account does not exist.
        CurrencyMismatchError: Account currency differs from the sol's.
        InsufficientFundsError: Account balance below the contribution.
    """
    error = rules.check_contribute(sol)
    if error:
        raise InvalidStateError(error)

    account = load_usable_account(conn, sol.user_id, account_id, sol.currency)
    debit(conn, account, sol.amount)
    txn = record(
        conn,
        Transaction(
            id=0,
            user_id=sol.user_id,
            type=TransactionType.EXPENSE,
            amount=sol.amount,
            currency=sol.currency,
            source_account_id=account.id,
            category=SOL_CONTRIBUTION,
            description=f"Contribution {sol.name}",
            date=today,
            linked_module=LinkedModule.SOL,
            linked_id=sol.id,
            generated=True,
        ),
    )

    updated = rules.record_contribution(sol)
    queries.save_sol(conn, updated)
    return updated, txn


def contribute_sol(
    user_id: UserId,
    sol_id: int,
    account_id: int,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    today: date | None = None,
) -> tuple[Sol, Transaction]:
    """Record a contribution to a sol from one of the user's accounts.

    Returns:
        Tuple of (updated sol, expense transaction).
    """
    with atomic(db_path, timeout) as conn:
        sol, txn = contribute(conn, _load(conn, user_id, sol_id), account_id, today or date.today())

    log.info(
        "sol_contribution",
        user_id=user_id,
        sol_id=sol_id,
        account_id=account_id,
        transaction_id=txn.id,
        total_contributions=sol.total_contributions,
        next_payment_date=sol.next_payment_date.isoformat(),
    )
    if sol.type == SolType.PERSONAL and sol.target_amount and sol.total_contributions > sol.target_amount:
        # Overpayment is allowed; flag it so it can be noticed.
        log.warning(
            "sol_target_exceeded", user_id=user_id, sol_id=sol_id, target=sol.target_amount, total=sol.total_contributions
        )
    return sol, txn


def move_to_next_recipient(
    user_id: UserId,
    sol_id: int,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    today: date | None = None,
) -> Sol:
    """Mark the current recipient as paid and move to the next member.

    No money moves here; payouts happen outside the ledger.

    Raises:
        InvalidStateError: Sol is personal or has no members.
    """
    with atomic(db_path, timeout) as conn:
        sol = _load(conn, user_id, sol_id)
        error = rules.check_rotate(sol)
        if error:
            raise InvalidStateError(error)
        recipient = sol.members[sol.current_recipient_index]
        sol = rules.rotate_recipient(sol, today or date.today())
        queries.save_sol(conn, sol)

    log.info(
        "sol_recipient_moved",
        user_id=user_id,
        sol_id=sol_id,
        paid=recipient.name,
        next_index=sol.current_recipient_index,
        new_rotation=sol.current_recipient_index == 0,
    )
    return sol


def update_sol(
    user_id: UserId,
    sol_id: int,
    name: str | None = None,
    amount: Money | None = None,
    frequency: Frequency | None = None,
    end_date: date | None = None,
    target_amount: Money | None = None,
    description: str | None = None,
    is_active: bool | None = None,
    members: list[SolMember] | None = None,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Sol:
    """Edit a sol. Fields left as None keep their value.

    Totals, schedule and type are not editable. Replacing members renumbers
    their positions and keeps the recipient pointer inside the new list.

    Raises:
        ValidationError: The edited sol would be invalid.
    """
    with atomic(db_path, timeout) as conn:
        sol = _load(conn, user_id, sol_id)

        new_members = rules.reposition_members(members) if members is not None else sol.members
        index = sol.current_recipient_index
        if new_members and index >= len(new_members):
            index = 0

        updated = replace(
            sol,
            name=name.strip() if name is not None else sol.name,
            amount=amount if amount is not None else sol.amount,
            frequency=frequency or sol.frequency,
            end_date=end_date or sol.end_date,
            target_amount=target_amount if target_amount is not None else sol.target_amount,
            description=description if description is not None else sol.description,
            is_active=is_active if is_active is not None else sol.is_active,
            members=new_members if sol.type == SolType.COLLABORATIVE else (),
            current_recipient_index=index,
        )
        error = rules.validate_sol_fields(
            updated.name,
            updated.type,
            updated.amount,
            updated.start_date,
            updated.end_date,
            updated.target_amount,
            updated.members,
        )
        if error:
            raise ValidationError(error)
        queries.save_sol(conn, updated)

    log.info("sol_updated", user_id=user_id, sol_id=sol_id)
    return updated


def delete_sol(user_id: UserId, sol_id: int, db_path: Path | None = None, timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
    """Delete a sol. Its contribution transactions stay in the journal."""
    with atomic(db_path, timeout) as conn:
        _load(conn, user_id, sol_id)
        queries.delete_sol(conn, user_id, sol_id)

    log.info("sol_deleted", user_id=user_id, sol_id=sol_id)


def get_sol(user_id: UserId, sol_id: int, db_path: Path | None = None) -> Sol:
    """Get one of the user's sols with its members."""
    with connect(db_path) as conn:
        return _load(conn, user_id, sol_id)


def list_sols(user_id: UserId, is_active: bool | None = None, db_path: Path | None = None) -> list[Sol]:
    """List the user's sols, newest first."""
    with connect(db_path) as conn:
        return queries.list_sols(conn, user_id, is_active)


def sol_history(user_id: UserId, sol_id: int, db_path: Path | None = None) -> tuple[Sol, list[Transaction]]:
    """Get a sol with its contribution transactions, newest first."""
    with connect(db_path) as conn:
        sol = _load(conn, user_id, sol_id)
        return sol, queries.list_linked_transactions(conn, user_id, LinkedModule.SOL, sol_id)


def sol_stats(user_id: UserId, db_path: Path | None = None) -> rules.SolStats:
    """Totals over the user's active sols."""
    return rules.compute_sol_stats(list_sols(user_id, is_active=True, db_path=db_path))
