"""Transaction journal: recording, reversing and editing balance-affecting events.

record() is the only way an event enters the journal. create_transaction()
and delete_transaction() pair every journal change with its ledger effect in
one atomic unit.
"""

import sqlite3
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import structlog

from lajan.dates import period_start
from lajan.domain.categories import parse_category
from lajan.domain.errors import CurrencyMismatchError, InvalidStateError, NotFoundError, ValidationError
from lajan.domain.ledger import (
    LedgerEffect,
    MAX_DESCRIPTION_LENGTH,
    forward_effects,
    required_funds,
    reverse_effects,
    validate_new_transaction,
)
from lajan.domain.models import CategoryName, Currency, Money, NewTransaction, Transaction, TransactionType, UserId
from lajan.domain.report import TransactionStats, compute_transaction_stats
from lajan.engine.ledger import apply_effects, ensure_funds, load_usable_account
from lajan.store import queries
from lajan.store.atomic import DEFAULT_LOCK_TIMEOUT, atomic, connect, require_unit

log = structlog.get_logger(__name__)


def record(conn: sqlite3.Connection, txn: Transaction) -> Transaction:
    """Append an entry to the journal inside the caller's unit.

    Returns:
        The entry with its assigned id and creation time.
    """
    require_unit(conn)
    stamped = replace(txn, created_at=txn.created_at or datetime.now())
    txn_id = queries.insert_transaction(conn, stamped)
    return replace(stamped, id=txn_id)


def reverse(conn: sqlite3.Connection, txn: Transaction) -> list[LedgerEffect]:
    """Apply the inverse ledger effect of a journal entry.

    A transfer credits the source by amount + fee and debits the destination
    by amount. Legs whose account no longer exists are skipped; the other
    legs still reverse.

    Returns:
        The effects that were applied.
    """
    require_unit(conn)
    return apply_effects(conn, txn.user_id, reverse_effects(txn), skip_missing=True)


def _prepare(conn: sqlite3.Connection, user_id: UserId, new: NewTransaction, today: date) -> Transaction:
    error = validate_new_transaction(new)
    if error:
        raise ValidationError(error)

    source = load_usable_account(conn, user_id, new.source_account_id)
    currency = new.currency or source.currency
    if source.currency != currency:
        raise CurrencyMismatchError(currency.value, source.currency.value)

    if new.destination_account_id is not None:
        load_usable_account(conn, user_id, new.destination_account_id, currency)

    needed = required_funds(new.type, new.amount, new.fee)
    if needed:
        ensure_funds(source, needed)

    category: CategoryName | None = None
    if new.type != TransactionType.TRANSFER and new.category:
        category = parse_category(new.category, new.type).name

    return Transaction(
        id=0,
        user_id=user_id,
        type=new.type,
        amount=new.amount,
        currency=currency,
        source_account_id=new.source_account_id,
        destination_account_id=new.destination_account_id,
        fee=new.fee if new.type == TransactionType.TRANSFER else Money(0),
        category=category,
        description=new.description.strip(),
        date=new.txn_date or today,
        linked_module=new.linked_module,
        linked_id=new.linked_id,
    )


def create_transaction(
    user_id: UserId,
    new: NewTransaction,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    today: date | None = None,
) -> Transaction:
    """Record an expense, income or transfer and apply it to account balances.

    Args:
        user_id: Acting user.
        new: Transaction input.
        db_path: Path to the database file. If None, uses default location.
        timeout: Seconds to wait for the write lock.
        today: Date used when the input carries none.

    Returns:
        The recorded transaction.

    Raises:
        ValidationError: Malformed input.
        NotFoundError: Source or destination account missing.
        AccountMismatchError: An account belongs to another user.
        InvalidStateError: An account is inactive.
        CurrencyMismatchError: Currencies of transaction and accounts differ.
        InsufficientFundsError: Source cannot cover amount + fee.
    """
    with atomic(db_path, timeout) as conn:
        txn = _prepare(conn, user_id, new, today or date.today())
        apply_effects(conn, user_id, forward_effects(txn))
        txn = record(conn, txn)

    log.info(
        "transaction_created",
        user_id=user_id,
        transaction_id=txn.id,
        type=txn.type.value,
        amount=txn.amount,
        currency=txn.currency.value,
    )
    return txn


def delete_transaction(
    user_id: UserId, txn_id: int, db_path: Path | None = None, timeout: float = DEFAULT_LOCK_TIMEOUT
) -> Transaction:
    """Reverse a transaction's balance effect and mark it deleted.

    Correcting an amount or account means deleting and recreating.

    Raises:
        NotFoundError: Transaction missing, already deleted or not the user's.
        InvalidStateError: The entry was written by a budget or sol operation.
        InsufficientFundsError: Reversing would take an account below zero.
    """
    with atomic(db_path, timeout) as conn:
        txn = queries.get_transaction(conn, user_id, txn_id)
        if txn is None:
            raise NotFoundError("transaction", txn_id)
        if txn.generated:
            module = txn.linked_module.value if txn.linked_module else "engine"
            raise InvalidStateError(f"Transaction {txn_id} was created by a {module} operation and cannot be deleted")

        applied = reverse(conn, txn)
        deleted_at = datetime.now()
        queries.mark_transaction_deleted(conn, txn.id, deleted_at)

    log.info(
        "transaction_deleted",
        user_id=user_id,
        transaction_id=txn_id,
        legs_reversed=len(applied),
        legs_total=len(forward_effects(txn)),
    )
    return replace(txn, deleted_at=deleted_at)


def update_transaction(
    user_id: UserId,
    txn_id: int,
    description: str | None = None,
    category: str | None = None,
    txn_date: date | None = None,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Transaction:
    """Edit a transaction's description, category or date.

    Category changes are ignored for transfers. Amounts and accounts never
    change after creation.

    Raises:
        NotFoundError: Transaction missing or not the user's.
        InvalidStateError: Category change on an engine-generated entry.
        ValidationError: Empty category or description too long.
    """
    with atomic(db_path, timeout) as conn:
        txn = queries.get_transaction(conn, user_id, txn_id)
        if txn is None:
            raise NotFoundError("transaction", txn_id)

        new_description = description.strip() if description is not None else txn.description
        if len(new_description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters")

        new_category = txn.category
        if category is not None and txn.generated:
            raise InvalidStateError(f"Transaction {txn_id} was created by the engine; its category is fixed")
        if category is not None and txn.type != TransactionType.TRANSFER:
            try:
                new_category = parse_category(category, txn.type).name
            except ValueError as e:
                raise ValidationError(str(e)) from e

        updated = replace(txn, description=new_description, category=new_category, date=txn_date or txn.date)
        queries.update_transaction_details(conn, txn.id, updated.description, updated.category, updated.date)

    log.info("transaction_updated", user_id=user_id, transaction_id=txn_id)
    return updated


def get_transaction(user_id: UserId, txn_id: int, db_path: Path | None = None) -> Transaction:
    """Get one of the user's live transactions.

    Raises:
        NotFoundError: Transaction missing, deleted or not the user's.
    """
    with connect(db_path) as conn:
        txn = queries.get_transaction(conn, user_id, txn_id)
    if txn is None:
        raise NotFoundError("transaction", txn_id)
    return txn


def list_transactions(
    user_id: UserId,
    txn_type: TransactionType | None = None,
    category: str | None = None,
    account_id: int | None = None,
    since_date: date | None = None,
    until_date: date | None = None,
    limit: int | None = None,
    db_path: Path | None = None,
) -> list[Transaction]:
    """List the user's live transactions, newest first."""
    with connect(db_path) as conn:
        return queries.list_transactions(
            conn,
            user_id,
            txn_type=txn_type,
            category=category,
            account_id=account_id,
            since_date=since_date,
            until_date=until_date,
            limit=limit,
        )


def transaction_stats(
    user_id: UserId,
    currency: Currency,
    period: str = "month",
    db_path: Path | None = None,
    today: date | None = None,
) -> TransactionStats:
    """Income and expense totals by category for a week, month or year up to today."""
    today = today or date.today()
    with connect(db_path) as conn:
        transactions = queries.list_transactions(conn, user_id, since_date=period_start(period, today))
    return compute_transaction_stats(transactions, currency)
