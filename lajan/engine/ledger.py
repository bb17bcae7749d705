"""Account ledger: the only code that changes account balances.

credit and debit are steps of a larger operation and refuse to run outside
an atomic unit. Debits never take an account below zero.
"""

import sqlite3
from collections.abc import Iterable
from dataclasses import replace

import structlog

from lajan.domain.errors import (
    AccountMismatchError,
    CurrencyMismatchError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from lajan.domain.ledger import LedgerEffect, validate_debit
from lajan.domain.models import Account, Currency, Money, UserId
from lajan.store import queries
from lajan.store.atomic import require_unit

log = structlog.get_logger(__name__)


def load_account(conn: sqlite3.Connection, user_id: UserId, account_id: int) -> Account:
    """Load an account referenced by an operation.

    Raises:
        AccountMismatchError: If the account belongs to another user.
        NotFoundError: If the account does not exist.
    """
    account = queries.get_account(conn, user_id, account_id)
    if account is not None:
        return account

    owner = queries.get_account_owner(conn, account_id)
    if owner is not None:
        raise AccountMismatchError(account_id)
    raise NotFoundError("account", account_id)


def load_usable_account(
    conn: sqlite3.Connection, user_id: UserId, account_id: int, currency: Currency | None = None
) -> Account:
    """Load an account that new money movement may touch.

    Args:
        conn: Connection of the enclosing unit.
        user_id: Acting user.
        account_id: Referenced account.
        currency: Currency the account must hold, if any.

    Raises:
        AccountMismatchError: If the account belongs to another user.
        NotFoundError: If the account does not exist.
        InvalidStateError: If the account has been deactivated.
        CurrencyMismatchError: If the account currency differs.
    """
    account = load_account(conn, user_id, account_id)
    if not account.is_active:
        raise InvalidStateError(f"Account '{account.name}' is inactive")
    if currency is not None and account.currency != currency:
        raise CurrencyMismatchError(currency.value, account.currency.value)
    return account


def ensure_funds(account: Account, amount: Money) -> None:
    """Raise InsufficientFundsError unless the account covers amount."""
    if validate_debit(account, amount) is not None:
        raise InsufficientFundsError(account.id, account.balance, amount)


def credit(conn: sqlite3.Connection, account: Account, amount: Money) -> Account:
    """Add money to an account.

    Args:
        conn: Connection of the enclosing unit.
        account: Fresh account snapshot read in the same unit.
        amount: Positive amount in minor units.

    Returns:
        Account snapshot with the new balance.
    """
    require_unit(conn)
    if amount <= 0:
        raise ValidationError("Amount must be positive")

    balance = Money(account.balance + amount)
    queries.set_account_balance(conn, account.id, balance)
    log.debug("account_credited", account_id=account.id, amount=amount, balance=balance)
    return replace(account, balance=balance)


def debit(conn: sqlite3.Connection, account: Account, amount: Money) -> Account:
    """Take money from an account.

    Args:
        conn: Connection of the enclosing unit.
        account: Fresh account snapshot read in the same unit.
        amount: Positive amount in minor units.

    Returns:
        Account snapshot with the new balance.

    Raises:
        InsufficientFundsError: If the balance would drop below zero.
    """
    require_unit(conn)
    if amount <= 0:
        raise ValidationError("Amount must be positive")
    ensure_funds(account, amount)

    balance = Money(account.balance - amount)
    queries.set_account_balance(conn, account.id, balance)
    log.debug("account_debited", account_id=account.id, amount=amount, balance=balance)
    return replace(account, balance=balance)


def apply_effects(
    conn: sqlite3.Connection, user_id: UserId, effects: Iterable[LedgerEffect], skip_missing: bool = False
) -> list[LedgerEffect]:
    """Apply signed effects through credit and debit.

    Args:
        conn: Connection of the enclosing unit.
        user_id: Owner of the accounts.
        effects: Effects in application order.
        skip_missing: Skip legs whose account no longer exists instead of failing.

    Returns:
        The effects that were applied.
    """
    applied: list[LedgerEffect] = []
    for effect in effects:
        account = queries.get_account(conn, user_id, effect.account_id)
        if account is None:
            if skip_missing:
                log.warning("ledger_leg_skipped", account_id=effect.account_id, delta=effect.delta)
                continue
            raise NotFoundError("account", effect.account_id)

        if effect.is_debit:
            debit(conn, account, Money(-effect.delta))
        else:
            credit(conn, account, effect.delta)
        applied.append(effect)
    return applied
