"""Account operations: create, edit, deactivate, totals and audit."""

from dataclasses import replace
from pathlib import Path

import structlog

from lajan.domain.errors import NotFoundError, ValidationError
from lajan.domain.ledger import BalanceAudit, audit_balance
from lajan.domain.models import Account, AccountType, Currency, Money, Provider, UserId
from lajan.domain.report import account_totals
from lajan.store import queries
from lajan.store.atomic import DEFAULT_LOCK_TIMEOUT, atomic, connect

log = structlog.get_logger(__name__)

MAX_NAME_LENGTH = 50


def _validate_name(name: str) -> None:
    if not name.strip():
        raise ValidationError("Account name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Account name cannot exceed {MAX_NAME_LENGTH} characters")


def create_account(
    user_id: UserId,
    name: str,
    account_type: AccountType,
    currency: Currency = Currency.HTG,
    initial_balance: Money = Money(0),
    institution: str | None = None,
    provider: Provider | None = None,
    include_in_total: bool = True,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Account:
    """Open a new account.

    Args:
        user_id: Owner.
        name: Display name (50 characters max).
        account_type: bank, mobile_money or cash.
        currency: Account currency; fixed for the account's lifetime.
        initial_balance: Opening balance in minor units.
        institution: Optional bank name.
        provider: Optional mobile-money provider.
        include_in_total: Whether the balance counts in per-currency totals.
        db_path: Path to the database file. If None, uses default location.
        timeout: Seconds to wait for the write lock.

    Returns:
        The stored account.
    """
    _validate_name(name)
    account = Account(
        id=0,
        user_id=user_id,
        name=name.strip(),
        type=account_type,
        currency=currency,
        balance=initial_balance,
        initial_balance=initial_balance,
        institution=institution,
        provider=provider,
        include_in_total=include_in_total,
    )

    with atomic(db_path, timeout) as conn:
        account_id = queries.insert_account(conn, account)

    log.info("account_created", user_id=user_id, account_id=account_id, currency=currency.value)
    return replace(account, id=account_id)


def get_account(user_id: UserId, account_id: int, db_path: Path | None = None) -> Account:
    """Get one of the user's accounts.

    Raises:
        NotFoundError: If the account does not exist or belongs to someone else.
    """
    with connect(db_path) as conn:
        account = queries.get_account(conn, user_id, account_id)
    if account is None:
        raise NotFoundError("account", account_id)
    return account


def list_accounts(user_id: UserId, include_inactive: bool = False, db_path: Path | None = None) -> list[Account]:
    """List the user's accounts, newest first."""
    with connect(db_path) as conn:
        return queries.list_accounts(conn, user_id, include_inactive)


def get_account_totals(user_id: UserId, db_path: Path | None = None) -> dict[Currency, Money]:
    """Per-currency total of active accounts included in totals."""
    return account_totals(list_accounts(user_id, db_path=db_path))


def update_account(
    user_id: UserId,
    account_id: int,
    name: str | None = None,
    account_type: AccountType | None = None,
    institution: str | None = None,
    provider: Provider | None = None,
    include_in_total: bool | None = None,
    currency: Currency | None = None,
    db_path: Path | None = None,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Account:
    """Edit an account's non-financial fields.

    Fields left as None keep their value. Balance is never editable here.

    Raises:
        NotFoundError: If the account does not exist or belongs to someone else.
        ValidationError: If a currency change is requested or the name is invalid.
    """
    with atomic(db_path, timeout) as conn:
        account = queries.get_account(conn, user_id, account_id)
        if account is None:
            raise NotFoundError("account", account_id)

        if currency is not None and currency != account.currency:
            raise ValidationError("Account currency cannot be changed")
        if name is not None:
            _validate_name(name)

        updated = replace(
            account,
            name=name.strip() if name is not None else account.name,
            type=account_type or account.type,
            institution=institution if institution is not None else account.institution,
            provider=provider if provider is not None else account.provider,
            include_in_total=include_in_total if include_in_total is not None else account.include_in_total,
        )
        queries.update_account_details(conn, updated)

    log.info("account_updated", user_id=user_id, account_id=account_id)
    return updated


def deactivate_account(
    user_id: UserId, account_id: int, db_path: Path | None = None, timeout: float = DEFAULT_LOCK_TIMEOUT
) -> Account:
    """Soft-delete an account; its balance and history are kept.

    Raises:
        NotFoundError: If the account does not exist or belongs to someone else.
    """
    with atomic(db_path, timeout) as conn:
        account = queries.get_account(conn, user_id, account_id)
        if account is None:
            raise NotFoundError("account", account_id)
        updated = replace(account, is_active=False)
        queries.update_account_details(conn, updated)

    log.info("account_deactivated", user_id=user_id, account_id=account_id, balance=account.balance)
    return updated


def audit_account(user_id: UserId, account_id: int, db_path: Path | None = None) -> BalanceAudit:
    """Rebuild an account's balance from the journal and compare with the stored one.

    Raises:
        NotFoundError: If the account does not exist or belongs to someone else.
    """
    with connect(db_path) as conn:
        account = queries.get_account(conn, user_id, account_id)
        if account is None:
            raise NotFoundError("account", account_id)
        journal = queries.list_transactions(conn, user_id, account_id=account_id)

    result = audit_balance(account, journal)
    if not result.consistent:
        log.warning(
            "account_balance_drift",
            user_id=user_id,
            account_id=account_id,
            stored=result.stored,
            reconstructed=result.reconstructed,
        )
    return result
