"""Pure functions for ledger effects and transaction validation.

This module contains the functional core for the journal:
- No I/O operations (no database, no console, no files)
- No side effects
- Pure data transformations
- Easy to test

A ledger effect is a signed balance delta on one account. Forward effects
describe what recording a transaction does to balances; reverse effects are
their exact negation and are what deleting a transaction applies.

All monetary amounts are in minor units (Money type).
"""

from collections.abc import Iterable
from dataclasses import dataclass

from lajan.domain.models import Account, Money, NewTransaction, Transaction, TransactionType

MAX_DESCRIPTION_LENGTH = 200


@dataclass(frozen=True)
class LedgerEffect:
    """Immutable signed balance change on one account."""

    account_id: int
    delta: Money

    @property
    def is_debit(self) -> bool:
        return self.delta < 0


@dataclass(frozen=True)
class BalanceAudit:
    """Immutable comparison of stored and reconstructed balance."""

    account_id: int
    stored: Money
    reconstructed: Money

    @property
    def difference(self) -> Money:
        return Money(self.stored - self.reconstructed)

    @property
    def consistent(self) -> bool:
        return self.stored == self.reconstructed


def forward_effects(txn: Transaction) -> list[LedgerEffect]:
    """Compute the balance effects of recording a transaction.

    Args:
        txn: Journal entry.

    Returns:
        List of LedgerEffect, source leg first. Missing account references
        contribute no leg (budget envelope entries have one real leg only).
    """
    effects: list[LedgerEffect] = []

    if txn.type == TransactionType.EXPENSE:
        if txn.source_account_id is not None:
            effects.append(LedgerEffect(txn.source_account_id, Money(-txn.amount)))

    elif txn.type == TransactionType.INCOME:
        if txn.source_account_id is not None:
            effects.append(LedgerEffect(txn.source_account_id, Money(txn.amount)))

    elif txn.type == TransactionType.TRANSFER:
        if txn.source_account_id is not None:
            effects.append(LedgerEffect(txn.source_account_id, Money(-(txn.amount + txn.fee))))
        if txn.destination_account_id is not None:
            effects.append(LedgerEffect(txn.destination_account_id, Money(txn.amount)))

    return effects


def reverse_effects(txn: Transaction) -> list[LedgerEffect]:
    """Compute the effects that undo a transaction.

    Args:
        txn: Journal entry being reversed.

    Returns:
        Negated forward effects, source leg first.
    """
    return [LedgerEffect(e.account_id, Money(-e.delta)) for e in forward_effects(txn)]


def required_funds(txn_type: TransactionType, amount: Money, fee: Money) -> Money:
    """Amount the source account must hold before a transaction is recorded.

    Args:
        txn_type: Transaction type.
        amount: Transaction amount in minor units.
        fee: Transfer fee in minor units.

    Returns:
        amount + fee for expenses and transfers, 0 for income.
    """
    if txn_type == TransactionType.INCOME:
        return Money(0)
    return Money(amount + fee)


def validate_new_transaction(new: NewTransaction) -> str | None:
    """Validate transaction input that does not need any stored state.

    Args:
        new: Transaction input.

    Returns:
        Error message, or None if the input is well formed.
    """
    if new.amount <= 0:
        return "Amount must be positive"

    if new.fee < 0:
        return "Fee cannot be negative"

    if new.type == TransactionType.TRANSFER:
        if new.destination_account_id is None:
            return "Transfers need a destination account"
        if new.destination_account_id == new.source_account_id:
            return "Source and destination accounts must differ"
    else:
        if new.destination_account_id is not None:
            return "Only transfers can have a destination account"
        if new.fee:
            return "Only transfers can carry a fee"
        if not new.category or not new.category.strip():
            return "Category is required"

    if len(new.description) > MAX_DESCRIPTION_LENGTH:
        return f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters"

    return None


def validate_debit(account: Account, amount: Money) -> str | None:
    """Check that debiting an account keeps it at or above zero.

    Args:
        account: Account snapshot.
        amount: Positive amount to debit in minor units.

    Returns:
        Error message, or None if the debit is allowed.
    """
    if amount <= 0:
        return "Amount must be positive"
    if account.balance - amount < 0:
        return f"Not enough funds. Available: {account.balance / 100:,.2f}"
    return None


def net_effect(effects: Iterable[LedgerEffect]) -> dict[int, Money]:
    """Sum effects per account.

    Args:
        effects: Ledger effects in any order.

    Returns:
        Dictionary mapping account id to net delta in minor units.
    """
    totals: dict[int, Money] = {}
    for effect in effects:
        totals[effect.account_id] = Money(totals.get(effect.account_id, 0) + effect.delta)
    return totals


def reconstruct_balance(account_id: int, initial_balance: Money, journal: Iterable[Transaction]) -> Money:
    """Rebuild an account balance from its initial balance and the journal.

    Args:
        account_id: Account to reconstruct.
        initial_balance: Balance at account creation in minor units.
        journal: Journal entries; deleted entries are skipped.

    Returns:
        Reconstructed balance in minor units.
    """
    balance = initial_balance
    for txn in journal:
        if txn.deleted_at is not None:
            continue
        for effect in forward_effects(txn):
            if effect.account_id == account_id:
                balance = Money(balance + effect.delta)
    return balance


def audit_balance(account: Account, journal: Iterable[Transaction]) -> BalanceAudit:
    """Compare an account's stored balance with its journal reconstruction."""
    return BalanceAudit(
        account_id=account.id,
        stored=account.balance,
        reconstructed=reconstruct_balance(account.id, account.initial_balance, journal),
    )
