"""Typed errors raised by the ledger engine.

Every engine operation raises one of these instead of a generic failure.
Callers that only care about "did it work" can catch LedgerError.
"""

from lajan.domain.models import Money


class LedgerError(Exception):
    """Base class for all engine errors."""


class NotFoundError(LedgerError):
    """Entity missing, or owned by another user."""

    def __init__(self, entity: str, entity_id: int | None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} {entity_id} not found")


class AccountMismatchError(NotFoundError):
    """Referenced account belongs to a different user.

    Subclasses NotFoundError so that surfaces report it exactly like a
    missing account and never confirm that the id exists.
    """

    def __init__(self, account_id: int | None) -> None:
        super().__init__("account", account_id)


class InvalidStateError(LedgerError):
    """Operation is not legal for the entity's current lifecycle state."""


class CurrencyMismatchError(LedgerError):
    """Two sides of an operation use different currencies."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Currency mismatch: expected {expected}, got {actual}")


class InsufficientFundsError(LedgerError):
    """A debit would take an account below zero."""

    def __init__(self, account_id: int, available: Money, required: Money) -> None:
        self.account_id = account_id
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient funds in account {account_id}. "
            f"Available: {available / 100:,.2f}, required: {required / 100:,.2f}"
        )


class ValidationError(LedgerError):
    """Malformed input."""


class LedgerBusyError(LedgerError):
    """Could not obtain the write lock before the configured timeout."""
