"""Domain type definitions for lajan.

These NewTypes provide semantic clarity and help with type checking:
- Money: Amount in minor units (centimes for HTG, cents for USD)
- UserId: Identity supplied by the caller's auth context
- CategoryName: Name of a transaction or budget category

Entities are frozen dataclasses. Mutations produce new instances through
dataclasses.replace, and the store writes them back inside an atomic unit.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import NewType

# Money amounts are stored as minor units to avoid floating point errors
Money = NewType("Money", int)

UserId = NewType("UserId", str)

CategoryName = NewType("CategoryName", str)


class Currency(str, Enum):
    HTG = "HTG"
    USD = "USD"


class AccountType(str, Enum):
    BANK = "bank"
    MOBILE_MONEY = "mobile_money"
    CASH = "cash"


class Provider(str, Enum):
    MONCASH = "moncash"
    NATCASH = "natcash"
    OTHER = "other"


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"


class LinkedModule(str, Enum):
    BUDGET = "budget"
    SOL = "sol"
    DEBT = "debt"
    INVESTMENT = "investment"
    SAVINGS = "savings"


class BudgetStatus(str, Enum):
    DRAFT = "draft"
    ALLOCATED = "allocated"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class BudgetPeriod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class AlertState(str, Enum):
    OK = "ok"
    WARNING = "warning"
    EXCEEDED = "exceeded"


class SolType(str, Enum):
    PERSONAL = "personal"
    COLLABORATIVE = "collaborative"


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class Account:
    """Immutable account snapshot."""

    id: int
    user_id: UserId
    name: str
    type: AccountType
    currency: Currency
    balance: Money
    initial_balance: Money = Money(0)
    institution: str | None = None
    provider: Provider | None = None
    include_in_total: bool = True
    is_active: bool = True


@dataclass(frozen=True)
class Transaction:
    """Immutable journal entry.

    source_account_id is None only for budget_return entries, where the money
    re-enters a real account from a budget envelope.
    """

    id: int
    user_id: UserId
    type: TransactionType
    amount: Money
    currency: Currency
    source_account_id: int | None
    date: date
    destination_account_id: int | None = None
    fee: Money = Money(0)
    category: CategoryName | None = None
    description: str = ""
    linked_module: LinkedModule | None = None
    linked_id: int | None = None
    generated: bool = False
    created_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass(frozen=True)
class NewTransaction:
    """Transaction input before it has been validated and assigned an id."""

    type: TransactionType
    amount: Money
    source_account_id: int
    category: str | None = None
    description: str = ""
    txn_date: date | None = None
    currency: Currency | None = None
    destination_account_id: int | None = None
    fee: Money = Money(0)
    linked_module: LinkedModule | None = None
    linked_id: int | None = None


@dataclass(frozen=True)
class Budget:
    """Immutable budget envelope.

    Spending figures are never stored here; see domain.budget.compute_budget_view.
    """

    id: int
    user_id: UserId
    name: str
    category: CategoryName
    amount: Money
    currency: Currency
    start_date: date
    end_date: date
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    alert_threshold: int = 80
    status: BudgetStatus = BudgetStatus.DRAFT
    source_account_id: int | None = None
    allocated_at: datetime | None = None
    returned_at: datetime | None = None
    archived_from: BudgetStatus | None = None


@dataclass(frozen=True)
class SolMember:
    """Member of a collaborative sol."""

    name: str
    position: int
    phone: str | None = None
    has_received: bool = False
    received_date: date | None = None


@dataclass(frozen=True)
class Sol:
    """Immutable savings pool."""

    id: int
    user_id: UserId
    name: str
    type: SolType
    amount: Money
    currency: Currency
    frequency: Frequency
    start_date: date
    next_payment_date: date
    end_date: date | None = None
    total_contributions: Money = Money(0)
    target_amount: Money | None = None
    members: tuple[SolMember, ...] = field(default_factory=tuple)
    current_recipient_index: int = 0
    is_active: bool = True
    description: str | None = None
