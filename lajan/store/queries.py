"""Database query functions.

Every function takes an open connection so that callers decide the unit of
work: engine operations pass the connection of their atomic unit, read-only
commands pass one from store.atomic.connect. Lookups are always scoped by
user id; a row owned by someone else is indistinguishable from a missing one.
"""

import sqlite3
from datetime import date, datetime
from typing import Any

from lajan.domain.models import (
    Account,
    AccountType,
    Budget,
    BudgetPeriod,
    BudgetStatus,
    CategoryName,
    Currency,
    Frequency,
    LinkedModule,
    Money,
    Provider,
    Sol,
    SolMember,
    SolType,
    Transaction,
    TransactionType,
    UserId,
)


def _date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# Accounts


def _row_to_account(row: sqlite3.Row) -> Account:
    return Account(
        id=row["id"],
        user_id=UserId(row["user_id"]),
        name=row["name"],
        type=AccountType(row["type"]),
        currency=Currency(row["currency"]),
        balance=Money(row["balance"]),
        initial_balance=Money(row["initial_balance"]),
        institution=row["institution"],
        provider=Provider(row["provider"]) if row["provider"] else None,
        include_in_total=bool(row["include_in_total"]),
        is_active=bool(row["is_active"]),
    )


def insert_account(conn: sqlite3.Connection, account: Account) -> int:
    """Insert an account; its balance starts at the initial balance.

    Args:
        conn: Open connection.
        account: Account to store (id is ignored).

    Returns:
        New account id.
    """
    cursor = conn.execute(
        """
        INSERT INTO accounts (user_id, name, type, currency, balance, initial_balance,
                              institution, provider, include_in_total, is_active)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            account.user_id,
            account.name,
            account.type.value,
            account.currency.value,
            account.initial_balance,
            account.initial_balance,
            account.institution,
            account.provider.value if account.provider else None,
            int(account.include_in_total),
            int(account.is_active),
        ),
    )
    return int(cursor.lastrowid)


def get_account(conn: sqlite3.Connection, user_id: UserId, account_id: int) -> Account | None:
    """Get an account owned by the user, active or not."""
    row = conn.execute("SELECT * FROM accounts WHERE id = ? AND user_id = ?", (account_id, user_id)).fetchone()
    return _row_to_account(row) if row else None


def get_account_owner(conn: sqlite3.Connection, account_id: int) -> UserId | None:
    """Get the owner of an account regardless of who is asking."""
    row = conn.execute("SELECT user_id FROM accounts WHERE id = ?", (account_id,)).fetchone()
    return UserId(row["user_id"]) if row else None


def list_accounts(conn: sqlite3.Connection, user_id: UserId, include_inactive: bool = False) -> list[Account]:
    """List a user's accounts, newest first."""
    query = "SELECT * FROM accounts WHERE user_id = ?"
    if not include_inactive:
        query += " AND is_active = 1"
    query += " ORDER BY id DESC"
    return [_row_to_account(row) for row in conn.execute(query, (user_id,)).fetchall()]


def update_account_details(conn: sqlite3.Connection, account: Account) -> None:
    """Write an account's non-financial fields."""
    conn.execute(
        """
        UPDATE accounts
        SET name = ?, type = ?, institution = ?, provider = ?, include_in_total = ?, is_active = ?
        WHERE id = ? AND user_id = ?
        """,
        (
            account.name,
            account.type.value,
            account.institution,
            account.provider.value if account.provider else None,
            int(account.include_in_total),
            int(account.is_active),
            account.id,
            account.user_id,
        ),
    )


def set_account_balance(conn: sqlite3.Connection, account_id: int, balance: Money) -> None:
    """Write an account balance. Only the account ledger calls this."""
    conn.execute("UPDATE accounts SET balance = ? WHERE id = ?", (balance, account_id))


# Transactions


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=row["id"],
        user_id=UserId(row["user_id"]),
        type=TransactionType(row["type"]),
        amount=Money(row["amount"]),
        currency=Currency(row["currency"]),
        source_account_id=row["source_account_id"],
        destination_account_id=row["destination_account_id"],
        fee=Money(row["fee"]),
        category=CategoryName(row["category"]) if row["category"] else None,
        description=row["description"],
        date=date.fromisoformat(row["date"]),
        linked_module=LinkedModule(row["linked_module"]) if row["linked_module"] else None,
        linked_id=row["linked_id"],
        generated=bool(row["generated"]),
        created_at=_datetime(row["created_at"]),
        deleted_at=_datetime(row["deleted_at"]),
    )


def insert_transaction(conn: sqlite3.Connection, txn: Transaction) -> int:
    """Append a journal entry.

    Args:
        conn: Open connection.
        txn: Entry to store (id is ignored).

    Returns:
        New transaction id.
    """
    cursor = conn.execute(
        """
        INSERT INTO transactions (user_id, type, amount, currency, source_account_id,
                                  destination_account_id, fee, category, description, date,
                                  linked_module, linked_id, generated, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            txn.user_id,
            txn.type.value,
            txn.amount,
            txn.currency.value,
            txn.source_account_id,
            txn.destination_account_id,
            txn.fee,
            txn.category,
            txn.description,
            txn.date.isoformat(),
            txn.linked_module.value if txn.linked_module else None,
            txn.linked_id,
            int(txn.generated),
            _iso(txn.created_at or datetime.now()),
        ),
    )
    return int(cursor.lastrowid)


def get_transaction(
    conn: sqlite3.Connection, user_id: UserId, txn_id: int, include_deleted: bool = False
) -> Transaction | None:
    """Get a journal entry owned by the user."""
    query = "SELECT * FROM transactions WHERE id = ? AND user_id = ?"
    if not include_deleted:
        query += " AND deleted_at IS NULL"
    row = conn.execute(query, (txn_id, user_id)).fetchone()
    return _row_to_transaction(row) if row else None


def list_transactions(
    conn: sqlite3.Connection,
    user_id: UserId,
    txn_type: TransactionType | None = None,
    category: str | None = None,
    account_id: int | None = None,
    since_date: date | None = None,
    until_date: date | None = None,
    limit: int | None = None,
    include_deleted: bool = False,
) -> list[Transaction]:
    """List journal entries with optional filters.

    Args:
        conn: Open connection.
        user_id: Owner.
        txn_type: Optional transaction type.
        category: Optional category name.
        account_id: Optional account matched against source or destination.
        since_date: Optional inclusive start date.
        until_date: Optional exclusive end date.
        limit: Maximum number of entries. If None, returns all.
        include_deleted: Whether to include reversed entries.

    Returns:
        Entries ordered by date descending, then newest first.
    """
    query = "SELECT * FROM transactions WHERE user_id = ?"
    params: list[Any] = [user_id]

    if not include_deleted:
        query += " AND deleted_at IS NULL"
    if txn_type is not None:
        query += " AND type = ?"
        params.append(txn_type.value)
    if category:
        query += " AND category = ?"
        params.append(category)
    if account_id is not None:
        query += " AND (source_account_id = ? OR destination_account_id = ?)"
        params.extend([account_id, account_id])
    if since_date:
        query += " AND date >= ?"
        params.append(since_date.isoformat())
    if until_date:
        query += " AND date < ?"
        params.append(until_date.isoformat())

    query += " ORDER BY date DESC, id DESC"

    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    return [_row_to_transaction(row) for row in conn.execute(query, params).fetchall()]


def list_linked_transactions(
    conn: sqlite3.Connection, user_id: UserId, module: LinkedModule, linked_id: int
) -> list[Transaction]:
    """List live journal entries linked to a budget or sol, newest first."""
    rows = conn.execute(
        """
        SELECT * FROM transactions
        WHERE user_id = ? AND linked_module = ? AND linked_id = ? AND deleted_at IS NULL
        ORDER BY date DESC, id DESC
        """,
        (user_id, module.value, linked_id),
    ).fetchall()
    return [_row_to_transaction(row) for row in rows]


def update_transaction_details(
    conn: sqlite3.Connection, txn_id: int, description: str, category: CategoryName | None, txn_date: date
) -> None:
    """Write a journal entry's non-financial fields."""
    conn.execute(
        "UPDATE transactions SET description = ?, category = ?, date = ? WHERE id = ?",
        (description, category, txn_date.isoformat(), txn_id),
    )


def mark_transaction_deleted(conn: sqlite3.Connection, txn_id: int, deleted_at: datetime) -> None:
    """Stamp a journal entry as reversed."""
    conn.execute("UPDATE transactions SET deleted_at = ? WHERE id = ?", (deleted_at.isoformat(), txn_id))


def sum_expenses(
    conn: sqlite3.Connection,
    user_id: UserId,
    category: CategoryName,
    currency: Currency,
    since_date: date,
    until_date: date,
) -> Money:
    """Sum live expenses in a category and currency over [since_date, until_date).

    Returns:
        Total in minor units (0 when nothing matches).
    """
    row = conn.execute(
        """
        SELECT COALESCE(SUM(amount), 0) AS total FROM transactions
        WHERE user_id = ? AND type = 'expense' AND category = ? AND currency = ?
          AND date >= ? AND date < ? AND deleted_at IS NULL
        """,
        (user_id, category, currency.value, since_date.isoformat(), until_date.isoformat()),
    ).fetchone()
    return Money(row["total"])


# Budgets


def _row_to_budget(row: sqlite3.Row) -> Budget:
    return Budget(
        id=row["id"],
        user_id=UserId(row["user_id"]),
        name=row["name"],
        category=CategoryName(row["category"]),
        amount=Money(row["amount"]),
        currency=Currency(row["currency"]),
        period=BudgetPeriod(row["period"]),
        start_date=date.fromisoformat(row["start_date"]),
        end_date=date.fromisoformat(row["end_date"]),
        alert_threshold=row["alert_threshold"],
        status=BudgetStatus(row["status"]),
        source_account_id=row["source_account_id"],
        allocated_at=_datetime(row["allocated_at"]),
        returned_at=_datetime(row["returned_at"]),
        archived_from=BudgetStatus(row["archived_from"]) if row["archived_from"] else None,
    )


def insert_budget(conn: sqlite3.Connection, budget: Budget) -> int:
    """Insert a budget (id is ignored) and return its new id."""
    cursor = conn.execute(
        """
        INSERT INTO budgets (user_id, name, category, amount, currency, period, start_date,
                             end_date, alert_threshold, status)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            budget.user_id,
            budget.name,
            budget.category,
            budget.amount,
            budget.currency.value,
            budget.period.value,
            budget.start_date.isoformat(),
            budget.end_date.isoformat(),
            budget.alert_threshold,
            budget.status.value,
        ),
    )
    return int(cursor.lastrowid)


def get_budget(conn: sqlite3.Connection, user_id: UserId, budget_id: int) -> Budget | None:
    """Get a budget owned by the user."""
    row = conn.execute("SELECT * FROM budgets WHERE id = ? AND user_id = ?", (budget_id, user_id)).fetchone()
    return _row_to_budget(row) if row else None


def list_budgets(
    conn: sqlite3.Connection,
    user_id: UserId,
    statuses: set[BudgetStatus] | None = None,
    category: str | None = None,
) -> list[Budget]:
    """List a user's budgets, newest first, optionally filtered by status and category."""
    query = "SELECT * FROM budgets WHERE user_id = ?"
    params: list[Any] = [user_id]

    if statuses:
        placeholders = ", ".join("?" for _ in statuses)
        query += f" AND status IN ({placeholders})"
        params.extend(sorted(s.value for s in statuses))
    if category:
        query += " AND category = ?"
        params.append(category)

    query += " ORDER BY id DESC"
    return [_row_to_budget(row) for row in conn.execute(query, params).fetchall()]


def list_expired_budget_ids(conn: sqlite3.Connection, today: date, user_id: UserId | None = None) -> list[tuple[UserId, int]]:
    """Find funded budgets whose window has ended and that have not returned yet.

    Args:
        conn: Open connection.
        today: Reference date; a window [start, end) is over once end <= today.
        user_id: Restrict to one user. If None, every user is swept.

    Returns:
        List of (user_id, budget_id) ordered by end date.
    """
    query = """
        SELECT user_id, id FROM budgets
        WHERE status IN ('allocated', 'active') AND end_date <= ? AND returned_at IS NULL
    """
    params: list[Any] = [today.isoformat()]
    if user_id is not None:
        query += " AND user_id = ?"
        params.append(user_id)
    query += " ORDER BY end_date, id"
    return [(UserId(row["user_id"]), row["id"]) for row in conn.execute(query, params).fetchall()]


def save_budget(conn: sqlite3.Connection, budget: Budget) -> None:
    """Write every stored field of a budget."""
    conn.execute(
        """
        UPDATE budgets
        SET name = ?, category = ?, amount = ?, currency = ?, period = ?, start_date = ?, end_date = ?,
            alert_threshold = ?, status = ?, source_account_id = ?, allocated_at = ?, returned_at = ?,
            archived_from = ?
        WHERE id = ? AND user_id = ?
        """,
        (
            budget.name,
            budget.category,
            budget.amount,
            budget.currency.value,
            budget.period.value,
            budget.start_date.isoformat(),
            budget.end_date.isoformat(),
            budget.alert_threshold,
            budget.status.value,
            budget.source_account_id,
            _iso(budget.allocated_at),
            _iso(budget.returned_at),
            budget.archived_from.value if budget.archived_from else None,
            budget.id,
            budget.user_id,
        ),
    )


def delete_budget(conn: sqlite3.Connection, user_id: UserId, budget_id: int) -> None:
    """Remove a budget row."""
    conn.execute("DELETE FROM budgets WHERE id = ? AND user_id = ?", (budget_id, user_id))


# Sols


def _row_to_member(row: sqlite3.Row) -> SolMember:
    return SolMember(
        name=row["name"],
        position=row["position"],
        phone=row["phone"],
        has_received=bool(row["has_received"]),
        received_date=_date(row["received_date"]),
    )


def _load_members(conn: sqlite3.Connection, sol_id: int) -> tuple[SolMember, ...]:
    rows = conn.execute("SELECT * FROM sol_members WHERE sol_id = ? ORDER BY position", (sol_id,)).fetchall()
    return tuple(_row_to_member(row) for row in rows)


def _row_to_sol(conn: sqlite3.Connection, row: sqlite3.Row) -> Sol:
    return Sol(
        id=row["id"],
        user_id=UserId(row["user_id"]),
        name=row["name"],
        type=SolType(row["type"]),
        amount=Money(row["amount"]),
        currency=Currency(row["currency"]),
        frequency=Frequency(row["frequency"]),
        start_date=date.fromisoformat(row["start_date"]),
        end_date=_date(row["end_date"]),
        next_payment_date=date.fromisoformat(row["next_payment_date"]),
        total_contributions=Money(row["total_contributions"]),
        target_amount=Money(row["target_amount"]) if row["target_amount"] is not None else None,
        members=_load_members(conn, row["id"]),
        current_recipient_index=row["current_recipient_index"],
        is_active=bool(row["is_active"]),
        description=row["description"],
    )


def _write_members(conn: sqlite3.Connection, sol_id: int, members: tuple[SolMember, ...]) -> None:
    conn.execute("DELETE FROM sol_members WHERE sol_id = ?", (sol_id,))
    conn.executemany(
        """
        INSERT INTO sol_members (sol_id, position, name, phone, has_received, received_date)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [(sol_id, m.position, m.name, m.phone, int(m.has_received), _iso(m.received_date)) for m in members],
    )


def insert_sol(conn: sqlite3.Connection, sol: Sol) -> int:
    """Insert a sol and its members (id is ignored) and return its new id."""
    cursor = conn.execute(
        """
        INSERT INTO sols (user_id, name, type, amount, currency, frequency, start_date, end_date,
                          next_payment_date, total_contributions, target_amount,
                          current_recipient_index, is_active, description)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            sol.user_id,
            sol.name,
            sol.type.value,
            sol.amount,
            sol.currency.value,
            sol.frequency.value,
            sol.start_date.isoformat(),
            _iso(sol.end_date),
            sol.next_payment_date.isoformat(),
            sol.total_contributions,
            sol.target_amount,
            sol.current_recipient_index,
            int(sol.is_active),
            sol.description,
        ),
    )
    sol_id = int(cursor.lastrowid)
    _write_members(conn, sol_id, sol.members)
    return sol_id


def get_sol(conn: sqlite3.Connection, user_id: UserId, sol_id: int) -> Sol | None:
    """Get a sol owned by the user, with its members."""
    row = conn.execute("SELECT * FROM sols WHERE id = ? AND user_id = ?", (sol_id, user_id)).fetchone()
    return _row_to_sol(conn, row) if row else None


def list_sols(conn: sqlite3.Connection, user_id: UserId, is_active: bool | None = None) -> list[Sol]:
    """List a user's sols, newest first."""
    query = "SELECT * FROM sols WHERE user_id = ?"
    params: list[Any] = [user_id]
    if is_active is not None:
        query += " AND is_active = ?"
        params.append(int(is_active))
    query += " ORDER BY id DESC"
    return [_row_to_sol(conn, row) for row in conn.execute(query, params).fetchall()]


def save_sol(conn: sqlite3.Connection, sol: Sol) -> None:
    """Write every stored field of a sol, replacing its members."""
    conn.execute(
        """
        UPDATE sols
        SET name = ?, amount = ?, frequency = ?, end_date = ?, next_payment_date = ?,
            total_contributions = ?, target_amount = ?, current_recipient_index = ?, is_active = ?,
            description = ?
        WHERE id = ? AND user_id = ?
        """,
        (
            sol.name,
            sol.amount,
            sol.frequency.value,
            _iso(sol.end_date),
            sol.next_payment_date.isoformat(),
            sol.total_contributions,
            sol.target_amount,
            sol.current_recipient_index,
            int(sol.is_active),
            sol.description,
            sol.id,
            sol.user_id,
        ),
    )
    _write_members(conn, sol.id, sol.members)


def delete_sol(conn: sqlite3.Connection, user_id: UserId, sol_id: int) -> None:
    """Remove a sol and its members."""
    conn.execute("DELETE FROM sol_members WHERE sol_id = ?", (sol_id,))
    conn.execute("DELETE FROM sols WHERE id = ? AND user_id = ?", (sol_id, user_id))
