"""Database schema initialization and migrations."""

import os
import sqlite3
from pathlib import Path


def get_xdg_data_home() -> Path:
    """Get XDG data directory, with fallback to ~/.local/share."""
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


def get_db_path() -> Path:
    """Get the default database path (XDG compliant)."""
    return get_xdg_data_home() / "lajan" / "lajan.db"


def database_exists(db_path: Path | None = None) -> bool:
    """Check if the database file exists.

    Args:
        db_path: Path to check. If None, uses default location.

    Returns:
        True if database exists, False otherwise.
    """
    if db_path is None:
        db_path = get_db_path()
    return db_path.exists()


def init_database(db_path: Path | None = None) -> None:
    """Initialize the database with the required schema.

    Args:
        db_path: Path to the database file. If None, uses default location.

    Raises:
        sqlite3.Error: If database initialization fails.
    """
    if db_path is None:
        db_path = get_db_path()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    try:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS accounts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                type TEXT NOT NULL,
                currency TEXT NOT NULL,
                balance INTEGER NOT NULL DEFAULT 0,
                initial_balance INTEGER NOT NULL DEFAULT 0,
                institution TEXT,
                provider TEXT,
                include_in_total INTEGER NOT NULL DEFAULT 1,
                is_active INTEGER NOT NULL DEFAULT 1
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                type TEXT NOT NULL,
                amount INTEGER NOT NULL CHECK (amount > 0),
                currency TEXT NOT NULL,
                source_account_id INTEGER,
                destination_account_id INTEGER,
                fee INTEGER NOT NULL DEFAULT 0,
                category TEXT,
                description TEXT NOT NULL DEFAULT '',
                date TEXT NOT NULL,
                linked_module TEXT,
                linked_id INTEGER,
                generated INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                deleted_at TEXT
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS budgets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                category TEXT NOT NULL,
                amount INTEGER NOT NULL CHECK (amount > 0),
                currency TEXT NOT NULL,
                period TEXT NOT NULL DEFAULT 'monthly',
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                alert_threshold INTEGER NOT NULL DEFAULT 80,
                status TEXT NOT NULL DEFAULT 'draft',
                source_account_id INTEGER,
                allocated_at TEXT,
                returned_at TEXT,
                archived_from TEXT
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS sols (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                type TEXT NOT NULL,
                amount INTEGER NOT NULL CHECK (amount > 0),
                currency TEXT NOT NULL,
                frequency TEXT NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT,
                next_payment_date TEXT NOT NULL,
                total_contributions INTEGER NOT NULL DEFAULT 0,
                target_amount INTEGER,
                current_recipient_index INTEGER NOT NULL DEFAULT 0,
                is_active INTEGER NOT NULL DEFAULT 1,
                description TEXT
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS sol_members (
                sol_id INTEGER NOT NULL REFERENCES sols(id) ON DELETE CASCADE,
                position INTEGER NOT NULL,
                name TEXT NOT NULL,
                phone TEXT,
                has_received INTEGER NOT NULL DEFAULT 0,
                received_date TEXT,
                PRIMARY KEY (sol_id, position)
            )
        """
        )

        # Migrations for older databases (must run before creating indexes on new columns)
        cursor.execute("PRAGMA table_info(budgets)")
        columns = [row[1] for row in cursor.fetchall()]

        # Migration: Add 'archived_from' column if missing
        if "archived_from" not in columns:
            cursor.execute("ALTER TABLE budgets ADD COLUMN archived_from TEXT")

        cursor.execute("PRAGMA table_info(transactions)")
        columns = [row[1] for row in cursor.fetchall()]

        # Migration: Add 'deleted_at' column if missing
        if "deleted_at" not in columns:
            cursor.execute("ALTER TABLE transactions ADD COLUMN deleted_at TEXT")

        # Create indexes for common queries (after migrations ensure columns exist)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_acct_user_active ON accounts(user_id, is_active)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_txn_user_date ON transactions(user_id, date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_txn_user_category_date ON transactions(user_id, category, date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_txn_source ON transactions(source_account_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_txn_destination ON transactions(destination_account_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_txn_linked ON transactions(linked_module, linked_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_budget_user_category ON budgets(user_id, category)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_budget_status_end ON budgets(status, end_date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_sol_user_active ON sols(user_id, is_active)")

        conn.commit()

    except sqlite3.Error:
        conn.rollback()
        raise
    finally:
        conn.close()
