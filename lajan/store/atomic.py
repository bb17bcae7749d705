"""Connections and the atomic unit used by every mutating engine operation.

An atomic unit is one sqlite3 connection in autocommit mode with an explicit
BEGIN IMMEDIATE. The write lock is taken when the unit opens, so two units on
the same database serialize: the second one reads only after the first has
committed or rolled back. Leaving the block normally commits; any exception
rolls everything back and propagates.
"""

import sqlite3
from collections.abc import Iterator
from contextlib import closing, contextmanager
from pathlib import Path

from lajan.domain.errors import LedgerBusyError
from lajan.store.schema import get_db_path

DEFAULT_LOCK_TIMEOUT = 5.0


def _is_busy(error: sqlite3.OperationalError) -> bool:
    return "locked" in str(error) or "busy" in str(error)


def _open(db_path: Path | None, timeout: float) -> sqlite3.Connection:
    if db_path is None:
        db_path = get_db_path()
    conn = sqlite3.connect(db_path, timeout=timeout, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def connect(db_path: Path | None = None, timeout: float = DEFAULT_LOCK_TIMEOUT) -> Iterator[sqlite3.Connection]:
    """Open a read connection with row factory.

    Args:
        db_path: Path to the database file. If None, uses default location.
        timeout: Seconds to wait on a locked database.

    Yields:
        Connection that is closed when the block exits.
    """
    with closing(_open(db_path, timeout)) as conn:
        yield conn


@contextmanager
def atomic(db_path: Path | None = None, timeout: float = DEFAULT_LOCK_TIMEOUT) -> Iterator[sqlite3.Connection]:
    """Run a block as one all-or-nothing unit.

    Args:
        db_path: Path to the database file. If None, uses default location.
        timeout: Seconds to wait for the write lock.

    Yields:
        Connection with an open write transaction.

    Raises:
        LedgerBusyError: If the write lock is not obtained before the timeout,
            or a reader still holds the database when the unit commits.
    """
    with closing(_open(db_path, timeout)) as conn:
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.OperationalError as e:
            if _is_busy(e):
                raise LedgerBusyError(f"Database is busy, try again: {e}") from e
            raise

        try:
            yield conn
        except BaseException:
            # SQLite may already have rolled back on its own (disk full, I/O error)
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

        try:
            conn.execute("COMMIT")
        except sqlite3.OperationalError as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            if _is_busy(e):
                raise LedgerBusyError(f"Database is busy, try again: {e}") from e
            raise


def require_unit(conn: sqlite3.Connection) -> None:
    """Refuse balance or status writes outside an open atomic unit.

    Raises:
        RuntimeError: If the connection has no open transaction.
    """
    if not conn.in_transaction:
        raise RuntimeError("Ledger writes must run inside an atomic unit")
