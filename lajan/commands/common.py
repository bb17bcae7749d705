"""Shared helpers for CLI commands: session, input parsing and error display."""

import sqlite3
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, NoReturn

import pandas as pd
from rich.console import Console

from lajan.config import resolve_currency, resolve_db_path, resolve_user
from lajan.domain.errors import LedgerError
from lajan.domain.models import Currency, Money, UserId
from lajan.domain.money import parse_money
from lajan.store.atomic import DEFAULT_LOCK_TIMEOUT
from lajan.store.schema import database_exists

console = Console()


@dataclass(frozen=True)
class Session:
    """Settings every command runs with, resolved once from config and options."""

    user_id: UserId
    db_path: Path
    currency: Currency
    timeout: float = DEFAULT_LOCK_TIMEOUT


def build_session(config: dict[str, Any], user: str | None = None) -> Session:
    """Resolve the acting user, database and defaults from config.

    Args:
        config: Loaded configuration.
        user: Value of the --user option, if given.

    Returns:
        Session for this invocation.
    """
    return Session(
        user_id=resolve_user(config, user),
        db_path=resolve_db_path(config),
        currency=resolve_currency(config),
        timeout=float(config.get("lock_timeout", DEFAULT_LOCK_TIMEOUT)),
    )


def fail(message: str) -> NoReturn:
    """Print an error in red and exit with status 1."""
    console.print(f"[red]{message}[/red]", style="bold")
    sys.exit(1)


def require_database(session: Session) -> None:
    """Exit with a hint when the database has not been initialized."""
    if not database_exists(session.db_path):
        fail("Database not found. Run 'lajan init' first.")


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn ledger and database errors into a red message and exit status 1."""
    try:
        yield
    except LedgerError as e:
        fail(str(e))
    except sqlite3.Error as e:
        fail(f"Database error: {e}")


def parse_date(raw: str) -> date:
    """Parse a user-supplied date.

    Uses pandas.to_datetime so ISO, European (day first) and most other
    common formats are accepted.

    Raises:
        ValueError: If the date cannot be parsed.
    """
    try:
        return pd.to_datetime(raw, dayfirst=True).date()
    except (ValueError, pd.errors.ParserError) as e:
        raise ValueError(f"Could not parse date '{raw}': {e}") from e


def date_option(raw: str | None) -> date | None:
    """Parse an optional date option, exiting on bad input."""
    if raw is None:
        return None
    try:
        return parse_date(raw)
    except ValueError as e:
        console.print(f"[red]Invalid date format: {e}[/red]")
        console.print("[dim]Accepted formats: YYYY-MM-DD, DD/MM/YYYY, DD-MM-YYYY, etc.[/dim]")
        sys.exit(1)


def amount_option(raw: str | None) -> Money | None:
    """Parse an optional amount option in major units, exiting on bad input."""
    if raw is None:
        return None
    amount = parse_money(raw)
    if amount is None:
        fail(f"Invalid amount '{raw}' (use a positive number with at most two decimals)")
    return amount


def currency_option(raw: str | None, session: Session) -> Currency:
    """Parse a currency option, falling back to the session default."""
    if raw is None:
        return session.currency
    try:
        return Currency(raw.upper())
    except ValueError:
        fail(f"Unsupported currency '{raw}' (choose from {', '.join(c.value for c in Currency)})")
