"""Database store layer - provides persistence for the application.

This module re-exports the connection helpers and schema functions.
Query functions live in lajan.store.queries.
"""

from lajan.store.atomic import atomic, connect, require_unit
from lajan.store.schema import database_exists, get_db_path, init_database

__all__ = [
    # Units of work
    "atomic",
    "connect",
    "require_unit",
    # Schema
    "database_exists",
    "get_db_path",
    "init_database",
]
