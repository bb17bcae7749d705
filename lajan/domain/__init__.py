"""Domain models and types for lajan.

This package contains the functional core:
- Pure functions with no side effects
- No I/O operations
- Easy to test
- Business logic separated from infrastructure
"""

from lajan.domain.models import CategoryName, Currency, Money, UserId

__all__ = ["Money", "UserId", "CategoryName", "Currency"]
