"""Tests for lajan.domain.categories."""

import pytest

from lajan.domain.categories import is_budgetable, known_categories, normalize_category_name, parse_category
from lajan.domain.models import TransactionType


class TestParseCategory:
    """Tests for parse_category."""

    def test_known_expense_category(self) -> None:
        category = parse_category("Nourriture", TransactionType.EXPENSE)

        assert category.name == "nourriture"
        assert category.known
        assert not category.custom

    def test_unknown_name_kept_as_custom(self) -> None:
        """Unknown names are accepted and tagged custom."""
        category = parse_category("Street Food", TransactionType.EXPENSE)

        assert category.name == "street_food"
        assert category.custom

    def test_known_set_depends_on_type(self) -> None:
        """salaire is an income category, not an expense one."""
        assert parse_category("salaire", TransactionType.INCOME).known
        assert parse_category("salaire", TransactionType.EXPENSE).custom

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="cannot be empty"):
            parse_category("   ", TransactionType.EXPENSE)


class TestHelpers:
    """Tests for normalize_category_name, known_categories and is_budgetable."""

    def test_normalize_collapses_whitespace(self) -> None:
        assert normalize_category_name("  Paris   Sportifs ") == "paris_sportifs"

    def test_transfers_have_no_categories(self) -> None:
        assert known_categories(TransactionType.TRANSFER) == ()

    def test_only_known_expense_categories_are_budgetable(self) -> None:
        assert is_budgetable("Transport")
        assert not is_budgetable("pot_sol")
        assert not is_budgetable("street_food")
