"""Transaction categories.

Known categories drive aggregation and budget matching. Any other non-empty
name is still accepted and stored as a custom category, but it never matches
a budget because budgets may only target known expense categories.
"""

from dataclasses import dataclass

from lajan.domain.models import CategoryName, TransactionType

EXPENSE_CATEGORIES: tuple[str, ...] = (
    "nourriture",
    "transport",
    "abonnements",
    "personnel",
    "loisirs",
    "famille",
    "travail",
    "sante",
    "communication",
    "loyer",
    "paris_sportifs",
    "sol",
    "investissement",
    "remboursement_dette",
    "pret_accorde",
    "autre",
)

INCOME_CATEGORIES: tuple[str, ...] = (
    "salaire",
    "freelance",
    "famille",
    "paris_sportifs",
    "cadeaux",
    "remboursement_recu",
    "vente_investissement",
    "pot_sol",
    "autre",
)

# Written only by the engine for budget envelope movements
BUDGET_ALLOCATION = CategoryName("budget_allocation")
BUDGET_RETURN = CategoryName("budget_return")
SOL_CONTRIBUTION = CategoryName("sol")


@dataclass(frozen=True)
class Category:
    """A category name tagged with whether it belongs to the known set."""

    name: CategoryName
    known: bool

    @property
    def custom(self) -> bool:
        return not self.known


def known_categories(txn_type: TransactionType) -> tuple[str, ...]:
    """Return the known category set for a transaction type (empty for transfers)."""
    if txn_type == TransactionType.EXPENSE:
        return EXPENSE_CATEGORIES
    if txn_type == TransactionType.INCOME:
        return INCOME_CATEGORIES
    return ()


def normalize_category_name(name: str) -> str:
    """Lowercase and collapse whitespace to underscores."""
    return "_".join(name.strip().lower().split())


def parse_category(name: str, txn_type: TransactionType) -> Category:
    """Tag a category name as known or custom for the given transaction type.

    Args:
        name: Raw category name.
        txn_type: Transaction type the category is used with.

    Returns:
        Category with the normalized name.

    Raises:
        ValueError: If the name is empty.
    """
    normalized = normalize_category_name(name)
    if not normalized:
        raise ValueError("Category name cannot be empty")
    return Category(name=CategoryName(normalized), known=normalized in known_categories(txn_type))


def is_budgetable(name: str) -> bool:
    """Check whether a budget may target this category."""
    return normalize_category_name(name) in EXPENSE_CATEGORIES
