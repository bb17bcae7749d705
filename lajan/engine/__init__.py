"""Engine layer - the imperative shell around the domain rules.

Every mutating operation opens one atomic unit, loads fresh state inside it,
applies the pure rules from lajan.domain and writes the result back.
"""

from lajan.engine.accounts import (
    audit_account,
    create_account,
    deactivate_account,
    get_account,
    get_account_totals,
    list_accounts,
    update_account,
)
from lajan.engine.budgets import (
    SweepOutcome,
    activate_budget,
    allocate_budget,
    archive_budget,
    budget_stats,
    create_budget,
    delete_budget,
    get_budget_view,
    list_budget_views,
    return_all_expired_budgets,
    return_budget_funds,
    unarchive_budget,
    update_budget,
)
from lajan.engine.journal import (
    create_transaction,
    delete_transaction,
    get_transaction,
    list_transactions,
    transaction_stats,
    update_transaction,
)
from lajan.engine.sols import (
    contribute_sol,
    create_sol,
    delete_sol,
    get_sol,
    list_sols,
    move_to_next_recipient,
    sol_history,
    sol_stats,
    update_sol,
)

__all__ = [
    # Accounts
    "create_account",
    "get_account",
    "list_accounts",
    "get_account_totals",
    "update_account",
    "deactivate_account",
    "audit_account",
    # Journal
    "create_transaction",
    "delete_transaction",
    "update_transaction",
    "get_transaction",
    "list_transactions",
    "transaction_stats",
    # Budgets
    "SweepOutcome",
    "create_budget",
    "allocate_budget",
    "activate_budget",
    "return_budget_funds",
    "return_all_expired_budgets",
    "archive_budget",
    "unarchive_budget",
    "update_budget",
    "delete_budget",
    "get_budget_view",
    "list_budget_views",
    "budget_stats",
    # Sols
    "create_sol",
    "contribute_sol",
    "move_to_next_recipient",
    "update_sol",
    "delete_sol",
    "get_sol",
    "list_sols",
    "sol_history",
    "sol_stats",
]
