"""CLI entry point for lajan."""

import typer

from lajan.commands import accounts as account_cmds
from lajan.commands import budget as budget_cmds
from lajan.commands import sol as sol_cmds
from lajan.commands import transactions as txn_cmds
from lajan.commands.admin import backup_command, config_set_command, config_show_command, init_command
from lajan.commands.common import build_session, fail
from lajan.config import load_config_or_default
from lajan.domain.models import AccountType, BudgetPeriod, BudgetStatus, Frequency, Provider, SolType, TransactionType
from lajan.logs import configure_logging

app = typer.Typer(
    name="lajan",
    help="Lajan - accounts, budgets and sols for everyday money",
    add_completion=False,
)
account_app = typer.Typer(help="Manage accounts and balances.")
txn_app = typer.Typer(help="Record and review transactions.")
budget_app = typer.Typer(help="Fund and track budget envelopes.")
sol_app = typer.Typer(help="Savings pools and rotating sols.")
config_app = typer.Typer(help="View or change configuration.")

app.add_typer(account_app, name="account")
app.add_typer(txn_app, name="txn")
app.add_typer(budget_app, name="budget")
app.add_typer(sol_app, name="sol")
app.add_typer(config_app, name="config")


@app.callback()
def main(
    ctx: typer.Context,
    user: str = typer.Option(None, "--user", "-u", envvar="LAJAN_USER", help="Act as this user (default: from config)"),
    log_level: str = typer.Option(None, "--log-level", help="Log level for stderr output (overrides config)"),
) -> None:
    """Lajan - accounts, budgets and sols for everyday money."""
    config = load_config_or_default()
    logging_config = config.get("logging", {})
    configure_logging(log_level or logging_config.get("level", "WARNING"), bool(logging_config.get("json", False)))

    try:
        ctx.obj = build_session(config, user)
    except ValueError as e:
        fail(f"Invalid configuration: {e}")


# Admin


@app.command(name="init")
def init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing database and config"),
    migrate: bool = typer.Option(False, "--migrate", help="Update the database schema only"),
) -> None:
    """Initialize lajan database and configuration."""
    init_command(ctx.obj, force, migrate)


@app.command(name="backup")
def backup(
    ctx: typer.Context,
    output_dir: str = typer.Option(None, "--output", "-o", help="Backup directory (default: next to the database)"),
) -> None:
    """Backup your database and configuration files."""
    backup_command(ctx.obj, output_dir)


@config_app.command(name="show")
def config_show() -> None:
    """Show the current configuration."""
    config_show_command()


@config_app.command(name="set")
def config_set(
    key: str = typer.Argument(..., help="Key, or section.key (e.g. logging.level)"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Set a configuration value."""
    config_set_command(key, value)


# Accounts


@account_app.command(name="add")
def account_add(
    ctx: typer.Context,
    name: str,
    account_type: AccountType = typer.Option(..., "--type", "-t", help="Account type"),
    currency: str = typer.Option(None, "--currency", "-c", help="HTG or USD (default: from config)"),
    initial_balance: str = typer.Option(None, "--balance", "-b", help="Opening balance"),
    institution: str = typer.Option(None, "--institution", help="Bank name"),
    provider: Provider = typer.Option(None, "--provider", help="Mobile money provider"),
    exclude_from_total: bool = typer.Option(False, "--exclude-from-total", help="Leave out of totals"),
) -> None:
    """Open a new account."""
    account_cmds.add_command(
        ctx.obj, name, account_type, currency, initial_balance, institution, provider, exclude_from_total
    )


@account_app.command(name="edit")
def account_edit(
    ctx: typer.Context,
    account_id: int,
    name: str = typer.Option(None, "--name", help="New name"),
    account_type: AccountType = typer.Option(None, "--type", "-t", help="New type"),
    institution: str = typer.Option(None, "--institution", help="Bank name"),
    provider: Provider = typer.Option(None, "--provider", help="Mobile money provider"),
    include_in_total: bool = typer.Option(
        None, "--include-in-total/--exclude-from-total", help="Whether the balance counts in totals"
    ),
) -> None:
    """Edit an account."""
    account_cmds.edit_command(ctx.obj, account_id, name, account_type, institution, provider, include_in_total)


@account_app.command(name="deactivate")
def account_deactivate(ctx: typer.Context, account_id: int) -> None:
    """Deactivate an account; history is kept."""
    account_cmds.deactivate_command(ctx.obj, account_id)


@account_app.command(name="list")
def account_list(
    ctx: typer.Context,
    all: bool = typer.Option(False, "--all", "-a", help="Include inactive accounts"),
) -> None:
    """List your accounts and totals per currency."""
    account_cmds.list_command(ctx.obj, all)


@account_app.command(name="audit")
def account_audit(ctx: typer.Context, account_id: int) -> None:
    """Check an account's balance against its transaction history."""
    account_cmds.audit_command(ctx.obj, account_id)


# Transactions


@txn_app.command(name="add")
def txn_add(
    ctx: typer.Context,
    txn_type: TransactionType = typer.Argument(..., help="expense, income or transfer"),
    amount: str = typer.Argument(..., help="Amount, e.g. 1250.50"),
    account_id: int = typer.Option(..., "--account", "-a", help="Source account (the receiving account for income)"),
    category: str = typer.Option(None, "--category", "-c", help="Category (see 'lajan txn categories')"),
    description: str = typer.Option("", "--description", "-d", help="Description"),
    date: str = typer.Option(None, "--date", help="Date (default: today)"),
    to_account_id: int = typer.Option(None, "--to", help="Destination account for transfers"),
    fee: str = typer.Option(None, "--fee", help="Transfer fee paid by the source account"),
    currency: str = typer.Option(None, "--currency", help="Currency (default: the account's)"),
) -> None:
    """Record an expense, income or transfer."""
    txn_cmds.add_command(
        ctx.obj, txn_type, amount, account_id, category, description, date, to_account_id, fee, currency
    )


@txn_app.command(name="edit")
def txn_edit(
    ctx: typer.Context,
    txn_id: int,
    description: str = typer.Option(None, "--description", "-d", help="New description"),
    category: str = typer.Option(None, "--category", "-c", help="New category"),
    date: str = typer.Option(None, "--date", help="New date"),
) -> None:
    """Edit a transaction's description, category or date."""
    txn_cmds.edit_command(ctx.obj, txn_id, description, category, date)


@txn_app.command(name="delete")
def txn_delete(ctx: typer.Context, txn_id: int) -> None:
    """Delete a transaction and reverse its balance effect."""
    txn_cmds.delete_command(ctx.obj, txn_id)


@txn_app.command(name="list")
def txn_list(
    ctx: typer.Context,
    txn_type: TransactionType = typer.Option(None, "--type", "-t", help="Only this type"),
    category: str = typer.Option(None, "--category", "-c", help="Only this category"),
    account_id: int = typer.Option(None, "--account", help="Only transactions touching this account"),
    since: str = typer.Option(None, "--since", help="From this date"),
    until: str = typer.Option(None, "--until", help="Up to this date"),
    limit: int = typer.Option(50, help="Maximum transactions to show"),
    all: bool = typer.Option(False, "--all", "-a", help="Show all your transactions"),
) -> None:
    """List your transactions."""
    txn_cmds.list_command(ctx.obj, txn_type, category, account_id, since, until, limit, all)


@txn_app.command(name="stats")
def txn_stats(
    ctx: typer.Context,
    period: str = typer.Option("month", "--period", "-p", help="week, month or year"),
    currency: str = typer.Option(None, "--currency", help="Currency to report on (default: from config)"),
    histogram: bool = typer.Option(True, help="Show histogram bars"),
) -> None:
    """Show your income and spending breakdown."""
    txn_cmds.stats_command(ctx.obj, period, currency, histogram)


@txn_app.command(name="categories")
def txn_categories(
    txn_type: TransactionType = typer.Argument(TransactionType.EXPENSE, help="expense or income"),
) -> None:
    """List the known categories."""
    txn_cmds.categories_command(txn_type)


# Budgets


@budget_app.command(name="create")
def budget_create(
    ctx: typer.Context,
    name: str,
    category: str = typer.Option(..., "--category", "-c", help="Expense category to track"),
    amount: str = typer.Option(..., "--amount", help="Budget amount"),
    start: str = typer.Option(None, "--start", help="First day (default: first of this month)"),
    end: str = typer.Option(None, "--end", help="Day after the last day (default: one period after start)"),
    period: BudgetPeriod = typer.Option(BudgetPeriod.MONTHLY, "--period", help="monthly or yearly"),
    alert_threshold: int = typer.Option(80, "--alert", help="Warn at this percent used"),
    currency: str = typer.Option(None, "--currency", help="HTG or USD (default: from config)"),
) -> None:
    """Create a draft budget."""
    budget_cmds.create_command(ctx.obj, name, category, amount, start, end, period, alert_threshold, currency)


@budget_app.command(name="allocate")
def budget_allocate(
    ctx: typer.Context,
    budget_id: int,
    account_id: int = typer.Option(..., "--account", "-a", help="Account that funds the budget"),
) -> None:
    """Move the budget amount out of an account."""
    budget_cmds.allocate_command(ctx.obj, budget_id, account_id)


@budget_app.command(name="activate")
def budget_activate(ctx: typer.Context, budget_id: int) -> None:
    """Mark an allocated budget active."""
    budget_cmds.activate_command(ctx.obj, budget_id)


@budget_app.command(name="return")
def budget_return(ctx: typer.Context, budget_id: int) -> None:
    """Return unused funds to the source account and complete the budget."""
    budget_cmds.return_command(ctx.obj, budget_id)


@budget_app.command(name="sweep")
def budget_sweep(
    ctx: typer.Context,
    all_users: bool = typer.Option(False, "--all-users", help="Sweep every user's budgets"),
) -> None:
    """Return unused funds of every budget whose window has ended."""
    budget_cmds.sweep_command(ctx.obj, all_users)


@budget_app.command(name="archive")
def budget_archive(ctx: typer.Context, budget_id: int) -> None:
    """Archive a budget."""
    budget_cmds.archive_command(ctx.obj, budget_id)


@budget_app.command(name="unarchive")
def budget_unarchive(ctx: typer.Context, budget_id: int) -> None:
    """Restore an archived budget."""
    budget_cmds.unarchive_command(ctx.obj, budget_id)


@budget_app.command(name="edit")
def budget_edit(
    ctx: typer.Context,
    budget_id: int,
    name: str = typer.Option(None, "--name", help="New name"),
    amount: str = typer.Option(None, "--amount", help="New amount (drafts only)"),
    start: str = typer.Option(None, "--start", help="New first day"),
    end: str = typer.Option(None, "--end", help="New end (exclusive)"),
    alert_threshold: int = typer.Option(None, "--alert", help="New alert threshold"),
) -> None:
    """Edit a budget."""
    budget_cmds.edit_command(ctx.obj, budget_id, name, amount, start, end, alert_threshold)


@budget_app.command(name="delete")
def budget_delete(ctx: typer.Context, budget_id: int) -> None:
    """Delete a budget that holds no funds."""
    budget_cmds.delete_command(ctx.obj, budget_id)


@budget_app.command(name="list")
def budget_list(
    ctx: typer.Context,
    status: BudgetStatus = typer.Option(None, "--status", "-s", help="Only this status"),
    all: bool = typer.Option(False, "--all", "-a", help="Include completed and archived budgets"),
) -> None:
    """List budgets with live spending."""
    budget_cmds.list_command(ctx.obj, status, all)


@budget_app.command(name="status")
def budget_status(ctx: typer.Context, budget_id: int) -> None:
    """Show one budget's spending against its amount."""
    budget_cmds.status_command(ctx.obj, budget_id)


@budget_app.command(name="stats")
def budget_stats(ctx: typer.Context) -> None:
    """Show totals over live budgets."""
    budget_cmds.stats_command(ctx.obj)


# Sols


@sol_app.command(name="create")
def sol_create(
    ctx: typer.Context,
    name: str,
    sol_type: SolType = typer.Option(..., "--type", "-t", help="personal or collaborative"),
    amount: str = typer.Option(..., "--amount", help="Contribution per period"),
    frequency: Frequency = typer.Option(Frequency.MONTHLY, "--frequency", "-f", help="Contribution frequency"),
    start: str = typer.Option(None, "--start", help="First payment date (default: today)"),
    end: str = typer.Option(None, "--end", help="Optional end date"),
    target: str = typer.Option(None, "--target", help="Savings target (personal sols)"),
    members: list[str] = typer.Option(None, "--member", "-m", help="Member as name or name:phone (repeatable)"),
    description: str = typer.Option(None, "--description", "-d", help="Description"),
    currency: str = typer.Option(None, "--currency", help="HTG or USD (default: from config)"),
) -> None:
    """Create a sol."""
    sol_cmds.create_command(
        ctx.obj, name, sol_type, amount, frequency, start, end, target, members, description, currency
    )


@sol_app.command(name="contribute")
def sol_contribute(
    ctx: typer.Context,
    sol_id: int,
    account_id: int = typer.Option(..., "--account", "-a", help="Account that pays the contribution"),
) -> None:
    """Pay one contribution."""
    sol_cmds.contribute_command(ctx.obj, sol_id, account_id)


@sol_app.command(name="next")
def sol_next(ctx: typer.Context, sol_id: int) -> None:
    """Mark the current recipient paid and move to the next member."""
    sol_cmds.next_command(ctx.obj, sol_id)


@sol_app.command(name="edit")
def sol_edit(
    ctx: typer.Context,
    sol_id: int,
    name: str = typer.Option(None, "--name", help="New name"),
    amount: str = typer.Option(None, "--amount", help="New contribution amount"),
    frequency: Frequency = typer.Option(None, "--frequency", "-f", help="New frequency"),
    end: str = typer.Option(None, "--end", help="New end date"),
    target: str = typer.Option(None, "--target", help="New target"),
    description: str = typer.Option(None, "--description", "-d", help="New description"),
    active: bool = typer.Option(None, "--active/--inactive", help="Pause or resume the sol"),
    members: list[str] = typer.Option(None, "--member", "-m", help="Replace members (repeatable)"),
) -> None:
    """Edit a sol."""
    sol_cmds.edit_command(ctx.obj, sol_id, name, amount, frequency, end, target, description, active, members)


@sol_app.command(name="delete")
def sol_delete(ctx: typer.Context, sol_id: int) -> None:
    """Delete a sol."""
    sol_cmds.delete_command(ctx.obj, sol_id)


@sol_app.command(name="list")
def sol_list(
    ctx: typer.Context,
    all: bool = typer.Option(False, "--all", "-a", help="Include inactive sols"),
) -> None:
    """List your sols."""
    sol_cmds.list_command(ctx.obj, all)


@sol_app.command(name="show")
def sol_show(ctx: typer.Context, sol_id: int) -> None:
    """Show a sol and its members."""
    sol_cmds.show_command(ctx.obj, sol_id)


@sol_app.command(name="history")
def sol_history(ctx: typer.Context, sol_id: int) -> None:
    """List a sol's contributions."""
    sol_cmds.history_command(ctx.obj, sol_id)


@sol_app.command(name="stats")
def sol_stats(ctx: typer.Context) -> None:
    """Show totals over active sols."""
    sol_cmds.stats_command(ctx.obj)


if __name__ == "__main__":
    app()
