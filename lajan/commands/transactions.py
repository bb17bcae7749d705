"""Transaction commands: add, edit, delete, list and stats."""

from rich.console import Console
from rich.table import Table

from lajan.commands.common import (
    Session,
    amount_option,
    currency_option,
    date_option,
    fail,
    require_database,
    reporting_errors,
)
from lajan.domain.categories import known_categories, parse_category
from lajan.domain.models import Money, NewTransaction, Transaction, TransactionType
from lajan.domain.money import format_money
from lajan.domain.report import calculate_histogram_bar_length
from lajan.engine import journal

console = Console()


def format_signed_amount(txn: Transaction) -> str:
    """Colour an amount by direction: red out, green in, plain for transfers."""
    display = format_money(txn.amount, txn.currency)
    if txn.type == TransactionType.EXPENSE:
        return f"[red]-{display}[/red]"
    if txn.type == TransactionType.INCOME:
        return f"[green]+{display}[/green]"
    return display


def add_command(
    session: Session,
    txn_type: TransactionType,
    amount: str,
    account_id: int,
    category: str | None = None,
    description: str = "",
    date: str | None = None,
    to_account_id: int | None = None,
    fee: str | None = None,
    currency: str | None = None,
) -> None:
    """Record an expense, income or transfer."""
    require_database(session)

    parsed_amount = amount_option(amount)

    new = NewTransaction(
        type=txn_type,
        amount=parsed_amount or Money(0),
        source_account_id=account_id,
        category=category,
        description=description,
        txn_date=date_option(date),
        currency=currency_option(currency, session) if currency else None,
        destination_account_id=to_account_id,
        fee=amount_option(fee) or Money(0),
    )

    with reporting_errors():
        txn = journal.create_transaction(session.user_id, new, session.db_path, session.timeout)

    console.print(f"[green]✓[/green] Transaction added (ID: {txn.id}):")
    console.print(f"  Date: {txn.date.isoformat()}")
    console.print(f"  Type: {txn.type.value}")
    console.print(f"  Amount: {format_money(txn.amount, txn.currency)}")
    if txn.fee:
        console.print(f"  Fee: {format_money(txn.fee, txn.currency)}")
    if txn.category:
        console.print(f"  Category: {txn.category}")
        if txn.type != TransactionType.TRANSFER and parse_category(txn.category, txn.type).custom:
            console.print(f"[dim]'{txn.category}' is a custom category; budgets will not track it[/dim]")


def edit_command(
    session: Session,
    txn_id: int,
    description: str | None = None,
    category: str | None = None,
    date: str | None = None,
) -> None:
    """Edit a transaction's description, category or date."""
    require_database(session)
    txn_date = date_option(date)

    with reporting_errors():
        txn = journal.update_transaction(
            session.user_id,
            txn_id,
            description=description,
            category=category,
            txn_date=txn_date,
            db_path=session.db_path,
            timeout=session.timeout,
        )

    console.print(f"[green]✓[/green] Transaction {txn.id} updated")


def delete_command(session: Session, txn_id: int) -> None:
    """Delete a transaction and reverse its effect on balances."""
    require_database(session)

    with reporting_errors():
        txn = journal.delete_transaction(session.user_id, txn_id, session.db_path, session.timeout)

    console.print(f"[green]✓[/green] Transaction {txn.id} deleted")
    console.print(f"[dim]Reversed {format_signed_amount(txn)} from {txn.date.isoformat()}[/dim]")


def list_command(
    session: Session,
    txn_type: TransactionType | None = None,
    category: str | None = None,
    account_id: int | None = None,
    since: str | None = None,
    until: str | None = None,
    limit: int = 50,
    all: bool = False,
) -> None:
    """List transactions, newest first."""
    require_database(session)

    with reporting_errors():
        transactions = journal.list_transactions(
            session.user_id,
            txn_type=txn_type,
            category=category,
            account_id=account_id,
            since_date=date_option(since),
            until_date=date_option(until),
            limit=None if all else limit,
            db_path=session.db_path,
        )

    if not transactions:
        console.print("[yellow]No transactions found[/yellow]")
        return

    title = f"Transactions (showing all {len(transactions)})" if all else f"Transactions (showing {len(transactions)})"
    table = Table(title=title)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Date", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Amount", justify="right")
    table.add_column("Category", style="magenta")
    table.add_column("Accounts", style="dim")

    for txn in transactions:
        source = str(txn.source_account_id) if txn.source_account_id is not None else "envelope"
        accounts = f"{source} → {txn.destination_account_id}" if txn.destination_account_id else source
        category = txn.category or "[dim]-[/dim]"
        if txn.generated:
            category = f"{category} [dim](auto)[/dim]"
        table.add_row(
            str(txn.id), txn.date.isoformat(), txn.description, format_signed_amount(txn), category, accounts
        )

    console.print(table)


def stats_command(session: Session, period: str = "month", currency: str | None = None, histogram: bool = True) -> None:
    """Show income and expense totals by category for the period."""
    require_database(session)

    if period not in ("week", "month", "year"):
        fail(f"Unknown period '{period}' (choose week, month or year)")
    chosen = currency_option(currency, session)

    with reporting_errors():
        stats = journal.transaction_stats(session.user_id, chosen, period, db_path=session.db_path)

    console.print(f"\n[bold]This {period} ({chosen.value})[/bold]\n")

    sections = (
        ("Income", "green", stats.income_by_category),
        ("Expenses", "red", stats.expense_by_category),
    )
    for title, colour, breakdown in sections:
        console.print(f"[bold {colour}]{title}[/bold {colour}]")
        if not breakdown:
            console.print("  [dim]none[/dim]")
        max_amount = max(breakdown.values(), default=Money(0))
        for category, amount in breakdown.items():
            display = format_money(amount, chosen)
            if histogram:
                bar = "█" * calculate_histogram_bar_length(amount, max_amount)
                console.print(f"  {category:20} {display:>16} {bar}")
            else:
                console.print(f"  {category}: {display}")
        console.print()

    net_colour = "green" if stats.net >= 0 else "red"
    console.print(f"[bold]Total income:[/bold]  {format_money(stats.total_income, chosen)}")
    console.print(f"[bold]Total expense:[/bold] {format_money(stats.total_expense, chosen)}")
    console.print(f"[bold]Net:[/bold]           [{net_colour}]{format_money(stats.net, chosen)}[/{net_colour}]")


def categories_command(txn_type: TransactionType) -> None:
    """Print the known categories for a transaction type."""
    names = known_categories(txn_type)
    if not names:
        console.print("[dim]Transfers carry no category[/dim]")
        return
    for name in names:
        console.print(f"  {name}")
