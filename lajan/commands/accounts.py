"""Account commands: open, edit, deactivate, list, totals and audit."""

from rich.console import Console
from rich.table import Table

from lajan.commands.common import Session, amount_option, currency_option, require_database, reporting_errors
from lajan.domain.models import Account, AccountType, Money, Provider
from lajan.domain.money import format_money
from lajan.engine import accounts

console = Console()


def format_balance(account: Account) -> str:
    """Colour a balance: dim when empty, green otherwise."""
    display = format_money(account.balance, account.currency)
    if account.balance == 0:
        return f"[dim]{display}[/dim]"
    return f"[green]{display}[/green]"


def add_command(
    session: Session,
    name: str,
    account_type: AccountType,
    currency: str | None = None,
    initial_balance: str | None = None,
    institution: str | None = None,
    provider: Provider | None = None,
    exclude_from_total: bool = False,
) -> None:
    """Open a new account."""
    require_database(session)
    opening = amount_option(initial_balance) or Money(0)

    with reporting_errors():
        account = accounts.create_account(
            session.user_id,
            name,
            account_type,
            currency=currency_option(currency, session),
            initial_balance=opening,
            institution=institution,
            provider=provider,
            include_in_total=not exclude_from_total,
            db_path=session.db_path,
            timeout=session.timeout,
        )

    console.print(f"[green]✓[/green] Account created (ID: {account.id})")
    console.print(f"  Name: {account.name}")
    console.print(f"  Type: {account.type.value}")
    console.print(f"  Balance: {format_money(account.balance, account.currency)}")


def edit_command(
    session: Session,
    account_id: int,
    name: str | None = None,
    account_type: AccountType | None = None,
    institution: str | None = None,
    provider: Provider | None = None,
    include_in_total: bool | None = None,
) -> None:
    """Edit an account's name, type, institution or provider."""
    require_database(session)

    with reporting_errors():
        account = accounts.update_account(
            session.user_id,
            account_id,
            name=name,
            account_type=account_type,
            institution=institution,
            provider=provider,
            include_in_total=include_in_total,
            db_path=session.db_path,
            timeout=session.timeout,
        )

    console.print(f"[green]✓[/green] Account '{account.name}' updated")


def deactivate_command(session: Session, account_id: int) -> None:
    """Deactivate an account, keeping its history."""
    require_database(session)

    with reporting_errors():
        account = accounts.deactivate_account(session.user_id, account_id, session.db_path, session.timeout)

    console.print(f"[green]✓[/green] Account '{account.name}' deactivated")
    if account.balance:
        console.print(f"[yellow]It still holds {format_money(account.balance, account.currency)}[/yellow]")


def list_command(session: Session, all: bool = False) -> None:
    """List accounts with balances, followed by per-currency totals."""
    require_database(session)

    with reporting_errors():
        rows = accounts.list_accounts(session.user_id, include_inactive=all, db_path=session.db_path)
        totals = accounts.get_account_totals(session.user_id, db_path=session.db_path)

    if not rows:
        console.print("[yellow]No accounts found[/yellow]")
        console.print("[dim]Use 'lajan account add' to open one[/dim]")
        return

    table = Table(title=f"Accounts ({len(rows)})")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Name", style="white")
    table.add_column("Type", style="cyan")
    table.add_column("Institution", style="dim")
    table.add_column("Balance", justify="right")
    table.add_column("In total", justify="center")

    for account in rows:
        institution = account.institution or (account.provider.value if account.provider else "[dim]-[/dim]")
        name = account.name if account.is_active else f"[dim]{account.name} (inactive)[/dim]"
        in_total = "✓" if account.include_in_total else "[dim]-[/dim]"
        table.add_row(str(account.id), name, account.type.value, institution, format_balance(account), in_total)

    console.print(table)

    console.print()
    for currency, total in totals.items():
        console.print(f"[bold]Total {currency.value}:[/bold] {format_money(total, currency)}")


def audit_command(session: Session, account_id: int) -> None:
    """Rebuild an account's balance from its journal and report any drift."""
    require_database(session)

    with reporting_errors():
        account = accounts.get_account(session.user_id, account_id, session.db_path)
        result = accounts.audit_account(session.user_id, account_id, session.db_path)

    console.print(f"[bold]Account:[/bold]       {account.name}")
    console.print(f"[bold]Stored:[/bold]        {format_money(result.stored, account.currency)}")
    console.print(f"[bold]Reconstructed:[/bold] {format_money(result.reconstructed, account.currency)}")

    if result.consistent:
        console.print("\n[green]✓ Balance matches the journal[/green]")
    else:
        console.print(f"\n[red]Balance differs by {format_money(result.difference, account.currency)}[/red]")
