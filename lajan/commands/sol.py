"""Sol commands: savings pools, contributions and recipient rotation."""

from datetime import date

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
from lajan.domain import sol as rules
from lajan.domain.models import Frequency, Money, Sol, SolMember, SolType
from lajan.domain.money import format_money
from lajan.engine import sols

console = Console()


def parse_member(raw: str) -> tuple[str, str | None]:
    """Split a 'name' or 'name:phone' member option."""
    name, _, phone = raw.partition(":")
    return name.strip(), phone.strip() or None


def format_progress(sol: Sol) -> str:
    """Progress column: percent of target for personal sols, recipient for collaborative."""
    if sol.type == SolType.PERSONAL:
        percentage = rules.progress(sol)
        colour = "green" if percentage >= 100 else "cyan"
        return f"[{colour}]{percentage}%[/{colour}]"
    recipient = rules.current_recipient(sol)
    if recipient is None:
        return "[dim]-[/dim]"
    return f"→ {recipient.name} ({sol.current_recipient_index + 1}/{rules.total_cycles(sol)})"


def create_command(
    session: Session,
    name: str,
    sol_type: SolType,
    amount: str,
    frequency: Frequency = Frequency.MONTHLY,
    start: str | None = None,
    end: str | None = None,
    target: str | None = None,
    members: list[str] | None = None,
    description: str | None = None,
    currency: str | None = None,
) -> None:
    """Create a personal or collaborative sol."""
    require_database(session)

    with reporting_errors():
        sol = sols.create_sol(
            session.user_id,
            name,
            sol_type,
            amount_option(amount) or Money(0),
            frequency,
            date_option(start) or date.today(),
            currency=currency_option(currency, session),
            end_date=date_option(end),
            target_amount=amount_option(target),
            members=[parse_member(m) for m in members or []],
            description=description,
            db_path=session.db_path,
            timeout=session.timeout,
        )

    console.print(f"[green]✓[/green] Sol created (ID: {sol.id})")
    console.print(f"  {sol.name}: {format_money(sol.amount, sol.currency)} {sol.frequency.value}")
    if sol.type == SolType.PERSONAL and sol.target_amount:
        console.print(f"  Target: {format_money(sol.target_amount, sol.currency)}")
    else:
        console.print(f"  Members: {', '.join(m.name for m in sol.members)}")
        console.print(f"  Payout per cycle: {format_money(rules.cycle_amount(sol), sol.currency)}")
    console.print(f"  First payment: {sol.next_payment_date.isoformat()}")


def contribute_command(session: Session, sol_id: int, account_id: int) -> None:
    """Pay one contribution from an account."""
    require_database(session)

    with reporting_errors():
        sol, txn = sols.contribute_sol(session.user_id, sol_id, account_id, session.db_path, session.timeout)

    console.print(
        f"[green]✓[/green] Contributed {format_money(txn.amount, txn.currency)} to '{sol.name}' "
        f"(transaction {txn.id})"
    )
    console.print(f"  Total: {format_money(sol.total_contributions, sol.currency)}")
    if sol.type == SolType.PERSONAL:
        console.print(f"  Progress: {format_progress(sol)}")
    console.print(f"  Next payment: {sol.next_payment_date.isoformat()}")


def next_command(session: Session, sol_id: int) -> None:
    """Mark the current recipient paid and move to the next member."""
    require_database(session)

    with reporting_errors():
        sol = sols.move_to_next_recipient(session.user_id, sol_id, session.db_path, session.timeout)

    recipient = rules.current_recipient(sol)
    if sol.current_recipient_index == 0:
        console.print("[green]✓[/green] Rotation complete; a new rotation begins")
    else:
        console.print("[green]✓[/green] Recipient marked as paid")
    if recipient is not None:
        console.print(f"  Next recipient: {recipient.name}")


def edit_command(
    session: Session,
    sol_id: int,
    name: str | None = None,
    amount: str | None = None,
    frequency: Frequency | None = None,
    end: str | None = None,
    target: str | None = None,
    description: str | None = None,
    active: bool | None = None,
    members: list[str] | None = None,
) -> None:
    """Edit a sol's details or replace its member list."""
    require_database(session)

    new_members = None
    if members:
        new_members = [SolMember(name=n, phone=p, position=i) for i, (n, p) in enumerate(map(parse_member, members))]

    with reporting_errors():
        sol = sols.update_sol(
            session.user_id,
            sol_id,
            name=name,
            amount=amount_option(amount),
            frequency=frequency,
            end_date=date_option(end),
            target_amount=amount_option(target),
            description=description,
            is_active=active,
            members=new_members,
            db_path=session.db_path,
            timeout=session.timeout,
        )

    console.print(f"[green]✓[/green] Sol '{sol.name}' updated")


def delete_command(session: Session, sol_id: int) -> None:
    """Delete a sol; its contributions stay in the journal."""
    require_database(session)

    with reporting_errors():
        sols.delete_sol(session.user_id, sol_id, session.db_path, session.timeout)

    console.print(f"[green]✓[/green] Sol {sol_id} deleted")


def list_command(session: Session, all: bool = False) -> None:
    """List sols with progress or current recipient."""
    require_database(session)

    with reporting_errors():
        rows = sols.list_sols(session.user_id, None if all else True, session.db_path)

    if not rows:
        console.print("[yellow]No sols found[/yellow]")
        return

    table = Table(title=f"Sols ({len(rows)})")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Name", style="white")
    table.add_column("Type", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Progress")
    table.add_column("Next payment", style="cyan")

    for sol in rows:
        name = sol.name if sol.is_active else f"[dim]{sol.name} (inactive)[/dim]"
        table.add_row(
            str(sol.id),
            name,
            sol.type.value,
            f"{format_money(sol.amount, sol.currency)} / {sol.frequency.value}",
            format_money(sol.total_contributions, sol.currency),
            format_progress(sol),
            sol.next_payment_date.isoformat(),
        )

    console.print(table)


def show_command(session: Session, sol_id: int) -> None:
    """Show a sol's details and members."""
    require_database(session)

    with reporting_errors():
        sol = sols.get_sol(session.user_id, sol_id, session.db_path)

    console.print(f"\n[bold]{sol.name}[/bold] ({sol.type.value}, {'active' if sol.is_active else 'inactive'})")
    if sol.description:
        console.print(f"[dim]{sol.description}[/dim]")
    console.print(f"\n[bold]Contribution:[/bold] {format_money(sol.amount, sol.currency)} {sol.frequency.value}")
    console.print(f"[bold]Total:[/bold]        {format_money(sol.total_contributions, sol.currency)}")
    console.print(f"[bold]Next payment:[/bold] {sol.next_payment_date.isoformat()}")

    if sol.type == SolType.PERSONAL:
        if sol.target_amount:
            console.print(f"[bold]Target:[/bold]       {format_money(sol.target_amount, sol.currency)}")
        console.print(f"[bold]Progress:[/bold]     {format_progress(sol)}")
        return

    console.print(f"[bold]Payout:[/bold]       {format_money(rules.cycle_amount(sol), sol.currency)}\n")
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Member", style="white")
    table.add_column("Phone", style="dim")
    table.add_column("Received", justify="center")

    for member in sol.members:
        marker = " ←" if member.position == sol.current_recipient_index else ""
        received = f"✓ {member.received_date.isoformat()}" if member.has_received and member.received_date else "○"
        table.add_row(str(member.position + 1), f"{member.name}{marker}", member.phone or "-", received)

    console.print(table)


def history_command(session: Session, sol_id: int) -> None:
    """List a sol's contribution transactions."""
    require_database(session)

    with reporting_errors():
        sol, transactions = sols.sol_history(session.user_id, sol_id, session.db_path)

    if not transactions:
        console.print(f"[yellow]No contributions to '{sol.name}' yet[/yellow]")
        return

    table = Table(title=f"{sol.name} contributions ({len(transactions)})")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Date", style="cyan")
    table.add_column("Account", style="dim", justify="right")
    table.add_column("Amount", justify="right")

    for txn in transactions:
        table.add_row(str(txn.id), txn.date.isoformat(), str(txn.source_account_id), format_money(txn.amount, txn.currency))

    console.print(table)


def stats_command(session: Session) -> None:
    """Show totals over active sols."""
    require_database(session)

    with reporting_errors():
        stats = sols.sol_stats(session.user_id, session.db_path)

    if stats.active_sols == 0:
        fail("No active sols")

    console.print(f"[bold]Active sols:[/bold]         {stats.active_sols}")
    console.print(f"[bold]Total contributed:[/bold]   {format_money(stats.total_contributions)}")
    console.print(f"[bold]Total targets:[/bold]       {format_money(stats.total_target)}")
    console.print(f"[bold]Remaining to target:[/bold] {format_money(stats.remaining)}")
    console.print(f"[bold]Targets reached:[/bold]     {stats.completed_sols}")
