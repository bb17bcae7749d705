"""Budget commands: create, fund, track, return and archive budget envelopes."""

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
from lajan.dates import add_months
from lajan.domain.budget import BudgetView
from lajan.domain.models import AlertState, BudgetPeriod, BudgetStatus, Money
from lajan.domain.money import format_money
from lajan.engine import budgets

console = Console()

STATUS_STYLES = {
    BudgetStatus.DRAFT: "dim",
    BudgetStatus.ALLOCATED: "cyan",
    BudgetStatus.ACTIVE: "green",
    BudgetStatus.COMPLETED: "blue",
    BudgetStatus.ARCHIVED: "dim",
}


def format_percentage_with_color(view: BudgetView) -> str:
    """Colour a spend percentage by alert state."""
    text = f"{view.percentage}%"
    if view.alert == AlertState.EXCEEDED:
        return f"[red]{text}[/red]"
    if view.alert == AlertState.WARNING:
        return f"[yellow]{text}[/yellow]"
    return f"[green]{text}[/green]"


def default_end_date(start: date, period: BudgetPeriod) -> date:
    """End of a budget window that starts on start and lasts one period."""
    return add_months(start, 12 if period == BudgetPeriod.YEARLY else 1)


def create_command(
    session: Session,
    name: str,
    category: str,
    amount: str,
    start: str | None = None,
    end: str | None = None,
    period: BudgetPeriod = BudgetPeriod.MONTHLY,
    alert_threshold: int = 80,
    currency: str | None = None,
) -> None:
    """Create a draft budget."""
    require_database(session)

    start_date = date_option(start) or date.today().replace(day=1)
    end_date = date_option(end) or default_end_date(start_date, period)

    with reporting_errors():
        budget = budgets.create_budget(
            session.user_id,
            name,
            category,
            amount_option(amount) or Money(0),
            start_date,
            end_date,
            currency=currency_option(currency, session),
            period=period,
            alert_threshold=alert_threshold,
            db_path=session.db_path,
            timeout=session.timeout,
        )

    console.print(f"[green]✓[/green] Budget created (ID: {budget.id})")
    console.print(f"  {budget.name}: {format_money(budget.amount, budget.currency)} for {budget.category}")
    console.print(f"  Window: {budget.start_date.isoformat()} to {budget.end_date.isoformat()} (end exclusive)")
    console.print(f"[dim]Fund it with 'lajan budget allocate {budget.id} --account <id>'[/dim]")


def allocate_command(session: Session, budget_id: int, account_id: int) -> None:
    """Fund a draft budget from an account."""
    require_database(session)

    with reporting_errors():
        budget = budgets.allocate_budget(session.user_id, budget_id, account_id, session.db_path, session.timeout)

    console.print(
        f"[green]✓[/green] Allocated {format_money(budget.amount, budget.currency)} "
        f"from account {budget.source_account_id} to '{budget.name}'"
    )


def activate_command(session: Session, budget_id: int) -> None:
    """Mark an allocated budget active once its window has started."""
    require_database(session)

    with reporting_errors():
        budget = budgets.activate_budget(session.user_id, budget_id, session.db_path, session.timeout)

    console.print(f"[green]✓[/green] Budget '{budget.name}' is active")


def return_command(session: Session, budget_id: int) -> None:
    """Return a budget's unused funds to its source account and complete it."""
    require_database(session)

    with reporting_errors():
        view = budgets.get_budget_view(session.user_id, budget_id, session.db_path)
        result = budgets.return_budget_funds(session.user_id, budget_id, session.db_path, session.timeout)

    currency = view.budget.currency
    console.print(f"[green]✓[/green] Budget '{view.budget.name}' completed")
    console.print(f"  Spent:    {format_money(result.spent, currency)}")
    console.print(f"  Returned: [green]{format_money(result.returned, currency)}[/green]")


def sweep_command(session: Session, all_users: bool = False) -> None:
    """Return unused funds of every budget whose window has ended."""
    require_database(session)

    with reporting_errors():
        outcomes = budgets.return_all_expired_budgets(
            None if all_users else session.user_id, db_path=session.db_path, timeout=session.timeout
        )

    if not outcomes:
        console.print("[dim]No expired budgets to return[/dim]")
        return

    table = Table(title=f"Expired budgets ({len(outcomes)})")
    table.add_column("Budget", style="dim", justify="right")
    table.add_column("User", style="cyan")
    table.add_column("Spent", justify="right")
    table.add_column("Returned", justify="right")
    table.add_column("Result")

    for outcome in outcomes:
        if outcome.ok:
            table.add_row(
                str(outcome.budget_id),
                outcome.user_id,
                format_money(outcome.spent or Money(0)),
                f"[green]{format_money(outcome.returned or Money(0))}[/green]",
                "[green]✓[/green]",
            )
        else:
            table.add_row(str(outcome.budget_id), outcome.user_id, "-", "-", f"[red]{outcome.error}[/red]")

    console.print(table)

    failed = sum(1 for outcome in outcomes if not outcome.ok)
    if failed:
        console.print(f"[yellow]{failed} budget(s) could not be returned[/yellow]")


def archive_command(session: Session, budget_id: int) -> None:
    """Archive a budget."""
    require_database(session)

    with reporting_errors():
        budget = budgets.archive_budget(session.user_id, budget_id, session.db_path, session.timeout)

    console.print(f"[green]✓[/green] Budget '{budget.name}' archived")


def unarchive_command(session: Session, budget_id: int) -> None:
    """Restore an archived budget."""
    require_database(session)

    with reporting_errors():
        budget = budgets.unarchive_budget(session.user_id, budget_id, session.db_path, session.timeout)

    console.print(f"[green]✓[/green] Budget '{budget.name}' restored as {budget.status.value}")


def edit_command(
    session: Session,
    budget_id: int,
    name: str | None = None,
    amount: str | None = None,
    start: str | None = None,
    end: str | None = None,
    alert_threshold: int | None = None,
) -> None:
    """Edit a budget's name, amount, window or alert threshold."""
    require_database(session)

    with reporting_errors():
        budget = budgets.update_budget(
            session.user_id,
            budget_id,
            name=name,
            amount=amount_option(amount),
            start_date=date_option(start),
            end_date=date_option(end),
            alert_threshold=alert_threshold,
            db_path=session.db_path,
            timeout=session.timeout,
        )

    console.print(f"[green]✓[/green] Budget '{budget.name}' updated")


def delete_command(session: Session, budget_id: int) -> None:
    """Delete a budget that holds no funds."""
    require_database(session)

    with reporting_errors():
        budgets.delete_budget(session.user_id, budget_id, session.db_path, session.timeout)

    console.print(f"[green]✓[/green] Budget {budget_id} deleted")


def list_command(session: Session, status: BudgetStatus | None = None, all: bool = False) -> None:
    """List budgets with live spending."""
    require_database(session)

    if status is not None:
        statuses: set[BudgetStatus] | None = {status}
    elif all:
        statuses = None
    else:
        statuses = {BudgetStatus.DRAFT, BudgetStatus.ALLOCATED, BudgetStatus.ACTIVE}

    with reporting_errors():
        views = budgets.list_budget_views(session.user_id, statuses, session.db_path)

    if not views:
        console.print("[yellow]No budgets found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Name", style="white")
    table.add_column("Category", style="magenta")
    table.add_column("Window", style="cyan")
    table.add_column("Status")
    table.add_column("Budget", justify="right")
    table.add_column("Spent", justify="right")
    table.add_column("Used", justify="right")

    for view in views:
        budget = view.budget
        style = STATUS_STYLES[budget.status]
        table.add_row(
            str(budget.id),
            budget.name,
            budget.category,
            f"{budget.start_date.isoformat()} → {budget.end_date.isoformat()}",
            f"[{style}]{budget.status.value}[/{style}]",
            format_money(budget.amount, budget.currency),
            format_money(view.spent, budget.currency),
            format_percentage_with_color(view),
        )

    console.print(table)


def status_command(session: Session, budget_id: int) -> None:
    """Show one budget's spending against its amount."""
    require_database(session)

    with reporting_errors():
        view = budgets.get_budget_view(session.user_id, budget_id, session.db_path)

    budget = view.budget
    console.print(f"\n[bold]{budget.name}[/bold] ({budget.category}, {budget.status.value})")
    console.print(f"[dim]{budget.start_date.isoformat()} to {budget.end_date.isoformat()}[/dim]\n")
    console.print(f"[bold]Budget:[/bold]    {format_money(budget.amount, budget.currency)}")
    console.print(f"[bold]Spent:[/bold]     {format_money(view.spent, budget.currency)}")
    console.print(f"[bold]Remaining:[/bold] {format_money(view.remaining, budget.currency)}")
    console.print(f"[bold]Used:[/bold]      {format_percentage_with_color(view)}")

    if view.alert == AlertState.EXCEEDED:
        console.print("\n[red]Budget exceeded[/red]")
    elif view.alert == AlertState.WARNING:
        console.print(f"\n[yellow]Above the {budget.alert_threshold}% alert threshold[/yellow]")


def stats_command(session: Session) -> None:
    """Show totals and alert counts over live budgets."""
    require_database(session)

    with reporting_errors():
        stats = budgets.budget_stats(session.user_id, session.db_path)

    if stats.total_budgets == 0:
        fail("No live budgets")

    console.print(f"[bold]Budgets:[/bold]      {stats.total_budgets}")
    console.print(f"[bold]Total budget:[/bold] {format_money(stats.total_budget)}")
    console.print(f"[bold]Total spent:[/bold]  {format_money(stats.total_spent)}")
    console.print(f"[bold]Remaining:[/bold]    {format_money(stats.remaining)}")
    console.print(
        f"\n[green]{stats.ok} ok[/green]  [yellow]{stats.warning} warning[/yellow]  [red]{stats.exceeded} exceeded[/red]"
    )
