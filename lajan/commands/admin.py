"""Admin commands for init, backup and config."""

import shutil
import sqlite3
import sys
from contextlib import closing
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.table import Table

from lajan.commands.common import Session, fail
from lajan.config import create_default_config, get_config_path, load_config, set_value
from lajan.store.schema import init_database

console = Console()


def run_migration(db_path: Path) -> None:
    """Run database migrations on existing database."""
    console.print(f"[cyan]Running migrations on {db_path}...[/cyan]")
    init_database(db_path)
    console.print("[green]✓[/green] Migrations complete")
    console.print("[dim]Database schema is up to date[/dim]")


def run_full_init(db_path: Path, config_path: Path) -> None:
    """Initialize new database and config."""
    console.print(f"[cyan]Initializing database at {db_path}...[/cyan]")
    init_database(db_path)
    console.print("[green]✓[/green] Database initialized")

    console.print(f"[cyan]Creating config file at {config_path}...[/cyan]")
    create_default_config(config_path)
    console.print("[green]✓[/green] Config file created (permissions: 600)")

    console.print("\n[green]Initialization complete![/green]", style="bold")
    console.print(f"[dim]Database: {db_path}[/dim]")
    console.print(f"[dim]Config: {config_path}[/dim]")


def init_command(session: Session, force: bool = False, migrate: bool = False) -> None:
    """Initialize lajan database and configuration."""
    db_path = session.db_path
    config_path = get_config_path()

    db_exists = db_path.exists()
    config_exists = config_path.exists()

    try:
        if migrate:
            if not db_exists:
                console.print("[red]No database found to migrate[/red]", style="bold")
                console.print(f"[dim]Expected location: {db_path}[/dim]")
                sys.exit(1)
            run_migration(db_path)
            return

        if not force and (db_exists or config_exists):
            console.print("[red]Initialization failed:[/red]", style="bold")
            if db_exists:
                console.print(f"  Database already exists: {db_path}")
            if config_exists:
                console.print(f"  Config already exists: {config_path}")
            console.print("\n[yellow]Use 'lajan init --force' to overwrite[/yellow]")
            console.print("[yellow]Or 'lajan init --migrate' to update database schema only[/yellow]")
            sys.exit(1)

        if force and db_exists:
            db_path.unlink()
        run_full_init(db_path, config_path)

    except sqlite3.Error as e:
        fail(f"Database error: {e}")
    except OSError as e:
        fail(f"Filesystem error: {e}")


def backup_command(session: Session, output_dir: str | None = None) -> None:
    """Backup database and configuration files."""
    db_path = session.db_path
    config_path = get_config_path()

    if not db_path.exists():
        fail("Database not found. Run 'lajan init' first.")

    backup_dir = Path(output_dir).expanduser() if output_dir else db_path.parent / "backups"
    backup_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    db_backup = backup_dir / f"lajan_{timestamp}.db"

    try:
        # sqlite backup API copies a consistent snapshot even while another process writes
        with closing(sqlite3.connect(db_path)) as source, closing(sqlite3.connect(db_backup)) as target:
            source.backup(target)
        console.print(f"[green]✓[/green] Database backed up to: {db_backup}")

        if config_path.exists():
            config_backup = backup_dir / f"config_{timestamp}.toml"
            shutil.copy2(config_path, config_backup)
            console.print(f"[green]✓[/green] Config backed up to: {config_backup}")

        console.print("\n[green]Backup complete![/green]", style="bold")
        console.print(f"[dim]Backup directory: {backup_dir}[/dim]")

    except (OSError, sqlite3.Error) as e:
        fail(f"Backup failed: {e}")


def config_show_command() -> None:
    """Print the config file as a table."""
    config_path = get_config_path()
    try:
        config = load_config(config_path)
    except FileNotFoundError:
        fail("Config not found. Run 'lajan init' first.")

    table = Table(title=str(config_path))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")

    for key, value in config.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                table.add_row(f"{key}.{sub_key}", str(sub_value))
        else:
            table.add_row(key, str(value))

    console.print(table)


def config_set_command(key: str, value: str) -> None:
    """Set a config value, converting numbers and booleans."""
    parsed: str | int | float | bool = value
    if value.lower() in ("true", "false"):
        parsed = value.lower() == "true"
    else:
        try:
            parsed = int(value)
        except ValueError:
            try:
                parsed = float(value)
            except ValueError:
                parsed = value

    try:
        set_value(key, parsed)
    except OSError as e:
        fail(f"Could not write config: {e}")
    console.print(f"[green]✓[/green] {key} = {parsed!r}")

