"""
CLI utility helpers: settings loading, error reporting and status output.
"""

from __future__ import annotations

import json
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from mongo_migrate.core.errors import InvalidConfigError, MigrateError
from mongo_migrate.core.logging import configure_logging
from mongo_migrate.core.models import MigrationStatus
from mongo_migrate.core.settings import MigrateSettings, get_settings, normalize_log_level

console = Console()
err_console = Console(stderr=True)


# ── Setup helpers ────────────────────────────────────────────────────────


def load_settings(log_level: str | None = None) -> MigrateSettings:
    """Load settings and configure logging from them; exit 1 on bad config."""
    try:
        settings = get_settings()
    except MigrateError as exc:
        fail(exc)

    level = settings.log_level
    if log_level is not None:
        try:
            level = normalize_log_level(log_level)
        except ValueError as exc:
            fail(InvalidConfigError("log_level", log_level, cause=exc))

    configure_logging(
        level=level,
        json_format=settings.json_logs,
        log_file=settings.log_file,
    )
    return settings


def fail(error: MigrateError) -> NoReturn:
    """Print a one-line error and exit with code 1."""
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def print_status(status: MigrationStatus, *, as_json: bool = False) -> None:
    """Render a :class:`MigrationStatus` to the terminal."""
    if as_json:
        console.print_json(json.dumps(status.to_dict(), default=str))
        return

    console.print("[bold]Migration Status[/bold]")
    console.print(f"  [cyan]last_applied_id[/cyan]: {status.last_applied_id}")
    console.print(f"  [cyan]last_applied[/cyan]: {status.last_applied or '-'}")
    console.print(f"  [cyan]total_migrations[/cyan]: {status.total}")

    if status.is_up_to_date:
        console.print("[green]Up to date.[/green] No pending migrations.")
        return

    table = Table(title="Pending Migrations", show_lines=False, pad_edge=False)
    table.add_column("id", justify="right")
    table.add_column("name", overflow="fold")
    for migration in status.pending:
        table.add_row(str(migration.id), migration.name)
    console.print(table)
