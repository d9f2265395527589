"""
Root Typer application for the mongo-migrate CLI.

Commands
--------
run         apply pending migrations
generate    verify the migrations directory and write the registry module
stub        write an empty registry module
status      show the stored progress and pending migrations
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from typer import Typer

from mongo_migrate.cli.utils import fail, load_settings, print_status
from mongo_migrate.core.container import MigrateContainer
from mongo_migrate.core.errors import MigrateError
from mongo_migrate.core.logging import MigrationLogger
from mongo_migrate.registry.generator import generate_registry, write_registry_stub

app = Typer(
    name="mongo-migrate",
    help="mongo-migrate: ordered, run-once data migrations for MongoDB.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from mongo_migrate import __version__

        typer.echo(f"mongo-migrate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """mongo-migrate CLI: generate the registry and apply migrations."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def run(
    registry: Path | None = typer.Option(None, "--registry", "-r", help="Generated registry module"),
    log_level: str | None = typer.Option(None, "--log-level", help="Override MIGRATE_LOG_LEVEL"),
) -> None:
    """Apply every migration newer than the stored progress record."""
    settings = load_settings(log_level)
    container = MigrateContainer(settings, registry_path=registry)
    logger = container.logger

    logger.start_session("MongoDataMigration")
    logger.log("Starting runner...")

    try:
        runner = container.runner
    except MigrateError as exc:
        logger.error("Runner could not be created:", error=exc)
        fail(exc)

    try:
        asyncio.run(runner.execute())
    except MigrateError as exc:
        fail(exc)

    logger.log("Runner finished.")
    logger.end_session("MongoDataMigration")


@app.command()
def generate(
    migrations_dir: Path | None = typer.Option(
        None, "--migrations-dir", "-m", help="Directory of <digits>-<description>.py files"
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Registry module to write"),
    log_level: str | None = typer.Option(None, "--log-level", help="Override MIGRATE_LOG_LEVEL"),
) -> None:
    """Verify migrations and write the registry module."""
    settings = load_settings(log_level)
    logger = MigrationLogger()

    logger.start_session("GenerateRegistry")

    try:
        generate_registry(
            migrations_dir or settings.migrations_dir,
            output or settings.registry_path,
            logger,
        )
    except MigrateError as exc:
        logger.error("Failed to generate migration registry:", error=exc)
        logger.end_session("GenerateRegistry")
        fail(exc)

    logger.end_session("GenerateRegistry")


@app.command()
def stub(
    output: Path | None = typer.Option(None, "--output", "-o", help="Registry module to write"),
) -> None:
    """Write an empty registry module."""
    settings = load_settings()
    path = write_registry_stub(output or settings.registry_path)
    typer.echo(f"Wrote stub to {path}")


@app.command()
def status(
    registry: Path | None = typer.Option(None, "--registry", "-r", help="Generated registry module"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show the last applied migration and what is pending."""
    settings = load_settings()
    container = MigrateContainer(settings, registry_path=registry)

    try:
        result = asyncio.run(container.runner.status())
    except MigrateError as exc:
        fail(exc)

    print_status(result, as_json=json_out)
