"""
Shared pytest fixtures for mongo-migrate tests.

This module provides:
- A MagicMock logger shaped like ``MigrationLogger``
- An in-memory fake of the progress collection and database handle
- A fake connection provider that records connect/disconnect calls
- Helpers for building registries and writing migration files

Usage:
    Fixtures are auto-discovered by pytest; take them as test arguments.
"""

import sys
import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure mongo_migrate is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mongo_migrate.core.logging import MigrationLogger
from mongo_migrate.core.models import Migration, MigrationRegistry
from mongo_migrate.core.settings import clear_settings_cache


# =============================================================================
# Fakes
# =============================================================================


class FakeCollection:
    """Async stand-in for a pymongo collection holding at most one document."""

    def __init__(self, document: dict[str, Any] | None = None, events: list | None = None):
        self.document = dict(document) if document is not None else None
        self.events = events if events is not None else []
        self.find_one = AsyncMock(side_effect=self._find_one)
        self.replace_one = AsyncMock(side_effect=self._replace_one)

    async def _find_one(self, *args: Any, **kwargs: Any) -> dict[str, Any] | None:
        return dict(self.document) if self.document is not None else None

    async def _replace_one(self, filter: dict, replacement: dict, upsert: bool = False) -> None:
        self.events.append(("upsert", replacement["migrationId"]))
        if self.document is None and not upsert:
            return
        self.document = dict(replacement)


class FakeDatabase:
    """Database handle whose ``get_collection`` always returns one collection."""

    def __init__(self, collection: FakeCollection):
        self.collection = collection
        self.get_collection = MagicMock(return_value=collection)


class FakeProvider:
    """Connection provider recording its calls into a shared event list."""

    def __init__(self, database: FakeDatabase, events: list):
        self.database = database
        self.events = events
        self.connect = AsyncMock(side_effect=self._connect)
        self.disconnect = AsyncMock(side_effect=self._disconnect)

    async def _connect(self) -> FakeDatabase:
        self.events.append(("connect",))
        return self.database

    async def _disconnect(self) -> None:
        self.events.append(("disconnect",))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture()
def events() -> list:
    """Ordered record of apply/upsert/connect/disconnect calls."""
    return []


@pytest.fixture()
def logger() -> MagicMock:
    return MagicMock(spec=MigrationLogger)


@pytest.fixture()
def collection(events: list) -> FakeCollection:
    return FakeCollection(events=events)


@pytest.fixture()
def database(collection: FakeCollection) -> FakeDatabase:
    return FakeDatabase(collection)


@pytest.fixture()
def provider(database: FakeDatabase, events: list) -> FakeProvider:
    return FakeProvider(database, events)


def make_migration(migration_id: int, events: list, *, error: Exception | None = None) -> Migration:
    """Migration whose ``up`` records ``("apply", id)`` and optionally raises."""

    async def up(db: Any) -> None:
        events.append(("apply", migration_id))
        if error is not None:
            raise error

    return Migration(id=migration_id, name=f"{migration_id}-migration", apply=up)


@pytest.fixture()
def registry(events: list) -> MigrationRegistry:
    """Registry of migrations 1, 2 and 13."""
    return MigrationRegistry([make_migration(i, events) for i in (1, 2, 13)])


# =============================================================================
# Migration file helpers
# =============================================================================

VALID_MIGRATION = """\
async def up(db):
    db.get_collection("CoolStuff")
"""


def write_migration(directory: Path, filename: str, content: str = VALID_MIGRATION) -> Path:
    """Write a migration file and return its path."""
    path = directory / filename
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


@pytest.fixture()
def migrations_dir(tmp_path: Path) -> Path:
    """Directory holding three valid migrations (1, 2, 13)."""
    d = tmp_path / "migrations"
    d.mkdir()
    write_migration(d, "0001-add_test_data.py")
    write_migration(d, "0002-add_data_to_the_test_data.py")
    write_migration(d, "0013-add_active_flag.py")
    return d


@pytest.fixture()
def migration_factory(events: list):
    """``factory(id, error=None)`` building a recording migration."""

    def factory(migration_id: int, *, error: Exception | None = None) -> Migration:
        return make_migration(migration_id, events, error=error)

    return factory


@pytest.fixture()
def migration_writer():
    """``writer(directory, filename, content=VALID_MIGRATION)`` writing a migration file."""
    return write_migration
