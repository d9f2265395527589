"""
Migration loader utilities: file-name parsing, module import and the
migration contract check.

A migration file is named ``<digits>-<description>.py`` and exports::

    async def up(db) -> None: ...

The same check runs when the generator verifies a directory and when the
generated registry loads each migration at runtime.
"""

from __future__ import annotations

import importlib.util
import inspect
import re
from pathlib import Path
from types import ModuleType

from mongo_migrate.core.errors import (
    InvalidMigrationFilenameError,
    MigrationContractError,
    RegistryError,
    RegistryNotFoundError,
)
from mongo_migrate.core.logging import get_logger
from mongo_migrate.core.models import Migration, MigrationRegistry
from mongo_migrate.core.protocols import ApplyFunction

LOGGER = get_logger(__name__)

MIGRATION_FILENAME_PATTERN = re.compile(r"^(\d+)-")
MIGRATION_SUFFIX = ".py"

# Capabilities every migration module must export
REQUIRED_EXPORTS: tuple[str, ...] = ("up",)


def extract_migration_id(filename: str) -> int:
    """Return the leading integer of ``<digits>-<description>``.

    >>> extract_migration_id("0013-add_active_flag.py")
    13

    Raises:
        InvalidMigrationFilenameError: The name does not start with digits
            followed by ``-``.
    """
    match = MIGRATION_FILENAME_PATTERN.match(Path(filename).name)
    if not match:
        raise InvalidMigrationFilenameError(Path(filename).name)
    return int(match.group(1))


def migration_name(filename: str) -> str:
    """Registry name of a migration file: its stem."""
    return Path(filename).stem


def load_module(path: Path) -> ModuleType:
    """Import a Python file by path without touching ``sys.path``.

    Raises:
        ImportError: The file cannot be turned into a module spec.
        Exception: Whatever the module raises while executing.
    """
    path = Path(path)
    module_name = "mongo_migrate_loaded_" + re.sub(r"\W", "_", path.stem)

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from {path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def verify_migration_module(module: ModuleType, filename: str) -> ApplyFunction:
    """Check ``module`` honours the migration contract and return its ``up``.

    Raises:
        MigrationContractError: ``up`` is missing, not callable or not an
            ``async def`` function.
    """
    exports = {}
    for property_name in REQUIRED_EXPORTS:
        value = getattr(module, property_name, None)

        if value is None:
            raise MigrationContractError(
                filename,
                f"Migration {filename} does not export required property '{property_name}'",
                property_name=property_name,
            )

        if not callable(value):
            raise MigrationContractError(
                filename,
                f"Migration {filename} exports '{property_name}' but it's not a function",
                property_name=property_name,
            )

        if not inspect.iscoroutinefunction(value):
            raise MigrationContractError(
                filename,
                f"Migration {filename} exports '{property_name}' but it's not an async function",
                property_name=property_name,
            )

        exports[property_name] = value

    return exports["up"]


def load_migration(path: str | Path, *, migration_id: int | None = None, name: str | None = None) -> Migration:
    """Import one migration file and build its :class:`Migration`.

    ``migration_id`` and ``name`` default to what the file name implies.

    Raises:
        InvalidMigrationFilenameError: Bad file name.
        MigrationContractError: The module failed to import or export ``up``.
    """
    path = Path(path)
    file_id = extract_migration_id(path.name)
    if migration_id is not None and migration_id != file_id:
        raise MigrationContractError(
            path.name,
            f"registry id {migration_id} does not match file name id {file_id}",
        )

    try:
        module = load_module(path)
    except Exception as exc:
        raise MigrationContractError(
            path.name, f"could not be imported: {type(exc).__name__}: {exc}", cause=exc
        ) from exc

    apply = verify_migration_module(module, path.stem)
    return Migration(id=file_id, name=name or migration_name(path.name), apply=apply)


def load_registry(path: str | Path) -> MigrationRegistry:
    """Import a generated registry module and return its ``migration_registry``.

    Raises:
        RegistryNotFoundError: ``path`` does not exist.
        RegistryError: The module failed to import or has no registry.
    """
    path = Path(path)
    if not path.is_file():
        raise RegistryNotFoundError(str(path))

    try:
        module = load_module(path)
    except RegistryError:
        raise
    except Exception as exc:
        raise RegistryError(
            f"Could not import migration registry {path}: {type(exc).__name__}: {exc}", cause=exc
        ).with_context(file=str(path)) from exc

    registry = getattr(module, "migration_registry", None)
    if registry is None:
        raise RegistryError(f"{path} does not define 'migration_registry'").with_context(file=str(path))

    if not isinstance(registry, MigrationRegistry):
        registry = MigrationRegistry(registry)

    LOGGER.debug("registry.loaded", path=str(path), count=registry.count)
    return registry


__all__ = [
    "MIGRATION_FILENAME_PATTERN",
    "MIGRATION_SUFFIX",
    "REQUIRED_EXPORTS",
    "extract_migration_id",
    "load_migration",
    "load_module",
    "load_registry",
    "migration_name",
    "verify_migration_module",
]
