"""
Migration registry generator.

Scans a migrations directory, verifies every ``<digits>-<description>.py``
file against the migration contract, and writes a Python module exporting
``migration_registry`` (sorted by id) and ``migration_count``.

Manifesto:
    The runner should never discover a broken migration halfway through a
    deployment.  Generation verifies every file up front, strictly in order,
    and stops at the first invalid one without writing anything, so the
    registry on disk is always either the previous good one or a complete
    new one.

Features:
    - **Extension filter:** only ``.py`` files, dunder files skipped
    - **Fail-fast verification:** first bad file name or contract aborts
    - **Duplicate detection:** two files with the same id abort generation
    - **Stub output:** an empty registry for fresh checkouts

Examples:
    >>> from pathlib import Path
    >>> from mongo_migrate.core.logging import MigrationLogger
    >>> generate_registry(Path("migrations"), Path("migration_registry.py"), MigrationLogger())
    MigrationRegistry(count=3, ids=[1, 2, 13])

Tags:
    codegen, registry, migrations, verification

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from pathlib import Path
from types import ModuleType

from mongo_migrate.core.errors import (
    DuplicateMigrationIdError,
    MigrationContractError,
    RegistryError,
)
from mongo_migrate.core.models import Migration, MigrationRegistry
from mongo_migrate.core.protocols import LoggerProtocol

from .loader import (
    MIGRATION_SUFFIX,
    REQUIRED_EXPORTS,
    extract_migration_id,
    load_module,
    migration_name,
    verify_migration_module,
)

ImportFunction = Callable[[Path], ModuleType]

_HEADER = '''"""Migration registry generated by ``mongo-migrate generate``.

Do not edit by hand; rerun the generator after adding a migration.
"""
'''


def discover_migration_files(migrations_dir: Path) -> list[str]:
    """Return migration file names in ``migrations_dir``, sorted by name.

    Raises:
        RegistryError: The directory does not exist.
    """
    migrations_dir = Path(migrations_dir)
    if not migrations_dir.is_dir():
        raise RegistryError(f"Migrations directory does not exist: {migrations_dir}").with_context(
            file=str(migrations_dir)
        )

    return sorted(
        entry.name
        for entry in migrations_dir.iterdir()
        if entry.is_file() and entry.suffix == MIGRATION_SUFFIX and not entry.name.startswith("__")
    )


def verify_all_migrations(
    files: Sequence[str],
    migrations_dir: Path,
    logger: LoggerProtocol,
    import_function: ImportFunction = load_module,
) -> list[Migration]:
    """Verify each file in order and return the resulting migrations.

    Verification is strictly sequential; the first invalid file raises and
    the remaining files are not looked at.

    Raises:
        InvalidMigrationFilenameError: A file name lacks the ``<digits>-`` prefix.
        MigrationContractError: A module failed to import or export ``up``.
        DuplicateMigrationIdError: Two files share an id.
    """
    logger.log("Verifying migrations implement the migration contract...")

    migrations: list[Migration] = []
    seen: dict[int, str] = {}

    for file in files:
        name = migration_name(file)
        migration_id = extract_migration_id(file)

        if migration_id in seen:
            raise DuplicateMigrationIdError(migration_id, [seen[migration_id], name])
        seen[migration_id] = name

        path = (Path(migrations_dir) / file).resolve()
        try:
            module = import_function(path)
        except Exception as exc:
            raise MigrationContractError(
                name, f"could not be imported: {type(exc).__name__}: {exc}", cause=exc
            ) from exc

        apply = verify_migration_module(module, name)
        migrations.append(Migration(id=migration_id, name=name, apply=apply))

        logger.log(
            f"{name} - implements the migration contract correctly "
            f"(verified properties: {', '.join(REQUIRED_EXPORTS)})"
        )

    logger.log(f"All {len(files)} migrations verified successfully!")
    return migrations


def _migrations_dir_expression(migrations_dir: Path, output_path: Path) -> str:
    """Source expression locating ``migrations_dir`` from the generated module."""
    target = Path(migrations_dir).resolve()
    try:
        relative = os.path.relpath(target, Path(output_path).resolve().parent)
    except ValueError:
        # Different drives on Windows
        return f"Path({target.as_posix()!r})"
    return f"(Path(__file__).resolve().parent / {Path(relative).as_posix()!r}).resolve()"


def generate_registry_content(
    migrations: Sequence[Migration],
    migrations_dir: Path,
    output_path: Path,
) -> str:
    """Render the registry module source, entries sorted by id."""
    if not migrations:
        return registry_stub_content()

    entries = "\n".join(
        f"        load_migration(MIGRATIONS_DIR / {migration.name + MIGRATION_SUFFIX!r}, "
        f"migration_id={migration.id}, name={migration.name!r}),"
        for migration in sorted(migrations, key=lambda m: m.id)
    )

    return (
        f"{_HEADER}\n"
        "from pathlib import Path\n"
        "\n"
        "from mongo_migrate.core.models import MigrationRegistry\n"
        "from mongo_migrate.registry.loader import load_migration\n"
        "\n"
        f"MIGRATIONS_DIR = {_migrations_dir_expression(migrations_dir, output_path)}\n"
        "\n"
        "migration_registry = MigrationRegistry(\n"
        "    [\n"
        f"{entries}\n"
        "    ]\n"
        ")\n"
        "\n"
        f"migration_count = {len(migrations)}\n"
    )


def registry_stub_content() -> str:
    """Source of an empty registry module."""
    return (
        f"{_HEADER}\n"
        "from mongo_migrate.core.models import MigrationRegistry\n"
        "\n"
        "migration_registry = MigrationRegistry([])\n"
        "\n"
        "migration_count = 0\n"
    )


def write_registry_stub(output_path: Path) -> Path:
    """Write an empty registry so the runner can start before the first generation."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(registry_stub_content(), encoding="utf-8")
    return output_path


def generate_registry(
    migrations_dir: Path,
    output_path: Path,
    logger: LoggerProtocol,
    *,
    import_function: ImportFunction = load_module,
    verify_function: Callable[..., list[Migration]] = verify_all_migrations,
) -> MigrationRegistry:
    """Verify ``migrations_dir`` and write the registry module to ``output_path``.

    Nothing is written when any file fails verification.

    Raises:
        RegistryError: Missing directory, bad file name, contract violation
            or duplicate id.  Already logged.
    """
    migrations_dir = Path(migrations_dir)
    output_path = Path(output_path)

    files = discover_migration_files(migrations_dir)

    if not files:
        logger.log("No migration files found.")
        write_registry_stub(output_path)
        logger.log(f"Generated {output_path} with 0 migrations.")
        return MigrationRegistry([])

    try:
        migrations = verify_function(files, migrations_dir, logger, import_function)
    except RegistryError as exc:
        logger.error("Migration verification failed!")
        logger.error(exc.message)
        raise

    registry = MigrationRegistry(migrations)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(generate_registry_content(list(registry), migrations_dir, output_path), encoding="utf-8")

    logger.log(f"Generated {output_path} with {registry.count} migrations.")
    return registry


__all__ = [
    "discover_migration_files",
    "generate_registry",
    "generate_registry_content",
    "registry_stub_content",
    "verify_all_migrations",
    "write_registry_stub",
]
