"""Migration registry: build-time generation and runtime loading.

Modules
-------
loader      file-name parsing, module import, contract check, load_registry()
generator   directory scan, fail-fast verification, registry codegen
"""

from mongo_migrate.registry.generator import (
    discover_migration_files,
    generate_registry,
    generate_registry_content,
    verify_all_migrations,
    write_registry_stub,
)
from mongo_migrate.registry.loader import (
    extract_migration_id,
    load_migration,
    load_registry,
    verify_migration_module,
)

__all__ = [
    "discover_migration_files",
    "extract_migration_id",
    "generate_registry",
    "generate_registry_content",
    "load_migration",
    "load_registry",
    "verify_all_migrations",
    "verify_migration_module",
    "write_registry_stub",
]
