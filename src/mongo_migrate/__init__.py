"""
mongo-migrate - ordered, run-once data migrations for MongoDB.

Migrations are plain Python files named ``<digits>-<description>.py`` that
export ``async def up(db)``.  ``mongo-migrate generate`` verifies them and
writes a registry module; ``mongo-migrate run`` applies every migration newer
than the id stored in the ``_migrations`` progress collection.
"""

__version__ = "0.1.0"

from mongo_migrate.core.errors import MigrateError, MigrationFailedError
from mongo_migrate.core.models import Migration, MigrationRegistry, ProgressRecord
from mongo_migrate.migrations.runner import MigrationRunner

__all__ = [
    "__version__",
    "MigrateError",
    "Migration",
    "MigrationFailedError",
    "MigrationRegistry",
    "MigrationRunner",
    "ProgressRecord",
]
