"""Migration runner and progress store.

Modules
-------
runner      MigrationRunner with execute() / status()
progress    ProgressStore over the singleton ``_migrations`` document
"""

from mongo_migrate.migrations.progress import DEFAULT_PROGRESS_COLLECTION, ProgressStore
from mongo_migrate.migrations.runner import MigrationRunner

__all__ = ["DEFAULT_PROGRESS_COLLECTION", "MigrationRunner", "ProgressStore"]
