"""mongo-migrate core -- errors, logging, settings, protocols and data model.

Architecture::

    errors.py        Structured error hierarchy (MigrateError and subclasses)
    logging.py       structlog configuration, MigrationLogger collaborator
    settings.py      MigrateSettings (pydantic-settings), get_settings()
    protocols.py     DatabaseProvider, DatabaseHandle, CollectionHandle, LoggerProtocol
    models.py        Migration, MigrationRegistry, ProgressRecord, MigrationStatus
    timestamps.py    UTC helpers
    container.py     MigrateContainer wiring runner, provider, logger, registry
"""

from .errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    MigrateError,
    MigrationFailedError,
    ProgressReadError,
    ProgressWriteError,
    RegistryError,
)
from .models import Migration, MigrationRegistry, MigrationStatus, ProgressRecord

__all__ = [
    "ConfigError",
    "DatabaseConnectionError",
    "DatabaseError",
    "ErrorCategory",
    "ErrorContext",
    "MigrateError",
    "Migration",
    "MigrationFailedError",
    "MigrationRegistry",
    "MigrationStatus",
    "ProgressReadError",
    "ProgressRecord",
    "ProgressWriteError",
    "RegistryError",
]
