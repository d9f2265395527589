"""
Structured error types for mongo-migrate.

Every failure the runner or the registry generator can surface is a
``MigrateError`` subclass carrying a category, structured context and the
underlying exception that caused it.

Manifesto:
    - **Typed Error Hierarchy:** Different error types for different stages
      (configuration, database, migration, registry generation)
    - **Rich Context:** Errors carry the migration id, name and file for logging
    - **Error Chaining:** The original driver/migration exception is kept as cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       MigrateError                              │
        │                 (category, context, cause)                      │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                 │
        │  ConfigError        DatabaseError          RegistryError        │
        │  (CONFIG)           (DATABASE)             (REGISTRY)           │
        │       │                  │                      │               │
        │  InvalidConfig      DatabaseConnection     InvalidFilename      │
        │                     ProgressRead           ContractError        │
        │                     ProgressWrite          DuplicateId          │
        │                                            RegistryNotFound     │
        │                                                                 │
        │  MigrationFailedError (MIGRATION)                               │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = MigrationFailedError(13, "0013-add_active_flag", cause=ValueError("boom"))
    >>> err.category
    <ErrorCategory.MIGRATION: 'MIGRATION'>
    >>> err.context.migration_id
    13

Tags:
    error-handling, exception-hierarchy, error-context, migrations

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    DATABASE = "DATABASE"         # Connection, progress read/write
    CONFIG = "CONFIG"             # Missing config, invalid settings
    MIGRATION = "MIGRATION"       # A migration's own up() failed
    REGISTRY = "REGISTRY"         # Generation, verification, loading
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields that are set end up in :meth:`to_dict`, so the same
    context type serves runner failures (migration id/name) and generator
    failures (file name).

    Attributes:
        migration_id: Numeric id of the migration involved
        migration_name: File stem of the migration involved
        file: Migration or registry file being processed
        database: Target database name
        collection: Collection being read or written
        metadata: Additional key-value pairs
    """

    migration_id: int | None = None
    migration_name: str | None = None
    file: str | None = None
    database: str | None = None
    collection: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["migration_id", "migration_name", "file", "database", "collection"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MigrateError(Exception):
    """
    Base exception for all mongo-migrate errors.

    Subclasses set ``default_category``; callers may override it.  When a
    ``cause`` is given it is also chained as ``__cause__`` so tracebacks
    show the original failure.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigrateError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DatabaseError("Read failed").with_context(collection="_migrations")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(MigrateError):
    """Configuration error. The environment or settings must be fixed."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None, **kwargs: Any):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}", **kwargs)


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(MigrateError):
    """Database round-trip failed."""

    default_category = ErrorCategory.DATABASE


class DatabaseConnectionError(DatabaseError):
    """Could not establish a database handle (unreachable, auth failure)."""


class ProgressReadError(DatabaseError):
    """The singleton progress record could not be read."""


class ProgressWriteError(DatabaseError):
    """The singleton progress record could not be upserted."""


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationFailedError(MigrateError):
    """A migration's ``up`` function raised; the run stopped at this migration."""

    default_category = ErrorCategory.MIGRATION

    def __init__(
        self,
        migration_id: int,
        migration_name: str,
        *,
        cause: BaseException | None = None,
        message: str | None = None,
    ):
        self.migration_id = migration_id
        self.migration_name = migration_name
        if message is None:
            message = f"Migration {migration_id} ({migration_name}) failed"
            if cause is not None:
                message = f"{message}: {cause}"
        super().__init__(
            message,
            context=ErrorContext(migration_id=migration_id, migration_name=migration_name),
            cause=cause,
        )


# =============================================================================
# REGISTRY ERRORS
# =============================================================================


class RegistryError(MigrateError):
    """Registry generation, verification or loading failed."""

    default_category = ErrorCategory.REGISTRY


class InvalidMigrationFilenameError(RegistryError):
    """A migration file name does not start with ``<digits>-``."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(
            f'Invalid migration filename format: {filename}. Expected format: "number-description.py"',
            context=ErrorContext(file=filename),
        )


class MigrationContractError(RegistryError):
    """A migration module does not export a usable ``up`` function."""

    def __init__(
        self,
        filename: str,
        reason: str,
        *,
        property_name: str | None = None,
        cause: BaseException | None = None,
    ):
        self.filename = filename
        self.property_name = property_name
        self.reason = reason
        super().__init__(
            f"Migration verification failed for {filename}: {reason}",
            context=ErrorContext(file=filename),
            cause=cause,
        )


class DuplicateMigrationIdError(RegistryError):
    """Two migrations share the same numeric id."""

    def __init__(self, migration_id: int, names: list[str]):
        self.migration_id = migration_id
        self.names = names
        super().__init__(
            f"Duplicate migration id {migration_id}: {', '.join(names)}",
            context=ErrorContext(migration_id=migration_id),
        )


class RegistryNotFoundError(RegistryError):
    """The generated registry module does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Migration registry not found at {path}. "
            "Run 'mongo-migrate generate' (or 'mongo-migrate stub') first.",
            context=ErrorContext(file=path),
        )


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "MigrateError",
    "ConfigError",
    "InvalidConfigError",
    "DatabaseError",
    "DatabaseConnectionError",
    "ProgressReadError",
    "ProgressWriteError",
    "MigrationFailedError",
    "RegistryError",
    "InvalidMigrationFilenameError",
    "MigrationContractError",
    "DuplicateMigrationIdError",
    "RegistryNotFoundError",
]
