"""Migration runner.

Applies every registered migration newer than the stored progress record,
one at a time in ascending id order, recording progress after each one and
stopping at the first failure.  The database connection is released on every
exit path.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from mongo_migrate.core.errors import MigrateError, MigrationFailedError, ProgressWriteError
from mongo_migrate.core.logging import LogContext
from mongo_migrate.core.models import Migration, MigrationRegistry, MigrationStatus
from mongo_migrate.core.protocols import DatabaseProvider, LoggerProtocol
from mongo_migrate.core.timestamps import utc_now

from .progress import DEFAULT_PROGRESS_COLLECTION, ProgressStore


class MigrationRunner:
    """Drives one migration cycle per :meth:`execute` call.

    Parameters
    ----------
    registry
        Ordered migrations to consider.
    provider
        Connection provider; ``connect()`` returns the database handle passed
        to every migration, ``disconnect()`` releases it.
    logger
        Operator-facing logger.
    progress_collection
        Name of the collection holding the singleton progress record.
    clock
        Source of the ``lastApplied`` timestamp.

    Example::

        runner = MigrationRunner(registry, MongoProvider(), MigrationLogger())
        await runner.execute()
    """

    def __init__(
        self,
        registry: MigrationRegistry,
        provider: DatabaseProvider,
        logger: LoggerProtocol,
        *,
        progress_collection: str = DEFAULT_PROGRESS_COLLECTION,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.registry = registry
        self.provider = provider
        self.logger = logger
        self.progress_collection = progress_collection
        self._clock = clock

        # Session state, only set while execute()/status() is in flight
        self.database: Any | None = None
        self.progress: ProgressStore | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(self) -> None:
        """Apply all pending migrations.

        Raises:
            DatabaseConnectionError: No database handle could be obtained.
            ProgressReadError: The progress record could not be read.
            MigrationFailedError: A migration's ``up`` raised; its exception
                is the ``cause``.  Later migrations were not invoked.
            ProgressWriteError: A migration succeeded but its progress
                could not be recorded.
        """
        try:
            await self._setup()
            await self._run_migrations()
        except Exception as exc:
            self.logger.error("Error occurred during runner.execute():", error=exc)
            raise
        finally:
            await self._teardown()

    async def status(self) -> MigrationStatus:
        """Report the stored progress and the pending migrations without applying any."""
        try:
            await self._setup()
            record = await self._require_progress().read()
        except Exception as exc:
            self.logger.error("Error occurred during runner.status():", error=exc)
            raise
        finally:
            await self._teardown()

        last_applied_id = record.migration_id if record else 0
        return MigrationStatus(
            last_applied_id=last_applied_id,
            last_applied=record.last_applied if record else None,
            total=self.registry.count,
            pending=self.registry.pending(last_applied_id),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _setup(self) -> None:
        self.logger.log("Setting up MongoDB connection...")

        self.database = await self.provider.connect()
        self.progress = ProgressStore(
            self.database.get_collection(self.progress_collection),
            clock=self._clock,
            collection_name=self.progress_collection,
        )

        self.logger.log("MongoDB connection established.")

    def _require_progress(self) -> ProgressStore:
        if self.database is None or self.progress is None:
            raise MigrateError("MongoDB is not set up. Cannot run migrations.")
        return self.progress

    async def _run_migrations(self) -> None:
        progress = self._require_progress()

        last_applied_id = await progress.last_applied_id()
        self.logger.log(f"Last applied migration ID: {last_applied_id}")

        pending = self.registry.pending(last_applied_id)
        if not pending:
            self.logger.log("No pending migrations to run.")
            return

        self.logger.log(f"{len(pending)} pending migration(s): {[m.id for m in pending]}")

        for migration in pending:
            async with LogContext(migration_id=migration.id):
                await self._apply(progress, migration)

    async def _apply(self, progress: ProgressStore, migration: Migration) -> None:
        self.logger.log(f"Running migration {migration.label}")

        try:
            await migration.apply(self.database)
        except Exception as exc:
            self.logger.error(f"Failed migration {migration.label}", error=exc)
            raise MigrationFailedError(migration.id, migration.name, cause=exc) from exc

        try:
            await progress.write(migration.id)
        except ProgressWriteError as exc:
            self.logger.error(f"Failed migration {migration.label}", error=exc)
            raise

        self.logger.log(f"Completed migration {migration.label}")

    async def _teardown(self) -> None:
        self.logger.log("Tearing down MongoDB connection...")

        try:
            await self.provider.disconnect()
        except Exception as exc:
            # Releasing the handle must not mask the run's own outcome
            self.logger.warn(f"Failed to close MongoDB connection: {type(exc).__name__}: {exc}")
        else:
            self.logger.log("MongoDB connection closed.")
        finally:
            self.database = None
            self.progress = None


__all__ = ["MigrationRunner"]
