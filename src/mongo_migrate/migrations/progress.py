"""
Singleton progress cursor stored in the ``_migrations`` collection.

The collection holds at most one document, ``{migrationId, lastApplied}``.
Writes replace whatever document matches the empty filter, or insert when
there is none, so only the latest applied id is retained.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from pymongo.errors import PyMongoError

from mongo_migrate.core.errors import ErrorContext, ProgressReadError, ProgressWriteError
from mongo_migrate.core.models import ProgressRecord
from mongo_migrate.core.protocols import CollectionHandle
from mongo_migrate.core.timestamps import utc_now

DEFAULT_PROGRESS_COLLECTION = "_migrations"


class ProgressStore:
    """Reads and upserts the progress record on one collection handle."""

    def __init__(
        self,
        collection: CollectionHandle,
        *,
        clock: Callable[[], datetime] = utc_now,
        collection_name: str = DEFAULT_PROGRESS_COLLECTION,
    ) -> None:
        self._collection = collection
        self._clock = clock
        self.collection_name = collection_name

    async def read(self) -> ProgressRecord | None:
        """Return the progress record, or ``None`` when nothing was applied yet.

        Raises:
            ProgressReadError: The driver failed, or the stored document has
                no usable ``migrationId``.
        """
        try:
            document: Any = await self._collection.find_one()
        except PyMongoError as exc:
            raise ProgressReadError(
                f"Could not read progress record from '{self.collection_name}': {exc}",
                context=ErrorContext(collection=self.collection_name),
                cause=exc,
            ) from exc

        if document is None:
            return None

        try:
            return ProgressRecord.from_document(document)
        except (KeyError, TypeError, ValueError) as exc:
            raise ProgressReadError(
                f"Malformed progress record in '{self.collection_name}': {document!r}",
                context=ErrorContext(collection=self.collection_name),
                cause=exc,
            ) from exc

    async def last_applied_id(self) -> int:
        record = await self.read()
        return record.migration_id if record else 0

    async def write(self, migration_id: int) -> ProgressRecord:
        """Replace the single progress record with ``migration_id`` stamped now.

        Raises:
            ProgressWriteError: The upsert failed.
        """
        record = ProgressRecord(migration_id=migration_id, last_applied=self._clock())
        try:
            await self._collection.replace_one({}, record.to_document(), upsert=True)
        except PyMongoError as exc:
            raise ProgressWriteError(
                f"Could not record migration {migration_id} in '{self.collection_name}': {exc}",
                context=ErrorContext(collection=self.collection_name, migration_id=migration_id),
                cause=exc,
            ) from exc
        return record


__all__ = ["DEFAULT_PROGRESS_COLLECTION", "ProgressStore"]
