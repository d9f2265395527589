"""MongoDB connection provider backed by pymongo's asyncio client."""

from __future__ import annotations

from typing import Any

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from mongo_migrate.core.errors import DatabaseConnectionError, ErrorContext
from mongo_migrate.core.logging import get_logger
from mongo_migrate.core.settings import MigrateSettings

logger = get_logger(__name__)


class MongoProvider:
    """Opens one client per run and hands out the target database.

    Parameters
    ----------
    uri
        MongoDB connection string.
    database_name
        Database every migration runs against.
    server_selection_timeout_ms
        Passed to the client; bounds how long ``connect`` waits for a server.
    client_factory
        Builds the client from ``(uri, **options)``.  Defaults to
        :class:`pymongo.AsyncMongoClient`; tests substitute a fake.
    """

    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        database_name: str = "TestMigrateMongo",
        *,
        server_selection_timeout_ms: int = 30_000,
        client_factory: Any = AsyncMongoClient,
    ) -> None:
        self.uri = uri
        self.database_name = database_name
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._client_factory = client_factory
        self._client: Any | None = None

    @classmethod
    def from_settings(cls, settings: MigrateSettings) -> MongoProvider:
        return cls(
            settings.mongo_uri,
            settings.mongo_db,
            server_selection_timeout_ms=settings.server_selection_timeout_ms,
        )

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> AsyncDatabase:
        """Create the client, ping the server and return the target database.

        Raises:
            DatabaseConnectionError: The server is unreachable or rejected
                the credentials.  The half-open client is closed first.
        """
        if self._client is not None:
            await self.disconnect()

        try:
            self._client = self._client_factory(
                self.uri,
                serverSelectionTimeoutMS=self._server_selection_timeout_ms,
            )
            await self._client.admin.command("ping")
        except PyMongoError as exc:
            await self.disconnect()
            raise DatabaseConnectionError(
                f"Could not connect to MongoDB database '{self.database_name}': {exc}",
                context=ErrorContext(database=self.database_name),
                cause=exc,
            ) from exc

        logger.debug("mongo.connected", database=self.database_name)
        return self._client[self.database_name]

    async def disconnect(self) -> None:
        """Close the client.  No-op when not connected."""
        client, self._client = self._client, None
        if client is None:
            return
        await client.close()
        logger.debug("mongo.disconnected", database=self.database_name)


__all__ = ["MongoProvider"]
