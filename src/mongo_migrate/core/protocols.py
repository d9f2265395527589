"""
Protocol definitions for the runner's collaborators.

The runner depends on shapes, not on pymongo classes, so tests can hand it
``AsyncMock`` fakes and the real provider can return a pymongo
``AsyncDatabase``.

Architecture:
    ::

        protocols.py
        ├── CollectionHandle     find_one / replace_one on the progress collection
        ├── DatabaseHandle       get_collection(name); passed to every up()
        ├── DatabaseProvider     connect() / disconnect()
        ├── LoggerProtocol       log / warn / error / start_session / end_session
        └── ApplyFunction        async up(database) -> None

Tags:
    protocol, database, mongodb, contracts
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, runtime_checkable

# up(database) -> awaitable; what every migration module exports
ApplyFunction = Callable[[Any], Awaitable[None]]


@runtime_checkable
class CollectionHandle(Protocol):
    """Async collection contract used by the progress store.

    ``pymongo.asynchronous.collection.AsyncCollection`` satisfies this.
    """

    async def find_one(self, filter: Mapping[str, Any] | None = None, *args: Any, **kwargs: Any) -> Any:
        """Return the first matching document or ``None``."""
        ...

    async def replace_one(
        self, filter: Mapping[str, Any], replacement: Mapping[str, Any], upsert: bool = False, **kwargs: Any
    ) -> Any:
        """Replace the first matching document; insert when ``upsert`` and none match."""
        ...


@runtime_checkable
class DatabaseHandle(Protocol):
    """Live database handed to each migration's ``up``."""

    def get_collection(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Return a collection handle by name."""
        ...


@runtime_checkable
class DatabaseProvider(Protocol):
    """Connection-provider capability owned by the runner for one run."""

    async def connect(self) -> DatabaseHandle:
        """Open a connection and return the target database.

        Raises:
            DatabaseConnectionError: Unreachable server or failed auth.
        """
        ...

    async def disconnect(self) -> None:
        """Close the connection.  Safe to call when not connected."""
        ...


@runtime_checkable
class LoggerProtocol(Protocol):
    """Operator-facing logging capability."""

    def log(self, message: str, **fields: Any) -> None: ...

    def warn(self, message: str, **fields: Any) -> None: ...

    def error(self, message: str, error: BaseException | None = None, **fields: Any) -> None: ...

    def start_session(self, session_name: str = ...) -> None: ...

    def end_session(self, session_name: str = ...) -> None: ...


__all__ = [
    "ApplyFunction",
    "CollectionHandle",
    "DatabaseHandle",
    "DatabaseProvider",
    "LoggerProtocol",
]
