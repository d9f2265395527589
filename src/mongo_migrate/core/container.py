"""
Lazy-initialised dependency container.

:class:`MigrateContainer` assembles ``MigrationRunner ← {MigrationLogger,
MongoProvider, MigrationRegistry}`` from :class:`MigrateSettings` with plain
constructor calls, creating each component on first access.

Usage::

    from mongo_migrate.core.container import MigrateContainer

    container = MigrateContainer()
    await container.runner.execute()

    # Or with explicit settings and a different registry file:
    container = MigrateContainer(settings, registry_path=Path("build/registry.py"))
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .logging import MigrationLogger
from .settings import MigrateSettings, get_settings

if TYPE_CHECKING:
    from mongo_migrate.core.models import MigrationRegistry
    from mongo_migrate.migrations.runner import MigrationRunner
    from mongo_migrate.mongo.client import MongoProvider


class MigrateContainer:
    """Lazy-initialised dependency container."""

    def __init__(
        self,
        settings: MigrateSettings | None = None,
        *,
        registry_path: Path | None = None,
    ) -> None:
        self._settings = settings
        self._registry_path = registry_path
        self._logger: MigrationLogger | None = None
        self._provider: MongoProvider | None = None
        self._registry: MigrationRegistry | None = None
        self._runner: MigrationRunner | None = None

    # ── Properties (lazy) ────────────────────────────────────────

    @property
    def settings(self) -> MigrateSettings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def registry_path(self) -> Path:
        return self._registry_path or self.settings.registry_path

    @property
    def logger(self) -> MigrationLogger:
        if self._logger is None:
            self._logger = MigrationLogger()
        return self._logger

    @property
    def provider(self) -> MongoProvider:
        """MongoDB connection provider."""
        if self._provider is None:
            from mongo_migrate.mongo.client import MongoProvider

            self._provider = MongoProvider.from_settings(self.settings)
        return self._provider

    @property
    def registry(self) -> MigrationRegistry:
        """Generated registry, imported from :attr:`registry_path`."""
        if self._registry is None:
            from mongo_migrate.registry.loader import load_registry

            self._registry = load_registry(self.registry_path)
        return self._registry

    @property
    def runner(self) -> MigrationRunner:
        if self._runner is None:
            from mongo_migrate.migrations.runner import MigrationRunner

            self._runner = MigrationRunner(
                self.registry,
                self.provider,
                self.logger,
                progress_collection=self.settings.progress_collection,
            )
        return self._runner


__all__ = ["MigrateContainer"]
