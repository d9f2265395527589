"""
Centralized settings for mongo-migrate.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    The connection URI and database name keep the plain ``MONGO_URI`` /
    ``MONGO_DB`` variables deployments already export; everything else is
    namespaced under ``MIGRATE_``.

    - **Pydantic validation:** Type-checked at startup, not mid-run
    - **Environment-driven:** Reads from env vars and a ``.env`` file
    - **Sensible defaults:** A local MongoDB works out of the box

Tags:
    configuration, settings, pydantic, environment

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidConfigError

_LOG_FORMATS = ("auto", "json", "console")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def normalize_log_level(value: str) -> str:
    """Upper-case ``value`` and check it names a standard level.

    Raises:
        ValueError: Not one of DEBUG, INFO, WARNING, ERROR or CRITICAL.
    """
    level = value.upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"unknown log level {value!r}")
    return level


class MigrateSettings(BaseSettings):
    """mongo-migrate configuration.

    Fields
    ──────
    mongo_uri                    : MongoDB connection string
    mongo_db                     : Target database name
    server_selection_timeout_ms  : Upper bound on finding a server at connect
    progress_collection          : Collection holding the singleton progress record
    migrations_dir               : Directory scanned by ``generate``
    registry_path                : Generated registry module
    log_level                    : Structlog log level
    log_format                   : auto / json / console
    log_file                     : Plain-text log file, empty to disable
    """

    model_config = SettingsConfigDict(
        env_prefix="MIGRATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Database ─────────────────────────────────────────────────
    mongo_uri: str = Field(
        default="mongodb://localhost:27017",
        validation_alias=AliasChoices("MIGRATE_MONGO_URI", "MONGO_URI"),
    )
    mongo_db: str = Field(
        default="TestMigrateMongo",
        validation_alias=AliasChoices("MIGRATE_MONGO_DB", "MONGO_DB"),
    )
    server_selection_timeout_ms: int = Field(default=30_000, gt=0)
    progress_collection: str = Field(default="_migrations", min_length=1)

    # ── Registry ─────────────────────────────────────────────────
    migrations_dir: Path = Field(default=Path("migrations"))
    registry_path: Path = Field(default=Path("migration_registry.py"))

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="auto")
    log_file: Path | None = Field(default=Path("Logs") / "MongoDataMigration.log")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        return normalize_log_level(value)

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        fmt = value.lower()
        if fmt not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(_LOG_FORMATS)}")
        return fmt

    @field_validator("log_file", mode="before")
    @classmethod
    def _empty_disables_log_file(cls, value: object) -> object:
        if value == "":
            return None
        return value

    @property
    def json_logs(self) -> bool | None:
        """``configure_logging`` json flag; ``None`` means auto-detect."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


_settings_cache: dict[str, MigrateSettings] = {}


def get_settings(*, _force_reload: bool = False) -> MigrateSettings:
    """Load, validate, and cache a :class:`MigrateSettings` instance.

    Raises:
        InvalidConfigError: An environment value failed validation.
    """
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    try:
        settings = MigrateSettings()
    except ValidationError as exc:
        first = exc.errors()[0]
        key = ".".join(str(part) for part in first.get("loc", ())) or "settings"
        raise InvalidConfigError(
            key,
            first.get("input"),
            f"Invalid configuration for {key}: {first.get('msg')}",
            cause=exc,
        ) from exc

    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["MigrateSettings", "get_settings", "clear_settings_cache", "normalize_log_level"]
