"""
Structured logging for mongo-migrate.

This module configures structlog on top of the stdlib ``logging`` module so a
single event can be rendered twice: once to the terminal and once to the
migration log file that operators keep next to the deployment.

Manifesto:
    A migration run is an operator-facing event.  Its log must say which
    migration ran, which one failed and why, both on screen and in a file
    that survives the terminal session.

    - **Structured:** Events carry ``migration_id``/``session`` fields
    - **Flexible:** Colored console for a TTY, JSON for pipelines
    - **Explicit:** The runner receives a ``MigrationLogger``; nothing
      intercepts ``print`` or replaces global logging functions

Architecture:
    ::

        configure_logging(level, json_format, service, log_file)
             │
             ▼
        structlog processors ──► ProcessorFormatter.wrap_for_formatter
                                        │
                    ┌───────────────────┴───────────────────┐
                    ▼                                       ▼
             StreamHandler(stdout)                  FileHandler(log_file)
             Console / JSON renderer                plain-text renderer

Examples:
    >>> from mongo_migrate.core.logging import configure_logging, MigrationLogger
    >>> configure_logging(level="INFO", log_file="Logs/MongoDataMigration.log")
    >>> logger = MigrationLogger()
    >>> logger.start_session("MongoDataMigration")
    >>> logger.log("Starting runner...")

Tags:
    logging, structlog, observability, migrations

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "mongo-migrate"

# Handlers installed by configure_logging(), removed on reconfiguration
_HANDLERS: list[logging.Handler] = []


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "mongo-migrate",
    log_file: str | Path | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        log_file: Optional path of a plain-text log file; parent directories
            are created

    Calling this again replaces the handlers installed by the previous call.
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    log_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_service_metadata,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if json_format:
        console_renderer: Processor = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(colors=True)

    root = logging.getLogger()
    for handler in _HANDLERS:
        root.removeHandler(handler)
        handler.close()
    _HANDLERS.clear()

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                console_renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )
    _HANDLERS.append(stream_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.dev.ConsoleRenderer(colors=False),
                ],
                foreign_pre_chain=shared_processors,
            )
        )
        _HANDLERS.append(file_handler)

    for handler in _HANDLERS:
        root.addHandler(handler)
    root.setLevel(log_level)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(session="MongoDataMigration")
        logger.info("migration.started")  # Includes session
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(migration_id=13):
            logger.info("applying")
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())

    async def __aenter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    async def __aexit__(self, *args) -> None:
        unbind_context(*self._context.keys())


class MigrationLogger:
    """Operator-facing logger injected into the runner and the generator.

    ``log``/``warn``/``error`` map onto structlog's info/warning/error.
    Sessions frame one CLI invocation with ``=== <name> started ===`` and
    ``=== <name> completed ===`` lines and bind ``session`` to every event in
    between.
    """

    def __init__(self, name: str = "mongo_migrate") -> None:
        self._logger = get_logger(name)

    def log(self, message: str, **fields: Any) -> None:
        self._logger.info(message, **fields)

    def warn(self, message: str, **fields: Any) -> None:
        self._logger.warning(message, **fields)

    def error(self, message: str, error: BaseException | None = None, **fields: Any) -> None:
        if error is not None:
            fields["error"] = f"{type(error).__name__}: {error}"
        self._logger.error(message, **fields)

    def start_session(self, session_name: str = "Migration") -> None:
        bind_context(session=session_name)
        self._logger.info(f"=== {session_name} started ===")

    def end_session(self, session_name: str = "Migration") -> None:
        self._logger.info(f"=== {session_name} completed ===")
        unbind_context("session")


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
    "MigrationLogger",
]
