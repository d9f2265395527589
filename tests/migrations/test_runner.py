"""Tests for the migration runner."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, call

import pytest
import structlog
from pymongo.errors import OperationFailure

from mongo_migrate.core.errors import (
    DatabaseConnectionError,
    MigrationFailedError,
    ProgressReadError,
    ProgressWriteError,
)
from mongo_migrate.core.models import Migration, MigrationRegistry
from mongo_migrate.migrations.runner import MigrationRunner

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


@pytest.fixture()
def runner(registry, provider, logger) -> MigrationRunner:
    return MigrationRunner(registry, provider, logger, clock=lambda: FIXED_NOW)


def applied(events: list) -> list[int]:
    return [e[1] for e in events if e[0] == "apply"]


# ── Scenarios ─────────────────────────────────────────────────────────


class TestExecuteScenarios:
    @pytest.mark.asyncio
    async def test_no_prior_progress_applies_all_in_order(self, runner, events, collection):
        """Scenario A: nothing applied yet -> 1, 2, 13."""
        await runner.execute()

        assert applied(events) == [1, 2, 13]
        assert collection.document == {"migrationId": 13, "lastApplied": FIXED_NOW}

    @pytest.mark.asyncio
    async def test_prior_progress_applies_only_newer(self, runner, events, collection):
        """Scenario B: progress at 2 -> only 13."""
        collection.document = {"migrationId": 2, "lastApplied": FIXED_NOW}

        await runner.execute()

        assert applied(events) == [13]
        assert collection.document["migrationId"] == 13

    @pytest.mark.asyncio
    async def test_up_to_date_applies_nothing(self, runner, events, collection, logger):
        """Scenario C: progress at 13 -> zero applied."""
        collection.document = {"migrationId": 13, "lastApplied": FIXED_NOW}

        await runner.execute()

        assert applied(events) == []
        collection.replace_one.assert_not_called()
        logger.log.assert_any_call("No pending migrations to run.")

    @pytest.mark.asyncio
    async def test_logs_last_applied_id(self, runner, collection, logger):
        collection.document = {"migrationId": 2, "lastApplied": FIXED_NOW}
        await runner.execute()
        logger.log.assert_any_call("Last applied migration ID: 2")


# ── Ordering and idempotence ─────────────────────────────────────────


class TestOrdering:
    @pytest.mark.asyncio
    async def test_upsert_follows_each_apply(self, runner, events):
        await runner.execute()

        assert events == [
            ("connect",),
            ("apply", 1),
            ("upsert", 1),
            ("apply", 2),
            ("upsert", 2),
            ("apply", 13),
            ("upsert", 13),
            ("disconnect",),
        ]

    @pytest.mark.asyncio
    async def test_unsorted_input_is_applied_ascending(
        self, provider, logger, events, migration_factory
    ):
        registry = MigrationRegistry([migration_factory(13), migration_factory(1), migration_factory(2)])
        runner = MigrationRunner(registry, provider, logger)

        await runner.execute()

        assert applied(events) == [1, 2, 13]

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(self, runner, events, logger):
        await runner.execute()
        events.clear()
        logger.reset_mock()

        await runner.execute()

        assert applied(events) == []
        logger.log.assert_any_call("No pending migrations to run.")

    @pytest.mark.asyncio
    async def test_progress_is_replaced_not_appended(self, runner, collection):
        await runner.execute()

        for recorded in collection.replace_one.await_args_list:
            args, kwargs = recorded
            assert args[0] == {}
            assert kwargs == {"upsert": True}
        assert collection.replace_one.await_count == 3

    @pytest.mark.asyncio
    async def test_last_applied_taken_at_update_time(self, provider, logger, collection, migration_factory):
        ticks = iter([datetime(2026, 1, 1, tzinfo=UTC), datetime(2026, 1, 2, tzinfo=UTC)])
        registry = MigrationRegistry([migration_factory(1), migration_factory(2)])
        runner = MigrationRunner(registry, provider, logger, clock=lambda: next(ticks))

        await runner.execute()

        stamps = [c.args[1]["lastApplied"] for c in collection.replace_one.await_args_list]
        assert stamps == [datetime(2026, 1, 1, tzinfo=UTC), datetime(2026, 1, 2, tzinfo=UTC)]


# ── Boundaries ───────────────────────────────────────────────────────


class TestBoundaries:
    @pytest.mark.asyncio
    async def test_empty_registry(self, provider, logger, collection, events):
        runner = MigrationRunner(MigrationRegistry([]), provider, logger)

        await runner.execute()

        collection.find_one.assert_awaited_once()
        collection.replace_one.assert_not_called()
        logger.log.assert_any_call("Last applied migration ID: 0")
        logger.log.assert_any_call("No pending migrations to run.")
        assert events == [("connect",), ("disconnect",)]

    @pytest.mark.asyncio
    async def test_uses_configured_progress_collection(self, registry, provider, logger, database):
        runner = MigrationRunner(registry, provider, logger, progress_collection="_progress")
        await runner.execute()
        database.get_collection.assert_called_once_with("_progress")

    @pytest.mark.asyncio
    async def test_each_migration_receives_the_database_handle(self, provider, logger, database):
        seen = []

        async def up(db):
            seen.append(db)

        runner = MigrationRunner(MigrationRegistry([Migration(1, "1-a", up)]), provider, logger)
        await runner.execute()

        assert seen == [database]

    @pytest.mark.asyncio
    async def test_migration_id_is_bound_to_log_context(self, provider, logger):
        bound = []

        async def up(db):
            bound.append(structlog.contextvars.get_contextvars().get("migration_id"))

        registry = MigrationRegistry([Migration(2, "2-a", up), Migration(13, "13-b", up)])
        await MigrationRunner(registry, provider, logger).execute()

        assert bound == [2, 13]
        assert "migration_id" not in structlog.contextvars.get_contextvars()


# ── Failure handling ─────────────────────────────────────────────────


class TestFailStop:
    @pytest.mark.asyncio
    async def test_first_failure_stops_the_run(self, provider, logger, events, collection, migration_factory):
        boom = RuntimeError("migration 1 exploded")
        registry = MigrationRegistry(
            [migration_factory(1, error=boom), migration_factory(2), migration_factory(13)]
        )
        runner = MigrationRunner(registry, provider, logger)

        with pytest.raises(MigrationFailedError) as exc_info:
            await runner.execute()

        assert applied(events) == [1]
        assert exc_info.value.cause is boom
        assert exc_info.value.__cause__ is boom
        assert exc_info.value.migration_id == 1
        assert collection.document is None

    @pytest.mark.asyncio
    async def test_progress_reflects_migrations_before_failure(
        self, provider, logger, events, collection, migration_factory
    ):
        registry = MigrationRegistry(
            [migration_factory(1), migration_factory(2, error=ValueError("bad")), migration_factory(13)]
        )
        runner = MigrationRunner(registry, provider, logger)

        with pytest.raises(MigrationFailedError):
            await runner.execute()

        assert applied(events) == [1, 2]
        assert collection.document["migrationId"] == 1
        assert events[-1] == ("disconnect",)

    @pytest.mark.asyncio
    async def test_failure_is_logged_with_id_and_name(self, provider, logger, migration_factory):
        boom = RuntimeError("boom")
        runner = MigrationRunner(MigrationRegistry([migration_factory(7, error=boom)]), provider, logger)

        with pytest.raises(MigrationFailedError):
            await runner.execute()

        logger.error.assert_any_call("Failed migration 7: 7-migration", error=boom)

    @pytest.mark.asyncio
    async def test_connection_failure_attempts_nothing(self, registry, provider, logger, events):
        provider.connect.side_effect = DatabaseConnectionError("unreachable")
        runner = MigrationRunner(registry, provider, logger)

        with pytest.raises(DatabaseConnectionError):
            await runner.execute()

        assert applied(events) == []
        provider.disconnect.assert_awaited_once()
        assert runner.database is None

    @pytest.mark.asyncio
    async def test_progress_read_failure_is_fatal(self, registry, provider, logger, collection, events):
        collection.find_one.side_effect = ProgressReadError("cannot read")
        runner = MigrationRunner(registry, provider, logger)

        with pytest.raises(ProgressReadError):
            await runner.execute()

        assert applied(events) == []
        assert events[-1] == ("disconnect",)

    @pytest.mark.asyncio
    async def test_progress_write_failure_stops_the_run(
        self, provider, logger, collection, events, migration_factory
    ):
        collection.replace_one.side_effect = OperationFailure("not writable")
        registry = MigrationRegistry([migration_factory(1), migration_factory(2)])
        runner = MigrationRunner(registry, provider, logger)

        with pytest.raises(ProgressWriteError):
            await runner.execute()

        assert applied(events) == [1]
        provider.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_progress_write_failure_names_the_migration(
        self, provider, logger, collection, migration_factory
    ):
        collection.replace_one.side_effect = OperationFailure("not writable")
        runner = MigrationRunner(MigrationRegistry([migration_factory(4)]), provider, logger)

        with pytest.raises(ProgressWriteError) as exc_info:
            await runner.execute()

        logger.error.assert_any_call("Failed migration 4: 4-migration", error=exc_info.value)
        assert call("Completed migration 4: 4-migration") not in logger.log.call_args_list

    @pytest.mark.asyncio
    async def test_errors_are_logged_before_propagating(self, registry, provider, logger):
        error = DatabaseConnectionError("unreachable")
        provider.connect.side_effect = error
        runner = MigrationRunner(registry, provider, logger)

        with pytest.raises(DatabaseConnectionError):
            await runner.execute()

        logger.error.assert_any_call("Error occurred during runner.execute():", error=error)

    @pytest.mark.asyncio
    async def test_disconnect_failure_does_not_mask_success(self, runner, provider, logger, events):
        provider.disconnect.side_effect = RuntimeError("socket already closed")

        await runner.execute()

        assert applied(events) == [1, 2, 13]
        logger.warn.assert_called_once()
        assert runner.database is None
        assert runner.progress is None


# ── Teardown and state reset ─────────────────────────────────────────


class TestTeardown:
    @pytest.mark.asyncio
    async def test_state_is_reset_after_success(self, runner, provider):
        await runner.execute()

        provider.disconnect.assert_awaited_once()
        assert runner.database is None
        assert runner.progress is None

    @pytest.mark.asyncio
    async def test_state_is_reset_after_failure(self, provider, logger, migration_factory):
        runner = MigrationRunner(
            MigrationRegistry([migration_factory(1, error=RuntimeError("x"))]), provider, logger
        )

        with pytest.raises(MigrationFailedError):
            await runner.execute()

        assert runner.database is None
        assert runner.progress is None

    @pytest.mark.asyncio
    async def test_runner_is_reusable(self, runner, provider):
        await runner.execute()
        await runner.execute()

        assert provider.connect.await_count == 2
        assert provider.disconnect.await_count == 2

    @pytest.mark.asyncio
    async def test_logging_sequence(self, provider, logger):
        runner = MigrationRunner(MigrationRegistry([]), provider, logger)

        await runner.execute()

        assert logger.log.call_args_list == [
            call("Setting up MongoDB connection..."),
            call("MongoDB connection established."),
            call("Last applied migration ID: 0"),
            call("No pending migrations to run."),
            call("Tearing down MongoDB connection..."),
            call("MongoDB connection closed."),
        ]


# ── status() ─────────────────────────────────────────────────────────


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_reports_pending(self, runner, collection, events):
        collection.document = {"migrationId": 2, "lastApplied": FIXED_NOW}

        status = await runner.status()

        assert status.last_applied_id == 2
        assert status.last_applied == FIXED_NOW
        assert status.total == 3
        assert [m.id for m in status.pending] == [13]
        assert applied(events) == []
        assert events[-1] == ("disconnect",)

    @pytest.mark.asyncio
    async def test_status_without_progress(self, runner):
        status = await runner.status()

        assert status.last_applied_id == 0
        assert status.last_applied is None
        assert not status.is_up_to_date

    @pytest.mark.asyncio
    async def test_status_tears_down_on_error(self, registry, provider, logger):
        provider.connect = AsyncMock(side_effect=DatabaseConnectionError("down"))
        runner = MigrationRunner(registry, provider, logger)

        with pytest.raises(DatabaseConnectionError):
            await runner.status()

        provider.disconnect.assert_awaited_once()
