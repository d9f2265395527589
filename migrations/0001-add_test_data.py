"""Seed the CoolStuff collection with three test items."""

from mongo_migrate.core.logging import MigrationLogger

logger = MigrationLogger(__name__)


async def up(db) -> None:
    collection = db.get_collection("CoolStuff")

    logger.log("Adding CoolStuff test data...")

    await collection.insert_many(
        [
            {"name": "Test Item 1", "info": "This is a test data 1."},
            {"name": "Test Item 2", "info": "This is a test data 2."},
            {"name": "Test Item 3", "info": "This is a test data 3."},
        ]
    )
